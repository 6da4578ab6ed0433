"""Asset selection rules for the compression stage."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Tuple

from .models import Asset

AssetPredicate = Callable[[Asset], bool]


class RuleKind(str, Enum):
    SUBSTRING = "substring"
    PATTERN = "pattern"
    PREDICATE = "predicate"


@dataclass(frozen=True)
class FilterRule:
    kind: RuleKind
    value: Any

    @classmethod
    def substring(cls, text: str) -> "FilterRule":
        return cls(RuleKind.SUBSTRING, text)

    @classmethod
    def pattern(cls, pattern: "str | re.Pattern[str]", ignore_case: bool = False) -> "FilterRule":
        if isinstance(pattern, str):
            pattern = re.compile(pattern, re.IGNORECASE if ignore_case else 0)
        return cls(RuleKind.PATTERN, pattern)

    @classmethod
    def predicate(cls, func: AssetPredicate) -> "FilterRule":
        return cls(RuleKind.PREDICATE, func)

    def matches(self, asset: Asset) -> bool:
        if self.kind == RuleKind.SUBSTRING:
            return self.value in asset.name
        if self.kind == RuleKind.PATTERN:
            return self.value.search(asset.name) is not None
        return bool(self.value(asset))


FilterRuleSet = Tuple[FilterRule, ...]


def _coerce_rule(raw: Any) -> FilterRule:
    if isinstance(raw, FilterRule):
        return raw
    if isinstance(raw, str):
        return FilterRule.substring(raw)
    if isinstance(raw, re.Pattern):
        return FilterRule.pattern(raw)
    if isinstance(raw, Mapping):
        if "pattern" in raw:
            return FilterRule.pattern(str(raw["pattern"]), bool(raw.get("ignore_case", False)))
        if "substring" in raw:
            return FilterRule.substring(str(raw["substring"]))
        raise ValueError(f"Filter rule mapping needs a 'pattern' or 'substring' key: {dict(raw)!r}")
    if callable(raw):
        return FilterRule.predicate(raw)
    raise TypeError(f"Unsupported filter rule: {raw!r}")


def parse_rules(raw: Any) -> Optional[FilterRuleSet]:
    """Normalize a single rule or a list of rules into a rule set.

    ``None`` stays ``None`` (no constraint); an empty list becomes an empty
    rule set, which never matches.
    """

    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        return tuple(_coerce_rule(item) for item in raw)
    return (_coerce_rule(raw),)


def match_rules(asset: Asset, rules: Iterable[FilterRule]) -> bool:
    return any(rule.matches(asset) for rule in rules)


def should_compress(
    asset: Asset,
    include: Optional[FilterRuleSet],
    exclude: Optional[FilterRuleSet],
    threshold: int,
) -> bool:
    if exclude is not None and match_rules(asset, exclude):
        return False
    if include is not None and not match_rules(asset, include):
        return False
    # zero-byte and below-threshold assets share the same skip path
    if asset.size == 0 or asset.size < threshold:
        return False
    return True
