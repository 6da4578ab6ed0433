"""Configuration for the post-build asset compression stage."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .filters import FilterRule, FilterRuleSet, parse_rules
from .models import EnvironmentContext

SUPPORTED_ALGORITHMS = ("gzip", "brotli", "zstd")

COMPRESSED_FILE_EXTENSIONS: Dict[str, str] = {
    "gzip": ".gz",
    "brotli": ".br",
    "zstd": ".zst",
}

DEFAULT_COMPRESSION_ALGORITHMS = ["gzip", "brotli"]
DEFAULT_CONCURRENCY_LIMIT = 4
DEFAULT_COMPRESSION_THRESHOLD = 0
DEFAULT_INCLUDE_ASSETS = re.compile(r"\.(js|mjs|cjs|css|html|txt|xml|json|wasm|svg)$", re.IGNORECASE)
DEFAULT_PRINT_RESULT = True
DEFAULT_DISABLED = False

DisabledPredicate = Callable[[EnvironmentContext], bool]


class AlgorithmSpec(BaseModel):
    name: str = Field(..., min_length=1)
    options: Dict[str, Any] = Field(default_factory=dict)

    @property
    def extension(self) -> Optional[str]:
        return COMPRESSED_FILE_EXTENSIONS.get(self.name)


class CompressionOptions(BaseModel):
    algorithms: List[AlgorithmSpec] = Field(
        default_factory=lambda: [AlgorithmSpec(name=name) for name in DEFAULT_COMPRESSION_ALGORITHMS]
    )
    concurrency: int = Field(
        DEFAULT_CONCURRENCY_LIMIT,
        ge=1,
        description="Maximum number of compressions running at the same time across all assets",
    )
    threshold: int = Field(DEFAULT_COMPRESSION_THRESHOLD, ge=0, description="Minimum asset size in bytes")
    include: Optional[FilterRuleSet] = Field(default_factory=lambda: (FilterRule.pattern(DEFAULT_INCLUDE_ASSETS),))
    exclude: Optional[FilterRuleSet] = None
    disabled: Union[bool, DisabledPredicate] = DEFAULT_DISABLED
    print_result: bool = DEFAULT_PRINT_RESULT

    model_config = {
        "arbitrary_types_allowed": True,
    }

    @field_validator("algorithms", mode="before")
    @classmethod
    def expand_algorithm_names(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (str, dict, AlgorithmSpec)):
            value = [value]
        return [{"name": item} if isinstance(item, str) else item for item in value]

    @field_validator("include", "exclude", mode="before")
    @classmethod
    def normalize_rules(cls, value: Any) -> Optional[FilterRuleSet]:
        return parse_rules(value)

    def algorithm_names(self) -> List[str]:
        return [algorithm.name for algorithm in self.algorithms]

    def is_disabled_for(self, environment_name: str) -> bool:
        if isinstance(self.disabled, bool):
            return self.disabled
        return bool(self.disabled(EnvironmentContext(environment_name=environment_name)))


def read_options_file(path: Path) -> Dict[str, Any]:
    text = path.read_text()
    if path.suffix.lower() in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text)
    else:
        data = json.loads(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Options file {path} must contain a mapping")
    return data


def load_options(path: Path) -> CompressionOptions:
    """Load compression options from a JSON or YAML file."""

    return CompressionOptions.model_validate(read_options_file(path))
