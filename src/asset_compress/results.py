"""Aggregation of per-asset compression results."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .models import Asset
from .scheduler import Outcome, Success

BASE_COLUMN = "base"


@dataclass
class AssetRow:
    asset: Asset
    sizes: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class RunReport:
    rows: Tuple[AssetRow, ...]
    totals: Dict[str, int]

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def total_for(self, column: str) -> int | None:
        return self.totals.get(column)


class ResultAggregator:
    """Collects successful outcomes keyed by asset name.

    Rows keep the order in which each asset first recorded a success; the
    name index only serves lookups.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: List[AssetRow] = []
        self._index: Dict[str, AssetRow] = {}

    def record(self, asset: Asset, algorithm: str, outcome: Outcome) -> None:
        if not isinstance(outcome, Success):
            return
        with self._lock:
            row = self._index.get(asset.name)
            if row is None:
                row = AssetRow(asset=asset)
                self._index[asset.name] = row
                self._rows.append(row)
            row.sizes[algorithm] = outcome.output_size

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def snapshot(self) -> RunReport:
        with self._lock:
            rows = tuple(AssetRow(asset=row.asset, sizes=dict(row.sizes)) for row in self._rows)
        totals: Dict[str, int] = {BASE_COLUMN: 0}
        for row in rows:
            totals[BASE_COLUMN] += row.asset.size
            for algorithm, size in row.sizes.items():
                totals[algorithm] = totals.get(algorithm, 0) + size
        return RunReport(rows=rows, totals=totals)
