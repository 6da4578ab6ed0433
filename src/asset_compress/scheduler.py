"""Bounded-concurrency execution of (asset, algorithm) work items."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from .codecs import compress_file
from .config import AlgorithmSpec
from .errors import CompressionConfigError, UnsupportedAlgorithmError
from .models import Asset

logger = logging.getLogger(__name__)

CompressFn = Callable[[Path, AlgorithmSpec], Path]
ProgressCallback = Optional[Callable[[int, int], None]]


@dataclass(frozen=True)
class WorkItem:
    asset: Asset
    algorithm: AlgorithmSpec
    path: Path


class FailureKind(str, Enum):
    UNSUPPORTED = "unsupported"
    CONFIGURATION = "configuration"
    GENERIC = "generic"


@dataclass(frozen=True)
class Success:
    output_path: Path
    output_size: int


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    detail: str


Outcome = Union[Success, Failure]


class UnsupportedNotices:
    """Remembers which unsupported-algorithm conditions were already reported."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seen: set[tuple[str, str]] = set()

    def first_time(self, algorithm: str, reason: str) -> bool:
        key = (algorithm, reason)
        with self._lock:
            if key in self._seen:
                return False
            self._seen.add(key)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


def _execute(item: WorkItem, compress: CompressFn) -> Outcome:
    try:
        output_path = compress(item.path, item.algorithm)
        return Success(output_path=output_path, output_size=output_path.stat().st_size)
    except UnsupportedAlgorithmError as exc:
        return Failure(FailureKind.UNSUPPORTED, exc.reason)
    except CompressionConfigError as exc:
        return Failure(FailureKind.CONFIGURATION, str(exc))
    except Exception as exc:
        return Failure(FailureKind.GENERIC, f"{type(exc).__name__}: {exc}")


def _report_failure(item: WorkItem, failure: Failure, notices: UnsupportedNotices) -> None:
    if failure.kind == FailureKind.UNSUPPORTED:
        if notices.first_time(item.algorithm.name, failure.detail):
            logger.warning(f"{item.algorithm.name} compression unavailable: {failure.detail}")
        return
    logger.error(f"Failed to compress {item.asset.name} with {item.algorithm.name}: {failure.detail}")


def run_work_items(
    items: Sequence[WorkItem],
    concurrency: int,
    *,
    compress: CompressFn = compress_file,
    progress: ProgressCallback = None,
) -> List[Outcome]:
    """Run every work item with at most ``concurrency`` in flight at once.

    Returns outcomes aligned with ``items``. Failures never cancel other
    items and the call only returns once every item is terminal.
    """

    if concurrency < 1:
        raise ValueError(f"concurrency must be a positive integer, got {concurrency}")

    total = len(items)
    outcomes: List[Optional[Outcome]] = [None] * total
    notices = UnsupportedNotices()
    if progress:
        progress(0, total)
    if not items:
        return []

    done = 0
    with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="compress") as executor:
        futures = {executor.submit(_execute, item, compress): index for index, item in enumerate(items)}
        for completed in as_completed(futures):
            index = futures[completed]
            outcome = completed.result()
            outcomes[index] = outcome
            if isinstance(outcome, Failure):
                _report_failure(items[index], outcome, notices)
            done += 1
            if progress:
                progress(done, total)

    return [outcome for outcome in outcomes if outcome is not None]
