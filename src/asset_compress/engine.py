"""Per-environment compression run: filter, schedule, aggregate, report."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .codecs import compress_file
from .config import COMPRESSED_FILE_EXTENSIONS, CompressionOptions
from .filters import should_compress
from .models import Asset
from .report import format_duration, render_report
from .results import ResultAggregator, RunReport
from .scheduler import CompressFn, Failure, Outcome, ProgressCallback, WorkItem, run_work_items

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    DISABLED = "disabled"
    NO_ALGORITHMS = "no_algorithms"
    NO_ASSETS = "no_assets"
    NOTHING_TO_COMPRESS = "nothing_to_compress"
    NOTHING_COMPRESSED = "nothing_compressed"
    COMPLETED = "completed"


@dataclass
class RunSummary:
    status: RunStatus
    environment_name: str = ""
    work_items: List[WorkItem] = field(default_factory=list)
    outcomes: List[Outcome] = field(default_factory=list)
    report: Optional[RunReport] = None
    elapsed_seconds: float = 0.0

    @property
    def failures(self) -> List[Tuple[WorkItem, Failure]]:
        return [
            (item, outcome)
            for item, outcome in zip(self.work_items, self.outcomes)
            if isinstance(outcome, Failure)
        ]


# ---------------------------------------------------------------------------
# Asset discovery
# ---------------------------------------------------------------------------


def scan_assets(output_dir: Path) -> List[Asset]:
    """List files under ``output_dir`` that are not compressed siblings."""

    skip = set(COMPRESSED_FILE_EXTENSIONS.values())
    assets: List[Asset] = []
    for path in sorted(output_dir.rglob("*")):
        if not path.is_file() or path.suffix in skip:
            continue
        assets.append(Asset(name=path.relative_to(output_dir).as_posix(), size=path.stat().st_size))
    return assets


def load_stats_manifest(path: Path) -> Tuple[Optional[Path], List[Asset]]:
    """Read a build-stats JSON export with ``outputPath`` and ``assets``."""

    data = json.loads(path.read_text())
    if not isinstance(data, dict):
        raise ValueError(f"Stats manifest {path} must contain a JSON object")
    output_path = data.get("outputPath")
    assets = [Asset(name=str(entry["name"]), size=int(entry["size"])) for entry in data.get("assets") or []]
    return (Path(output_path) if output_path else None, assets)


# ---------------------------------------------------------------------------
# Planning & execution
# ---------------------------------------------------------------------------


def plan_work_items(output_dir: Path, assets: Sequence[Asset], options: CompressionOptions) -> List[WorkItem]:
    items: List[WorkItem] = []
    for asset in assets:
        if not should_compress(asset, options.include, options.exclude, options.threshold):
            continue
        path = output_dir / asset.name
        for algorithm in options.algorithms:
            items.append(WorkItem(asset=asset, algorithm=algorithm, path=path))
    return items


def run_environment(
    output_dir: Path,
    assets: Sequence[Asset],
    options: CompressionOptions,
    environment_name: str = "",
    *,
    compress: CompressFn = compress_file,
    progress: ProgressCallback = None,
) -> RunSummary:
    """Compress one environment's assets and log the resulting report."""

    if options.disabled is True:
        logger.debug("compression is disabled")
        return RunSummary(RunStatus.DISABLED, environment_name)
    if not options.algorithms:
        logger.warning("empty algorithms, skipping")
        return RunSummary(RunStatus.NO_ALGORITHMS, environment_name)
    if options.is_disabled_for(environment_name):
        logger.debug(f"compression is disabled for environment '{environment_name}'")
        return RunSummary(RunStatus.DISABLED, environment_name)
    if not assets:
        logger.info("no assets to process")
        return RunSummary(RunStatus.NO_ASSETS, environment_name)

    items = plan_work_items(output_dir, assets, options)
    if not items:
        logger.info("nothing to compress")
        return RunSummary(RunStatus.NOTHING_TO_COMPRESS, environment_name)

    logger.info(f"compression started: {len(items)} task(s), concurrency {options.concurrency}")
    started = time.monotonic()
    outcomes = run_work_items(items, options.concurrency, compress=compress, progress=progress)
    elapsed = time.monotonic() - started

    aggregator = ResultAggregator()
    for item, outcome in zip(items, outcomes):
        aggregator.record(item.asset, item.algorithm.name, outcome)
    report = aggregator.snapshot()

    summary = RunSummary(
        status=RunStatus.COMPLETED,
        environment_name=environment_name,
        work_items=items,
        outcomes=outcomes,
        report=report,
        elapsed_seconds=elapsed,
    )
    if report.is_empty:
        logger.info("nothing was compressed")
        summary.status = RunStatus.NOTHING_COMPRESSED
        return summary

    message = f"compressed in {format_duration(elapsed)}"
    if options.print_result:
        message += "\n" + render_report(report, options.algorithm_names(), environment_name or None)
    logger.info(message)
    return summary
