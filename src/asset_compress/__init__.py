"""Post-build asset compression package."""

from .config import AlgorithmSpec, CompressionOptions, load_options
from .engine import RunStatus, plan_work_items, run_environment, scan_assets
from .models import Asset

__all__ = [
    "AlgorithmSpec",
    "Asset",
    "CompressionOptions",
    "RunStatus",
    "load_options",
    "plan_work_items",
    "run_environment",
    "scan_assets",
]
