"""Value types shared across the compression stages."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Asset:
    """One build output file, relative to the output directory."""

    name: str
    size: int


@dataclass(frozen=True)
class EnvironmentContext:
    environment_name: str
