"""Tabular summary of a compression run."""

from __future__ import annotations

import io
from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .results import BASE_COLUMN, RunReport

NOT_COMPRESSED = "-"
_SIZE_COLUMN_WIDTH = 12


def bytes_to_human(num_bytes: int) -> str:
    for suffix, threshold in (
        ("TiB", 1024 ** 4),
        ("GiB", 1024 ** 3),
        ("MiB", 1024 ** 2),
        ("KiB", 1024),
    ):
        if num_bytes >= threshold:
            return f"{num_bytes / threshold:.2f} {suffix}"
    return f"{num_bytes} B"


def format_duration(seconds: float) -> str:
    return f"{seconds:.2f}s"


def _size_cell(size: Optional[int]) -> str:
    return NOT_COMPRESSED if size is None else bytes_to_human(size)


def _file_header(environment_name: Optional[str]) -> str:
    return f"File ({environment_name})" if environment_name else "File"


def build_report_table(
    report: RunReport,
    algorithm_order: Sequence[str],
    environment_name: Optional[str] = None,
) -> Table:
    """One row per asset, one column per configured algorithm, then totals."""

    table = Table(box=box.SIMPLE_HEAD, show_edge=False, pad_edge=False)
    table.add_column(_file_header(environment_name), no_wrap=True)
    table.add_column(BASE_COLUMN, justify="right", no_wrap=True, min_width=_SIZE_COLUMN_WIDTH)
    for name in algorithm_order:
        table.add_column(name, justify="right", no_wrap=True, min_width=_SIZE_COLUMN_WIDTH)

    for row in report.rows:
        cells = [row.asset.name, bytes_to_human(row.asset.size)]
        cells.extend(_size_cell(row.sizes.get(name)) for name in algorithm_order)
        table.add_row(*cells)

    table.add_section()
    totals = [Text("Total:", style="bold"), Text(_size_cell(report.totals.get(BASE_COLUMN, 0)), style="bold")]
    totals.extend(Text(_size_cell(report.totals.get(name)), style="bold") for name in algorithm_order)
    table.add_row(*totals)
    return table


def render_report(
    report: RunReport,
    algorithm_order: Sequence[str],
    environment_name: Optional[str] = None,
) -> str:
    """Render the report table as plain text.

    The console width is derived from the content so long asset names are
    never wrapped or truncated.
    """

    table = build_report_table(report, algorithm_order, environment_name)
    longest_name = max([len(row.asset.name) for row in report.rows] + [len(_file_header(environment_name))])
    width = max(80, longest_name + (len(algorithm_order) + 1) * (_SIZE_COLUMN_WIDTH + 3) + 8)
    buffer = io.StringIO()
    console = Console(file=buffer, width=width, color_system=None, highlight=False, emoji=False)
    console.print(table)
    lines = [line.rstrip() for line in buffer.getvalue().splitlines()]
    return "\n".join(lines)
