from __future__ import annotations

import logging
import shutil
from pathlib import Path

import pytest

from asset_compress import codecs
from asset_compress.config import CompressionOptions
from asset_compress.engine import (
    RunStatus,
    load_stats_manifest,
    plan_work_items,
    run_environment,
    scan_assets,
)
from asset_compress.models import Asset

_SAMPLE = b"export function greet(name) { return `hello ${name}`; }\n"


def _write_asset(root: Path, name: str, size: int) -> Asset:
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    repeats = size // len(_SAMPLE) + 1
    path.write_bytes((_SAMPLE * repeats)[:size])
    return Asset(name=name, size=size)


def _snapshot_rows(summary) -> list[tuple[str, dict[str, int]]]:
    return [(row.asset.name, dict(row.sizes)) for row in summary.report.rows]


def test_compresses_asset_above_threshold(tmp_path: Path) -> None:
    asset = _write_asset(tmp_path, "a.js", 2000)

    summary = run_environment(tmp_path, [asset], CompressionOptions(algorithms=["gzip"], threshold=1000))

    assert summary.status == RunStatus.COMPLETED
    assert _snapshot_rows(summary)[0][0] == "a.js"
    gzip_size = summary.report.rows[0].sizes["gzip"]
    assert gzip_size < 2000
    assert (tmp_path / "a.js.gz").stat().st_size == gzip_size
    assert summary.report.totals == {"base": 2000, "gzip": gzip_size}


def test_asset_below_threshold_is_not_compressed(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    asset = _write_asset(tmp_path, "a.js", 500)

    with caplog.at_level(logging.INFO, logger="asset_compress"):
        summary = run_environment(tmp_path, [asset], CompressionOptions(threshold=1000))

    assert summary.status == RunStatus.NOTHING_TO_COMPRESS
    assert summary.report is None
    assert not (tmp_path / "a.js.gz").exists()
    assert any("nothing to compress" in record.getMessage() for record in caplog.records)


def test_include_pattern_limits_compressed_assets(tmp_path: Path) -> None:
    assets = [_write_asset(tmp_path, "a.svg", 2000), _write_asset(tmp_path, "b.txt", 2000)]
    options = CompressionOptions(algorithms=["gzip"], include=[{"pattern": r"\.svg$"}])

    summary = run_environment(tmp_path, assets, options)

    assert [name for name, _ in _snapshot_rows(summary)] == ["a.svg"]
    assert (tmp_path / "a.svg.gz").exists()
    assert not (tmp_path / "b.txt.gz").exists()


def test_unsupported_algorithm_warns_once(
    tmp_path: Path, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(codecs, "zstandard", None)
    assets = [_write_asset(tmp_path, f"chunk-{index}.js", 1500) for index in range(5)]

    with caplog.at_level(logging.WARNING, logger="asset_compress"):
        summary = run_environment(tmp_path, assets, CompressionOptions(algorithms=["gzip", "zstd"], concurrency=3))

    warnings = [record for record in caplog.records if record.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "zstd" in warnings[0].getMessage()
    assert len(summary.failures) == 5
    rows = _snapshot_rows(summary)
    assert [name for name, _ in rows] == [asset.name for asset in assets]
    assert all(set(sizes) == {"gzip"} for _, sizes in rows)
    assert not list(tmp_path.glob("*.zst"))


def test_empty_algorithms_skip_the_run(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    asset = _write_asset(tmp_path, "a.js", 2000)

    with caplog.at_level(logging.INFO, logger="asset_compress"):
        summary = run_environment(tmp_path, [asset], CompressionOptions(algorithms=[]))

    assert summary.status == RunStatus.NO_ALGORITHMS
    assert any("skipping" in record.getMessage() for record in caplog.records)
    assert sorted(path.name for path in tmp_path.iterdir()) == ["a.js"]
    assert not any("compressed in" in record.getMessage() for record in caplog.records)


def test_base_total_counts_only_assets_with_a_success(tmp_path: Path) -> None:
    good = _write_asset(tmp_path, "good.js", 3000)
    missing = Asset(name="missing.js", size=4000)

    summary = run_environment(tmp_path, [good, missing], CompressionOptions(algorithms=["gzip", "brotli"]))

    assert [name for name, _ in _snapshot_rows(summary)] == ["good.js"]
    assert summary.report.totals["base"] == 3000
    assert len(summary.failures) == 2


def test_concurrency_does_not_change_results(tmp_path: Path) -> None:
    serial_dir = tmp_path / "serial"
    assets = [_write_asset(serial_dir, f"static/{index}.js", 1000 + index * 250) for index in range(12)]
    parallel_dir = tmp_path / "parallel"
    shutil.copytree(serial_dir, parallel_dir)

    serial = run_environment(serial_dir, assets, CompressionOptions(algorithms=["gzip", "brotli"], concurrency=1))
    parallel = run_environment(parallel_dir, assets, CompressionOptions(algorithms=["gzip", "brotli"], concurrency=6))

    assert _snapshot_rows(serial) == _snapshot_rows(parallel)
    assert serial.report.totals == parallel.report.totals


def test_repeated_runs_produce_identical_totals(tmp_path: Path) -> None:
    assets = [_write_asset(tmp_path, name, 5000) for name in ("a.js", "b.css", "c.html")]
    options = CompressionOptions(algorithms=["gzip", "brotli"])

    first = run_environment(tmp_path, assets, options)
    second = run_environment(tmp_path, assets, options)

    assert first.report.totals == second.report.totals


def test_disabled_flag_and_predicate(tmp_path: Path) -> None:
    asset = _write_asset(tmp_path, "a.js", 2000)

    assert run_environment(tmp_path, [asset], CompressionOptions(disabled=True)).status == RunStatus.DISABLED
    options = CompressionOptions(disabled=lambda ctx: ctx.environment_name == "node")
    assert run_environment(tmp_path, [asset], options, "node").status == RunStatus.DISABLED
    assert not (tmp_path / "a.js.gz").exists()
    assert run_environment(tmp_path, [asset], options, "web").status == RunStatus.COMPLETED


def test_no_assets_and_nothing_compressed(tmp_path: Path) -> None:
    assert run_environment(tmp_path, [], CompressionOptions()).status == RunStatus.NO_ASSETS

    summary = run_environment(tmp_path, [Asset("ghost.js", 100)], CompressionOptions(algorithms=["gzip"]))
    assert summary.status == RunStatus.NOTHING_COMPRESSED
    assert summary.report.is_empty


def test_report_is_logged_when_enabled(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    asset = _write_asset(tmp_path, "a.js", 2000)

    with caplog.at_level(logging.INFO, logger="asset_compress"):
        run_environment(tmp_path, [asset], CompressionOptions(algorithms=["gzip"]), "web")
    logged = "\n".join(record.getMessage() for record in caplog.records)
    assert "compressed in" in logged
    assert "File (web)" in logged

    caplog.clear()
    with caplog.at_level(logging.INFO, logger="asset_compress"):
        run_environment(tmp_path, [asset], CompressionOptions(algorithms=["gzip"], print_result=False), "web")
    logged = "\n".join(record.getMessage() for record in caplog.records)
    assert "compressed in" in logged
    assert "File (web)" not in logged


def test_plan_creates_one_item_per_asset_and_algorithm(tmp_path: Path) -> None:
    assets = [Asset("a.js", 10), Asset("b.png", 10), Asset("c.css", 0)]
    options = CompressionOptions(algorithms=["gzip", "brotli", "zstd"])

    items = plan_work_items(tmp_path, assets, options)

    assert [(item.asset.name, item.algorithm.name) for item in items] == [
        ("a.js", "gzip"),
        ("a.js", "brotli"),
        ("a.js", "zstd"),
    ]
    assert items[0].path == tmp_path / "a.js"


def test_scan_assets_skips_compressed_siblings(tmp_path: Path) -> None:
    _write_asset(tmp_path, "static/js/index.js", 100)
    _write_asset(tmp_path, "index.html", 50)
    (tmp_path / "index.html.gz").write_bytes(b"gz")
    (tmp_path / "static" / "js" / "index.js.br").write_bytes(b"br")

    assets = scan_assets(tmp_path)

    assert assets == [Asset("index.html", 50), Asset("static/js/index.js", 100)]


def test_load_stats_manifest(tmp_path: Path) -> None:
    manifest = tmp_path / "stats.json"
    manifest.write_text('{"outputPath": "/srv/dist", "assets": [{"name": "index.js", "size": 12, "chunks": []}]}')

    output_path, assets = load_stats_manifest(manifest)

    assert output_path == Path("/srv/dist")
    assert assets == [Asset("index.js", 12)]
