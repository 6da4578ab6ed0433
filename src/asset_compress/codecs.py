"""Streaming file codecs for gzip, brotli and zstd.

Each codec reads the source file in fixed-size chunks and writes the
compressed stream next to it, so memory use does not grow with the asset.
The brotli and zstd backends are optional at runtime; when their library is
missing the codec raises :class:`UnsupportedAlgorithmError` instead of a
generic failure.
"""

from __future__ import annotations

import gzip
import platform
from functools import partial
from pathlib import Path
from typing import Any, BinaryIO, Dict, Mapping, Optional

from .config import COMPRESSED_FILE_EXTENSIONS, SUPPORTED_ALGORITHMS, AlgorithmSpec
from .errors import (
    CodecOptionsError,
    CompressionConfigError,
    UnknownAlgorithmError,
    UnsupportedAlgorithmError,
)

try:
    import brotli
except ImportError:  # pragma: no cover - depends on installed packages
    brotli = None

try:
    import zstandard
except ImportError:  # pragma: no cover - depends on installed packages
    zstandard = None

DEFAULT_CHUNK_SIZE = 64 * 1024


def _check_keys(algorithm: str, options: Mapping[str, Any], allowed: set[str]) -> None:
    unknown = sorted(set(options) - allowed)
    if unknown:
        raise CodecOptionsError(algorithm, f"unknown option(s) {', '.join(unknown)}")


def _chunk_size(algorithm: str, options: Mapping[str, Any]) -> int:
    chunk_size = int(options.get("chunk_size", DEFAULT_CHUNK_SIZE))
    if chunk_size < 1:
        raise CodecOptionsError(algorithm, f"chunk_size must be a positive integer, got {chunk_size}")
    return chunk_size


def _read_chunks(src: BinaryIO, chunk_size: int):
    return iter(partial(src.read, chunk_size), b"")


class _GzipCodec:
    name = "gzip"
    _allowed = {"level", "chunk_size"}

    def __init__(self, options: Mapping[str, Any]) -> None:
        _check_keys(self.name, options, self._allowed)
        self.level = int(options.get("level", 6))
        if not 0 <= self.level <= 9:
            raise CodecOptionsError(self.name, f"level must be between 0 and 9, got {self.level}")
        self.chunk_size = _chunk_size(self.name, options)

    def copy(self, src: BinaryIO, dst: BinaryIO) -> None:
        # empty filename and zero mtime keep the output reproducible
        with gzip.GzipFile(filename="", mode="wb", fileobj=dst, compresslevel=self.level, mtime=0) as stream:
            for chunk in _read_chunks(src, self.chunk_size):
                stream.write(chunk)


class _BrotliCodec:
    name = "brotli"
    _allowed = {"quality", "lgwin", "lgblock", "mode", "chunk_size"}

    def __init__(self, options: Mapping[str, Any]) -> None:
        _check_keys(self.name, options, self._allowed)
        modes = {
            "generic": brotli.MODE_GENERIC,
            "text": brotli.MODE_TEXT,
            "font": brotli.MODE_FONT,
        }
        mode_name = str(options.get("mode", "generic")).lower()
        if mode_name not in modes:
            raise CodecOptionsError(self.name, f"mode must be one of {', '.join(modes)}, got '{mode_name}'")
        self.params = {
            "mode": modes[mode_name],
            "quality": int(options.get("quality", 11)),
            "lgwin": int(options.get("lgwin", 22)),
            "lgblock": int(options.get("lgblock", 0)),
        }
        self.chunk_size = _chunk_size(self.name, options)
        try:
            brotli.Compressor(**self.params)
        except brotli.error as exc:
            raise CodecOptionsError(self.name, str(exc)) from exc

    def copy(self, src: BinaryIO, dst: BinaryIO) -> None:
        compressor = brotli.Compressor(**self.params)
        for chunk in _read_chunks(src, self.chunk_size):
            dst.write(compressor.process(chunk))
        dst.write(compressor.finish())


class _ZstdCodec:
    name = "zstd"
    _allowed = {"level", "threads", "write_checksum", "write_content_size", "chunk_size"}

    def __init__(self, options: Mapping[str, Any]) -> None:
        _check_keys(self.name, options, self._allowed)
        self.params = {
            "level": int(options.get("level", 3)),
            "threads": int(options.get("threads", 0)),
            "write_checksum": bool(options.get("write_checksum", False)),
            "write_content_size": bool(options.get("write_content_size", True)),
        }
        self.chunk_size = _chunk_size(self.name, options)
        try:
            zstandard.ZstdCompressor(**self.params)
        except (zstandard.ZstdError, ValueError) as exc:
            raise CodecOptionsError(self.name, str(exc)) from exc

    def copy(self, src: BinaryIO, dst: BinaryIO) -> None:
        compressor = zstandard.ZstdCompressor(**self.params)
        compressor.copy_stream(src, dst, read_size=self.chunk_size, write_size=self.chunk_size)


_CODECS = {
    "gzip": _GzipCodec,
    "brotli": _BrotliCodec,
    "zstd": _ZstdCodec,
}


def unsupported_reason(name: str) -> Optional[str]:
    """Return why a known algorithm cannot run here, or ``None`` if it can."""

    runtime = f"{platform.python_implementation()} {platform.python_version()}"
    if name == "brotli" and brotli is None:
        return f"Brotli is not available: the 'brotli' package is not installed for {runtime}."
    if name == "zstd" and zstandard is None:
        return f"Zstd is not available: the 'zstandard' package is not installed for {runtime}."
    return None


def available_algorithms() -> Dict[str, Optional[str]]:
    return {name: unsupported_reason(name) for name in SUPPORTED_ALGORITHMS}


def output_path_for(input_path: Path, algorithm: AlgorithmSpec) -> Path:
    extension = COMPRESSED_FILE_EXTENSIONS.get(algorithm.name)
    if extension is None:
        raise UnknownAlgorithmError(algorithm.name)
    return input_path.with_name(input_path.name + extension)


def compress_file(input_path: Path, algorithm: AlgorithmSpec) -> Path:
    """Compress ``input_path`` into a sibling file and return its path.

    The caller measures the output after this returns; by then every handle
    is closed and the stream fully flushed.
    """

    output_path = output_path_for(input_path, algorithm)
    reason = unsupported_reason(algorithm.name)
    if reason is not None:
        raise UnsupportedAlgorithmError(algorithm.name, reason)
    try:
        codec = _CODECS[algorithm.name](algorithm.options)
    except CompressionConfigError:
        raise
    except (TypeError, ValueError) as exc:
        raise CodecOptionsError(algorithm.name, str(exc)) from exc

    with input_path.open("rb") as src:
        try:
            with output_path.open("wb") as dst:
                codec.copy(src, dst)
        except BaseException:
            output_path.unlink(missing_ok=True)
            raise
    return output_path
