"""Errors raised by the codec layer."""

from __future__ import annotations


class CompressionError(RuntimeError):
    """Base class for codec failures that are not plain I/O errors."""


class UnsupportedAlgorithmError(CompressionError):
    """Raised when a known algorithm cannot run in the current runtime."""

    def __init__(self, algorithm: str, reason: str) -> None:
        super().__init__(reason)
        self.algorithm = algorithm
        self.reason = reason


class CompressionConfigError(CompressionError, ValueError):
    """Raised when an algorithm spec cannot be turned into a codec."""


class UnknownAlgorithmError(CompressionConfigError):
    def __init__(self, algorithm: str) -> None:
        super().__init__(f"Unknown compression algorithm '{algorithm}'")
        self.algorithm = algorithm


class CodecOptionsError(CompressionConfigError):
    def __init__(self, algorithm: str, detail: str) -> None:
        super().__init__(f"Invalid options for {algorithm}: {detail}")
        self.algorithm = algorithm
