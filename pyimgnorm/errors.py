"""Typed decode errors.

Every failure raised by the probe/decoder carries a `DecodeErrorKind` so
callers (and the normalizer's retry branch) can dispatch on the kind instead
of sniffing library exception types.
"""

from __future__ import annotations

from enum import Enum


class DecodeErrorKind(str, Enum):
    UNREADABLE_SOURCE = "unreadable_source"
    UNSUPPORTED_FORMAT = "unsupported_format"
    EMPTY_SOURCE = "empty_source"
    MEMORY_EXHAUSTED = "memory_exhausted"


class DecodeError(Exception):
    """Base class for all probe/decode failures."""

    kind: DecodeErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class UnreadableSourceError(DecodeError):
    """The source could not be opened (missing file, opener/resolver failure)."""

    kind = DecodeErrorKind.UNREADABLE_SOURCE


class UnsupportedFormatError(DecodeError):
    """The data was read but could not be parsed as an image."""

    kind = DecodeErrorKind.UNSUPPORTED_FORMAT


class EmptySourceError(DecodeError):
    """No source variant yielded any data."""

    kind = DecodeErrorKind.EMPTY_SOURCE


class MemoryExhaustedError(DecodeError):
    """Pixel allocation failed during decode. Retryable with a cheaper pixel format."""

    kind = DecodeErrorKind.MEMORY_EXHAUSTED


__all__ = [
    "DecodeError",
    "DecodeErrorKind",
    "EmptySourceError",
    "MemoryExhaustedError",
    "UnreadableSourceError",
    "UnsupportedFormatError",
]
