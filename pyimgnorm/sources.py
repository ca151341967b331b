"""Image sources.

A decode request names exactly one of four source kinds. They form a closed
union (`ImageSource`); `open_source_stream` is the single place that turns a
source into a readable binary stream, and it owns closing that stream.
"""

from __future__ import annotations

import io
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Iterator, Optional, Union
from urllib.parse import unquote, urlparse

from pyimgnorm.errors import EmptySourceError, UnreadableSourceError

logger = logging.getLogger(__name__)

Opener = Callable[[Any], BinaryIO]
Resolver = Callable[[int], bytes]


@dataclass(frozen=True)
class BytesSource:
    data: bytes = field(repr=False)

    def describe(self) -> str:
        return f"bytes[{len(self.data)}]"


@dataclass(frozen=True)
class FileSource:
    path: Union[str, os.PathLike]

    def describe(self) -> str:
        return f"path={str(self.path)!r}"


@dataclass(frozen=True)
class LocatorSource:
    """An opaque content locator plus the capability that opens it."""

    locator: Any
    opener: Opener = field(repr=False)

    def describe(self) -> str:
        return f"locator={self.locator!r}"


@dataclass(frozen=True)
class ResourceSource:
    """A bundled resource id plus the capability that resolves it to bytes."""

    resource_id: int
    resolver: Resolver = field(repr=False)

    def describe(self) -> str:
        return f"resource={self.resource_id}"


ImageSource = Union[BytesSource, FileSource, LocatorSource, ResourceSource]


def describe_source(source: ImageSource) -> str:
    return source.describe() if hasattr(source, "describe") else repr(source)


def source_from_candidates(
    *,
    data: Optional[bytes] = None,
    path: Union[str, os.PathLike, None] = None,
    locator: Any = None,
    opener: Optional[Opener] = None,
    resource_id: int = 0,
    resolver: Optional[Resolver] = None,
) -> ImageSource:
    """Pick one source out of several optional candidates.

    Precedence is bytes, then locator, then resource id, then path. When every
    candidate is empty, `EmptySourceError` is raised before any decoder runs.
    """

    if data:
        return BytesSource(bytes(data))
    if locator is not None:
        return LocatorSource(locator, opener or open_locator)
    if resource_id > 0:
        if resolver is None:
            raise ValueError("resource_id requires a resolver")
        return ResourceSource(int(resource_id), resolver)
    if path is not None and str(path):
        return FileSource(path)
    raise EmptySourceError("No image source provided: bytes, path, locator and resource id are all empty.")


def open_locator(locator: Any) -> BinaryIO:
    """Default opener: `file://` URIs and plain filesystem paths."""

    if isinstance(locator, os.PathLike):
        return open(locator, "rb")

    text = str(locator)
    parsed = urlparse(text)
    if parsed.scheme == "file":
        return open(unquote(parsed.path), "rb")
    if parsed.scheme and len(parsed.scheme) > 1:
        raise ValueError(f"Unsupported locator scheme: {parsed.scheme!r}")
    return open(text, "rb")


def _guard_empty_stream(stream: BinaryIO, source: ImageSource) -> BinaryIO:
    try:
        return _check_not_empty(stream, source)
    except (OSError, AttributeError) as exc:
        raise UnreadableSourceError(f"Unable to read {describe_source(source)}: {exc}") from exc


def _check_not_empty(stream: BinaryIO, source: ImageSource) -> BinaryIO:
    if stream.seekable():
        pos = stream.tell()
        head = stream.read(1)
        stream.seek(pos)
        if not head:
            raise EmptySourceError(f"Source yielded no data: {describe_source(source)}")
        return stream

    # Non-seekable streams are buffered in full; PIL would do the same.
    data = stream.read()
    if not data:
        raise EmptySourceError(f"Source yielded no data: {describe_source(source)}")
    return io.BytesIO(data)


@contextmanager
def open_source_stream(source: ImageSource) -> Iterator[BinaryIO]:
    """Yield a readable binary stream for `source`.

    Raises
    ------
    EmptySourceError
        The variant carries no data (empty bytes, empty path, id <= 0, empty stream).
    UnreadableSourceError
        The file, opener or resolver failed.
    """

    if isinstance(source, BytesSource):
        if not source.data:
            raise EmptySourceError("Empty byte buffer.")
        yield io.BytesIO(source.data)

    elif isinstance(source, FileSource):
        if not str(source.path):
            raise EmptySourceError("Empty file path.")
        path = Path(source.path)
        try:
            handle = path.open("rb")
        except OSError as exc:
            raise UnreadableSourceError(f"Unable to open image file: {path}") from exc
        with handle:
            yield _guard_empty_stream(handle, source)

    elif isinstance(source, LocatorSource):
        if source.locator is None:
            raise EmptySourceError("Empty content locator.")
        try:
            stream = source.opener(source.locator)
        except Exception as exc:  # noqa: BLE001 - opener is a caller-supplied capability
            raise UnreadableSourceError(f"Unable to open locator {source.locator!r}: {exc}") from exc
        if stream is None:
            raise UnreadableSourceError(f"Opener returned no stream for {source.locator!r}")
        try:
            yield _guard_empty_stream(stream, source)
        finally:
            stream.close()
            logger.debug("Closed stream for %s", describe_source(source))

    elif isinstance(source, ResourceSource):
        if source.resource_id <= 0:
            raise EmptySourceError(f"Invalid resource id: {source.resource_id}")
        try:
            data = source.resolver(source.resource_id)
        except Exception as exc:  # noqa: BLE001 - resolver is a caller-supplied capability
            raise UnreadableSourceError(f"Unable to resolve resource {source.resource_id}: {exc}") from exc
        if not data:
            raise EmptySourceError(f"Resource {source.resource_id} is empty.")
        yield io.BytesIO(data)

    else:
        raise TypeError(f"Unsupported image source type: {type(source).__name__}")


class ResourceTable:
    """In-memory resource registry usable as a `ResourceSource` resolver.

    Entries are either raw bytes or file paths (read lazily on lookup).
    """

    def __init__(self, entries: Optional[Dict[int, Union[bytes, str, os.PathLike]]] = None) -> None:
        self._entries: Dict[int, Union[bytes, str, os.PathLike]] = {}
        for resource_id, value in (entries or {}).items():
            self.register(resource_id, value)

    def register(self, resource_id: int, value: Union[bytes, str, os.PathLike]) -> int:
        if int(resource_id) <= 0:
            raise ValueError(f"resource_id must be > 0, got {resource_id}")
        self._entries[int(resource_id)] = value
        return int(resource_id)

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __call__(self, resource_id: int) -> bytes:
        try:
            value = self._entries[int(resource_id)]
        except KeyError:
            raise KeyError(f"Unknown resource id: {resource_id}") from None
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        return Path(value).read_bytes()

    def source(self, resource_id: int) -> ResourceSource:
        return ResourceSource(int(resource_id), self)


__all__ = [
    "BytesSource",
    "FileSource",
    "ImageSource",
    "LocatorSource",
    "ResourceSource",
    "ResourceTable",
    "describe_source",
    "open_locator",
    "open_source_stream",
    "source_from_candidates",
]
