# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""In-memory native provider.

This module provides an in-memory implementation of the NativeProvider
protocol, suitable for testing and for hosts without a sandboxed filesystem.

Example usage::

    from sandboxfs.filesystem import InMemoryProvider
    from sandboxfs.session import Session

    session = Session(provider=InMemoryProvider(batch_size=2))
    await session.initialize("temporary", 1024)
    await session.write_file_contents("hello.txt", "hi")
"""

from __future__ import annotations

import asyncio
import base64
import mimetypes
import posixpath
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Final

from ..errors import (
    AlreadyExistsError,
    EntryResolutionError,
    FilesystemUnavailableError,
    NativeOperationError,
    NotFoundError,
    QuotaDeniedError,
)
from ._path import DEFAULT_SCHEME, join_path, resolve_uri
from ._protocol import FileWriter
from ._types import (
    Entry,
    EntryOptions,
    FileContents,
    FileObject,
    FileSystemHandle,
    FileSystemKind,
    ReadEncoding,
    now,
)

if TYPE_CHECKING:
    from ..config import SessionConfig

DEFAULT_BATCH_SIZE: Final[int] = 100
DEFAULT_MEDIA_TYPE: Final[str] = "application/octet-stream"

__all__ = ["DEFAULT_BATCH_SIZE", "InMemoryProvider"]


# ---------------------------------------------------------------------------
# Internal Types
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _InMemoryNode:
    """Internal representation of a file or directory in memory."""

    is_directory: bool
    created_at: datetime
    modified_at: datetime
    content: bytes = b""


def _empty_nodes_dict() -> dict[str, _InMemoryNode]:
    return {}


@dataclass(slots=True)
class _Volume:
    """One filesystem tree keyed by absolute path."""

    kind: FileSystemKind
    nodes: dict[str, _InMemoryNode] = field(default_factory=_empty_nodes_dict)

    def __post_init__(self) -> None:
        # Ensure root directory exists
        timestamp = now()
        self.nodes["/"] = _InMemoryNode(
            is_directory=True, created_at=timestamp, modified_at=timestamp
        )

    def children(self, path: str) -> list[str]:
        return [
            candidate
            for candidate in self.nodes
            if candidate != "/" and posixpath.dirname(candidate) == path
        ]

    def subtree(self, path: str) -> list[str]:
        prefix = path.rstrip("/") + "/"
        return [
            candidate
            for candidate in self.nodes
            if candidate == path or candidate.startswith(prefix)
        ]


class _MemoryDirectoryReader:
    """Hands out a snapshot of a directory's children in fixed-size batches."""

    def __init__(self, entries: Sequence[Entry], batch_size: int) -> None:
        super().__init__()
        self._entries = tuple(entries)
        self._batch_size = batch_size
        self._position = 0

    async def read_entries(self) -> Sequence[Entry]:
        await asyncio.sleep(0)
        batch = self._entries[self._position : self._position + self._batch_size]
        self._position += len(batch)
        return batch


class _MemoryFileWriter:
    """Positioned writer over a single in-memory file."""

    def __init__(self, entry: Entry, node: _InMemoryNode) -> None:
        super().__init__()
        self._entry = entry
        self._node = node
        self._position = 0

    @property
    def entry(self) -> Entry:
        return self._entry

    async def truncate(self, length: int) -> None:
        await asyncio.sleep(0)
        self._node.content = self._node.content[:length]
        self._position = min(self._position, length)
        self._node.modified_at = now()

    async def write(self, content: bytes) -> int:
        await asyncio.sleep(0)
        existing = self._node.content
        end = self._position + len(content)
        self._node.content = existing[: self._position] + content + existing[end:]
        self._position = end
        self._node.modified_at = now()
        return len(content)


# ---------------------------------------------------------------------------
# InMemoryProvider Implementation
# ---------------------------------------------------------------------------


class InMemoryProvider:
    """Native provider backed by in-memory trees.

    One tree exists per filesystem kind and survives across sessions sharing
    the provider. Directory listings are handed out ``batch_size`` entries at
    a time in creation order.

    Native URLs have the form ``<scheme>://<kind>/<path>``. ``resolve_entry``
    reads the kind back from URLs in the provider's own scheme; ``file`` URIs
    (and own-scheme URIs without a kind) resolve against the most recently
    acquired filesystem.

    Args:
        scheme: URL scheme used for ``native_url`` values. ``resolve_entry``
            accepts this scheme and ``file``.
        batch_size: Entries returned per ``read_entries`` call.
        quota_limit: Largest quota granted; ``None`` grants every request.
        kinds: Filesystem kinds this provider can hand out.
        default_kind: Filesystem ``resolve_entry`` uses before any
            filesystem has been acquired.
    """

    def __init__(
        self,
        *,
        scheme: str = "memory",
        batch_size: int = DEFAULT_BATCH_SIZE,
        quota_limit: int | None = None,
        kinds: Iterable[FileSystemKind] = tuple(FileSystemKind),
        default_kind: FileSystemKind = FileSystemKind.PERSISTENT,
    ) -> None:
        super().__init__()
        if batch_size < 1:
            msg = "batch_size must be at least 1."
            raise ValueError(msg)
        self._scheme = scheme
        self._batch_size = batch_size
        self._quota_limit = quota_limit
        self._volumes = {kind: _Volume(kind=kind) for kind in kinds}
        self._active_kind = default_kind

    @classmethod
    def from_config(
        cls,
        config: SessionConfig,
        *,
        scheme: str = "memory",
        quota_limit: int | None = None,
    ) -> InMemoryProvider:
        """Build a provider for ``config``.

        ``config.list_batch_size`` sets the listing batch size (the default
        when unset) and ``config.file_system_kind`` the initial resolution
        volume.
        """
        batch_size = (
            config.list_batch_size
            if config.list_batch_size is not None
            else DEFAULT_BATCH_SIZE
        )
        return cls(
            scheme=scheme,
            batch_size=batch_size,
            quota_limit=quota_limit,
            default_kind=config.file_system_kind,
        )

    @property
    def scheme(self) -> str:
        return self._scheme

    @property
    def batch_size(self) -> int:
        return self._batch_size

    # --- Quota and acquisition ---

    async def request_quota(self, kind: FileSystemKind, size: int) -> int:
        await asyncio.sleep(0)
        if self._quota_limit is not None and size > self._quota_limit:
            msg = (
                f"Requested {size} bytes of {kind} storage; "
                f"at most {self._quota_limit} bytes are available."
            )
            raise QuotaDeniedError(msg)
        return size

    async def acquire_file_system(
        self, kind: FileSystemKind, size: int
    ) -> FileSystemHandle:
        await asyncio.sleep(0)
        volume = self._volumes.get(kind)
        if volume is None:
            msg = f"No {kind} file system is available."
            raise FilesystemUnavailableError(msg)
        self._active_kind = kind
        root = self._entry(volume, "/")
        return FileSystemHandle(name=str(kind), kind=kind, size=size, root=root)

    # --- Entry lookup ---

    async def resolve_entry(self, uri: str) -> Entry:
        await asyncio.sleep(0)
        resolved = resolve_uri(uri)
        if resolved.scheme not in {DEFAULT_SCHEME, self._scheme}:
            msg = f"Unsupported URI scheme: {resolved.scheme!r}"
            raise EntryResolutionError(msg)
        kind, segments = self._active_kind, resolved.segments
        if resolved.scheme == self._scheme and segments:
            named = {str(candidate): candidate for candidate in self._volumes}
            if segments[0] in named:
                kind, segments = named[segments[0]], segments[1:]
        volume = self._volume(kind)
        path = "/" + "/".join(segments)
        if path not in volume.nodes:
            raise NotFoundError(uri)
        return self._entry(volume, path)

    async def get_directory_entry(
        self, parent: Entry, path: str, options: EntryOptions
    ) -> Entry:
        await asyncio.sleep(0)
        return self._lookup(parent, path, options, directory=True)

    async def get_file_entry(
        self, parent: Entry, path: str, options: EntryOptions
    ) -> Entry:
        await asyncio.sleep(0)
        return self._lookup(parent, path, options, directory=False)

    # --- Reading ---

    async def open_file(self, entry: Entry) -> FileObject:
        await asyncio.sleep(0)
        node = self._node(entry, directory=False)
        media_type, _ = mimetypes.guess_type(entry.name)
        return FileObject(
            name=entry.name,
            full_path=entry.full_path,
            size=len(node.content),
            media_type=media_type or DEFAULT_MEDIA_TYPE,
            last_modified=node.modified_at,
            content=node.content,
        )

    async def read_as(
        self, file: FileObject, encoding: ReadEncoding | str
    ) -> FileContents:
        await asyncio.sleep(0)
        match ReadEncoding.parse(encoding):
            case ReadEncoding.TEXT:
                return file.content.decode("utf-8")
            case ReadEncoding.DATA_URL:
                payload = base64.b64encode(file.content).decode("ascii")
                return f"data:{file.media_type};base64,{payload}"
            case ReadEncoding.BINARY_STRING:
                return file.content.decode("latin-1")
            case ReadEncoding.ARRAY_BUFFER:
                return bytes(file.content)

    async def create_reader(self, entry: Entry) -> _MemoryDirectoryReader:
        await asyncio.sleep(0)
        volume = self._volume_of(entry)
        _ = self._node(entry, directory=True)
        children = [self._entry(volume, path) for path in volume.children(entry.full_path)]
        return _MemoryDirectoryReader(children, self._batch_size)

    # --- Writing ---

    async def create_writer(self, entry: Entry) -> _MemoryFileWriter:
        await asyncio.sleep(0)
        return _MemoryFileWriter(entry, self._node(entry, directory=False))

    async def write(self, writer: FileWriter, content: FileContents) -> None:
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        await writer.truncate(0)
        _ = await writer.write(data)

    async def copy(
        self, entry: Entry, target_directory: Entry, new_name: str | None = None
    ) -> Entry:
        await asyncio.sleep(0)
        return self._transfer(entry, target_directory, new_name, keep_source=True)

    async def move(
        self, entry: Entry, target_directory: Entry, new_name: str | None = None
    ) -> Entry:
        await asyncio.sleep(0)
        return self._transfer(entry, target_directory, new_name, keep_source=False)

    async def remove(self, entry: Entry, *, recursive: bool = False) -> None:
        await asyncio.sleep(0)
        volume = self._volume_of(entry)
        node = self._node(entry, directory=entry.is_directory)
        if entry.full_path == "/":
            raise NativeOperationError("Cannot remove the root directory.", operation="remove")
        if node.is_directory and not recursive and volume.children(entry.full_path):
            msg = f"Directory not empty: {entry.full_path}"
            raise NativeOperationError(msg, operation="remove")
        for path in volume.subtree(entry.full_path):
            del volume.nodes[path]

    # --- Helpers ---

    def _volume(self, kind: FileSystemKind) -> _Volume:
        volume = self._volumes.get(kind)
        if volume is None:
            msg = f"No {kind} file system is available."
            raise FilesystemUnavailableError(msg)
        return volume

    def _volume_of(self, entry: Entry) -> _Volume:
        try:
            kind = FileSystemKind.parse(entry.filesystem)
        except ValueError:
            msg = f"Entry belongs to an unknown file system: {entry.filesystem!r}"
            raise NotFoundError(msg) from None
        return self._volume(kind)

    def _node(self, entry: Entry, *, directory: bool) -> _InMemoryNode:
        node = self._volume_of(entry).nodes.get(entry.full_path)
        if node is None:
            raise NotFoundError(entry.full_path)
        _check_type(entry.full_path, node, directory=directory)
        return node

    def _native_url(self, volume: _Volume, path: str) -> str:
        suffix = "" if path == "/" else path
        return f"{self._scheme}://{volume.kind}{suffix}"

    def _entry(self, volume: _Volume, path: str) -> Entry:
        return Entry(
            full_path=path,
            is_directory=volume.nodes[path].is_directory,
            native_url=self._native_url(volume, path),
            filesystem=str(volume.kind),
        )

    def _lookup(
        self, parent: Entry, path: str, options: EntryOptions, *, directory: bool
    ) -> Entry:
        volume = self._volume_of(parent)
        _ = self._node(parent, directory=True)
        target = join_path(parent.full_path, path)
        node = volume.nodes.get(target)
        if node is not None:
            if options.create and options.exclusive:
                raise AlreadyExistsError(target)
            _check_type(target, node, directory=directory)
            return self._entry(volume, target)
        if not options.create:
            raise NotFoundError(target)
        container = volume.nodes.get(posixpath.dirname(target))
        if container is None or not container.is_directory:
            msg = f"Parent directory does not exist: {posixpath.dirname(target)}"
            raise NotFoundError(msg)
        timestamp = now()
        volume.nodes[target] = _InMemoryNode(
            is_directory=directory, created_at=timestamp, modified_at=timestamp
        )
        return self._entry(volume, target)

    def _transfer(
        self,
        entry: Entry,
        target_directory: Entry,
        new_name: str | None,
        *,
        keep_source: bool,
    ) -> Entry:
        operation = "copy" if keep_source else "move"
        volume = self._volume_of(entry)
        target_volume = self._volume_of(target_directory)
        _ = self._node(entry, directory=entry.is_directory)
        _ = self._node(target_directory, directory=True)

        name = new_name if new_name is not None else entry.name
        if not name or "/" in name or name in {".", ".."}:
            msg = f"Invalid entry name: {name!r}"
            raise NativeOperationError(msg, operation=operation)
        source = entry.full_path
        destination = join_path(target_directory.full_path, name)
        if source == "/":
            raise NativeOperationError(
                f"Cannot {operation} the root directory.", operation=operation
            )
        same_volume = volume is target_volume
        if same_volume and destination == source:
            msg = f"Source and destination are the same: {source}"
            raise NativeOperationError(msg, operation=operation)
        if same_volume and destination.startswith(source.rstrip("/") + "/"):
            msg = f"Cannot {operation} {source} into itself."
            raise NativeOperationError(msg, operation=operation)

        existing = target_volume.nodes.get(destination)
        if existing is not None:
            if existing.is_directory != entry.is_directory or (
                existing.is_directory and target_volume.children(destination)
            ):
                raise AlreadyExistsError(destination)
            del target_volume.nodes[destination]

        for path in volume.subtree(source):
            node = volume.nodes[path]
            moved = destination + path[len(source) :]
            target_volume.nodes[moved] = _InMemoryNode(
                is_directory=node.is_directory,
                created_at=node.created_at if not keep_source else now(),
                modified_at=node.modified_at,
                content=node.content,
            )
            if not keep_source:
                del volume.nodes[path]
        return self._entry(target_volume, destination)


def _check_type(path: str, node: _InMemoryNode, *, directory: bool) -> None:
    if directory and not node.is_directory:
        msg = f"Not a directory: {path}"
        raise NativeOperationError(msg, operation="lookup")
    if not directory and node.is_directory:
        msg = f"Is a directory: {path}"
        raise NativeOperationError(msg, operation="lookup")
