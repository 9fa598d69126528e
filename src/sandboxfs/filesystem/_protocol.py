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

"""Native provider protocols consumed by :class:`sandboxfs.session.Session`.

A native provider is the host environment's sandboxed filesystem capability.
Every primitive is a coroutine that either returns its value or raises.
Providers should raise the :mod:`sandboxfs.errors` taxonomy where it applies
(``NotFoundError``, ``AlreadyExistsError``, ``UnsupportedEncodingError``...);
anything else is wrapped by the session in ``NativeOperationError``.

Implementations:

- ``InMemoryProvider``: In-memory trees, one per filesystem kind
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from ._types import (
    Entry,
    EntryOptions,
    FileContents,
    FileObject,
    FileSystemHandle,
    FileSystemKind,
    ReadEncoding,
)


@runtime_checkable
class DirectoryReader(Protocol):
    """Paginated reader over a directory's children."""

    async def read_entries(self) -> Sequence[Entry]:
        """Return the next batch of entries.

        An empty batch signals that the listing is complete. Batch size and
        order are up to the provider.
        """
        ...


@runtime_checkable
class FileWriter(Protocol):
    """Writer bound to a single file entry."""

    @property
    def entry(self) -> Entry:
        """The file this writer targets."""
        ...

    async def truncate(self, length: int) -> None:
        """Shorten the file to ``length`` bytes."""
        ...

    async def write(self, content: bytes) -> int:
        """Write ``content`` at the current position and return bytes written."""
        ...


@runtime_checkable
class QuotaProvider(Protocol):
    """Optional quota negotiation capability.

    Providers that do not implement it grant every request in full.
    """

    async def request_quota(self, kind: FileSystemKind, size: int) -> int:
        """Ask for ``size`` bytes of ``kind`` storage and return the granted size.

        Raises:
            QuotaDeniedError: The request was refused.
        """
        ...


@runtime_checkable
class NativeProvider(Protocol):
    """Sandboxed filesystem primitives.

    Paths handed to ``get_directory_entry`` and ``get_file_entry`` are
    relative to ``parent`` unless they start with ``/``, in which case they
    are relative to the root of ``parent``'s filesystem.

    Example::

        handle = await provider.acquire_file_system(FileSystemKind.TEMPORARY, 0)
        docs = await provider.get_directory_entry(
            handle.root, "docs", EntryOptions(create=True)
        )
    """

    async def acquire_file_system(
        self, kind: FileSystemKind, size: int
    ) -> FileSystemHandle:
        """Return the filesystem of ``kind`` sized to ``size`` bytes.

        Raises:
            FilesystemUnavailableError: No filesystem can be provided.
        """
        ...

    async def resolve_entry(self, uri: str) -> Entry:
        """Resolve a normalized ``scheme:///path`` URI to an entry.

        Raises:
            NotFoundError: Nothing exists at the URI.
            EntryResolutionError: The URI cannot be handled by this provider.
        """
        ...

    async def get_directory_entry(
        self, parent: Entry, path: str, options: EntryOptions
    ) -> Entry:
        """Look up (or create) a directory.

        Raises:
            NotFoundError: Missing and ``options.create`` is False.
            AlreadyExistsError: Present and ``options.exclusive`` is True.
        """
        ...

    async def get_file_entry(
        self, parent: Entry, path: str, options: EntryOptions
    ) -> Entry:
        """Look up (or create) a file. Raises like ``get_directory_entry``."""
        ...

    async def open_file(self, entry: Entry) -> FileObject:
        """Return a snapshot of the file's metadata and content."""
        ...

    async def read_as(self, file: FileObject, encoding: ReadEncoding | str) -> FileContents:
        """Read ``file`` in the requested representation.

        Raises:
            UnsupportedEncodingError: ``encoding`` is not recognized.
        """
        ...

    async def create_writer(self, entry: Entry) -> FileWriter:
        """Return a writer for an existing file."""
        ...

    async def write(self, writer: FileWriter, content: FileContents) -> None:
        """Replace the writer's file content with ``content``.

        The file is truncated to zero length first; text is encoded as UTF-8.
        """
        ...

    async def copy(
        self, entry: Entry, target_directory: Entry, new_name: str | None = None
    ) -> Entry:
        """Copy ``entry`` (recursively for directories) into ``target_directory``."""
        ...

    async def move(
        self, entry: Entry, target_directory: Entry, new_name: str | None = None
    ) -> Entry:
        """Move ``entry`` into ``target_directory``, optionally renaming it."""
        ...

    async def remove(self, entry: Entry, *, recursive: bool = False) -> None:
        """Remove ``entry``.

        Raises:
            NativeOperationError: A non-empty directory was removed without
                ``recursive``, or the root was targeted.
        """
        ...

    async def create_reader(self, entry: Entry) -> DirectoryReader:
        """Return a paginated reader over a directory's children."""
        ...


__all__ = [
    "DirectoryReader",
    "FileWriter",
    "NativeProvider",
    "QuotaProvider",
]
