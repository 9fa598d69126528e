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

"""Core filesystem types exchanged between sessions and native providers.

All value types are immutable frozen dataclasses. Types are organized into:

- **Filesystem types**: ``FileSystemKind``, ``FileSystemHandle``
- **Entry types**: ``Entry``, ``EntryOptions``, ``FileObject``
- **Read types**: ``ReadEncoding``, ``FileContents``

Constants:

- ``CREATE_IF_MISSING``: Options used by writes when the caller passes none
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Final

from ..errors import UnsupportedEncodingError


class FileSystemKind(StrEnum):
    """Lifetime class of a sandboxed filesystem."""

    PERSISTENT = "persistent"
    TEMPORARY = "temporary"

    @classmethod
    def parse(cls, value: FileSystemKind | str) -> FileSystemKind:
        """Coerce ``value`` to a kind, accepting names case-insensitively.

        Raises:
            ValueError: ``value`` names no known kind.
        """
        if isinstance(value, FileSystemKind):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            msg = f"Unknown file system kind: {value!r}. Use 'persistent' or 'temporary'."
            raise ValueError(msg) from None


class ReadEncoding(StrEnum):
    """Representations file contents can be read as."""

    TEXT = "Text"
    DATA_URL = "DataURL"
    BINARY_STRING = "BinaryString"
    ARRAY_BUFFER = "ArrayBuffer"

    @classmethod
    def parse(cls, value: ReadEncoding | str) -> ReadEncoding:
        """Coerce ``value`` to an encoding.

        Raises:
            UnsupportedEncodingError: ``value`` names no known encoding.
        """
        if isinstance(value, ReadEncoding):
            return value
        try:
            return cls(value)
        except ValueError:
            msg = f"Unsupported read encoding: {value!r}."
            raise UnsupportedEncodingError(msg) from None


type FileContents = str | bytes
"""Content returned by reads: ``bytes`` for ArrayBuffer, ``str`` otherwise."""


@dataclass(slots=True, frozen=True)
class Entry:
    """A file or directory produced by a native provider.

    Attributes:
        full_path: Absolute slash-separated path, ``"/"`` for the root.
        is_directory: True for directories.
        native_url: Provider-specific URL, opaque to the session.
        filesystem: Name of the filesystem the entry belongs to.

    Example::

        entry = await session.get_file_entry("notes/todo.txt")
        print(entry.name, entry.native_url)
    """

    full_path: str
    is_directory: bool
    native_url: str
    filesystem: str = ""

    @property
    def is_file(self) -> bool:
        return not self.is_directory

    @property
    def name(self) -> str:
        """Last path segment, empty for the root."""
        return self.full_path.rstrip("/").rpartition("/")[2]


@dataclass(slots=True, frozen=True)
class EntryOptions:
    """Lookup flags passed to entry resolution.

    Attributes:
        create: Create the entry when it does not exist.
        exclusive: With ``create``, fail if the entry already exists.
    """

    create: bool = False
    exclusive: bool = False


CREATE_IF_MISSING: Final[EntryOptions] = EntryOptions(create=True, exclusive=False)


@dataclass(slots=True, frozen=True)
class FileSystemHandle:
    """An acquired filesystem.

    Attributes:
        name: Provider-assigned filesystem name.
        kind: Persistent or temporary.
        size: Granted size in bytes.
        root: The filesystem's root directory entry.
    """

    name: str
    kind: FileSystemKind
    size: int
    root: Entry


@dataclass(slots=True, frozen=True)
class FileObject:
    """Snapshot of a file returned by ``NativeProvider.open_file``.

    Attributes:
        name: File name without directories.
        full_path: Absolute path of the file.
        size: Content length in bytes.
        media_type: Guessed MIME type, ``application/octet-stream`` if unknown.
        last_modified: UTC time of the last write.
        content: Raw bytes captured when the file was opened.
    """

    name: str
    full_path: str
    size: int
    media_type: str
    last_modified: datetime
    content: bytes = b""


def now() -> datetime:
    """Return current UTC time truncated to milliseconds."""
    value = datetime.now(UTC)
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)


__all__ = [
    "CREATE_IF_MISSING",
    "Entry",
    "EntryOptions",
    "FileContents",
    "FileObject",
    "FileSystemHandle",
    "FileSystemKind",
    "ReadEncoding",
    "now",
]
