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

"""Base exception hierarchy for :mod:`sandboxfs`."""

from __future__ import annotations


class SandboxFsError(Exception):
    """Base class for all sandboxfs exceptions.

    Callers can catch every library-specific failure with a single handler
    while standard Python exceptions keep propagating normally.

    Example:
        Catch any sandboxfs-specific error::

            try:
                await session.read_file_contents("notes.txt")
            except SandboxFsError as e:
                logger.error("Filesystem error: %s", e)

    Note:
        Several subclasses also inherit from builtin exception types
        (``ValueError``, ``FileNotFoundError``...) so generic handlers
        keep working.
    """


class MissingArgumentError(SandboxFsError, ValueError):
    """Raised when a required argument was not supplied."""


class MalformedURIError(SandboxFsError, ValueError):
    """Raised when a URI contains more than one scheme separator.

    Example::

        resolve_uri("a:b:c")  # raises MalformedURIError
    """


class NotFoundError(SandboxFsError, FileNotFoundError):
    """Raised when a path does not exist and creation was not requested."""


class AlreadyExistsError(SandboxFsError, FileExistsError):
    """Raised when an exclusive create targets an existing path."""


class EntryResolutionError(SandboxFsError):
    """Raised when a normalized URI cannot be resolved to an entry.

    The provider failure that caused it is available as ``__cause__``.
    """


class QuotaDeniedError(SandboxFsError):
    """Raised when the provider refuses the requested storage quota."""


class FilesystemUnavailableError(SandboxFsError):
    """Raised when the provider cannot hand out a filesystem."""


class UnsupportedEncodingError(SandboxFsError, ValueError):
    """Raised when file contents are requested in an unknown encoding."""


class NativeOperationError(SandboxFsError):
    """Catch-all wrapper for provider failures outside the taxonomy.

    Attributes:
        operation: Name of the provider primitive that failed.
    """

    def __init__(self, message: str, *, operation: str) -> None:
        super().__init__(message)
        self.operation = operation


class SessionStateError(SandboxFsError, RuntimeError):
    """Base class for operations issued in the wrong session state."""


class SessionNotReadyError(SessionStateError):
    """Raised when an operation runs before ``initialize`` succeeded."""


class SessionAlreadyInitializedError(SessionStateError):
    """Raised when ``initialize`` is called on a ready or initializing session.

    A session whose initialization failed may be initialized again.
    """


class DirectoryStackEmptyError(SessionStateError, IndexError):
    """Raised when popping the working directory stack while it is empty.

    The current working directory is left unchanged.
    """


__all__ = [
    "AlreadyExistsError",
    "DirectoryStackEmptyError",
    "EntryResolutionError",
    "FilesystemUnavailableError",
    "MalformedURIError",
    "MissingArgumentError",
    "NativeOperationError",
    "NotFoundError",
    "QuotaDeniedError",
    "SandboxFsError",
    "SessionAlreadyInitializedError",
    "SessionNotReadyError",
    "SessionStateError",
    "UnsupportedEncodingError",
]
