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

"""Filesystem session with a current working directory stack."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TypeVar
from uuid import UUID, uuid4

from ..config import SessionConfig
from ..errors import (
    DirectoryStackEmptyError,
    EntryResolutionError,
    FilesystemUnavailableError,
    MissingArgumentError,
    NativeOperationError,
    QuotaDeniedError,
    SandboxFsError,
    SessionAlreadyInitializedError,
    SessionNotReadyError,
)
from ..filesystem import (
    CREATE_IF_MISSING,
    Entry,
    EntryOptions,
    FileContents,
    FileObject,
    FileSystemHandle,
    FileSystemKind,
    NativeProvider,
    QuotaProvider,
    ReadEncoding,
    resolve_uri,
)
from ..runtime.events import (
    CurrentDirectoryChanged,
    EventBus,
    EventHandler,
    InProcessEventBus,
    SessionInitialized,
)
from ..runtime.logging import LoggerLike, StructuredLogger, get_logger
from ._types import PathSpec, SessionState

T = TypeVar("T")

_NO_OPTIONS = EntryOptions()


class Session:
    """Asynchronous facade over a native provider with a working directory.

    Every operation resolves string paths against the current working
    directory (CWD), or against the filesystem root when they start with
    ``/``. Already-resolved :class:`Entry` values are used as-is.

    Concurrency contract: a session lives on a single event loop. Changes to
    the CWD and the CWD stack (``change_directory``, push, pop) are
    serialized by an internal lock, and every path-relative operation
    captures the CWD at the moment it starts, so a concurrent
    ``change_directory`` never redirects an operation already in flight.
    Pairing pushes with pops across independent tasks is left to the
    caller.

    Example::

        session = Session(provider=InMemoryProvider())
        await session.initialize(FileSystemKind.PERSISTENT, 1024 * 1024)
        await session.create_directory("notes")
        async with session.working_directory("notes"):
            await session.write_file_contents("todo.txt", "buy milk")
    """

    def __init__(
        self,
        *,
        provider: NativeProvider,
        bus: EventBus | None = None,
        logger: LoggerLike | None = None,
        session_id: UUID | None = None,
    ) -> None:
        super().__init__()
        self.session_id: UUID = session_id if session_id is not None else uuid4()
        self._provider = provider
        self._bus: EventBus = bus if bus is not None else InProcessEventBus()
        self._logger: StructuredLogger = get_logger(
            __name__,
            logger_override=logger,
            context={"component": "session", "session_id": str(self.session_id)},
        )
        self._state = SessionState.UNINITIALIZED
        self._file_system_kind: FileSystemKind | None = None
        self._requested_quota = 0
        self._actual_quota = 0
        self._file_system: FileSystemHandle | None = None
        self._root: Entry | None = None
        self._cwd: Entry | None = None
        self._cwd_stack: list[Entry] = []
        self._cwd_lock = asyncio.Lock()

    # --- Properties ---

    @property
    def provider(self) -> NativeProvider:
        return self._provider

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def file_system_kind(self) -> FileSystemKind | None:
        return self._file_system_kind

    @property
    def requested_quota(self) -> int:
        return self._requested_quota

    @property
    def actual_quota(self) -> int:
        """Quota granted by the provider, 0 until initialized."""
        return self._actual_quota

    @property
    def file_system(self) -> FileSystemHandle | None:
        return self._file_system

    @property
    def root(self) -> Entry | None:
        return self._root

    @property
    def cwd(self) -> Entry | None:
        """Current working directory."""
        return self._cwd

    @property
    def cwd_stack(self) -> tuple[Entry, ...]:
        """Pushed working directories, oldest first."""
        return tuple(self._cwd_stack)

    def subscribe(self, event_type: type[object], handler: EventHandler) -> None:
        """Register ``handler`` for session events such as ``CurrentDirectoryChanged``."""
        self._bus.subscribe(event_type, handler)

    def unsubscribe(self, event_type: type[object], handler: EventHandler) -> bool:
        return self._bus.unsubscribe(event_type, handler)

    # --- Initialization ---

    async def initialize(
        self,
        file_system_kind: FileSystemKind | str | None,
        requested_quota: int | None,
    ) -> FileSystemHandle:
        """Acquire a filesystem and point the root and CWD at its root.

        Args:
            file_system_kind: ``persistent`` or ``temporary``.
            requested_quota: Bytes to request; use 0 if unsure.

        Returns:
            The acquired filesystem handle.

        Raises:
            MissingArgumentError: An argument is ``None``.
            ValueError: Unknown kind or negative quota.
            SessionAlreadyInitializedError: The session is initializing or ready.
            QuotaDeniedError: The quota request was refused.
            FilesystemUnavailableError: No filesystem could be acquired.

        Any failure leaves the session empty in ``SessionState.FAILED``; a
        failed session may be initialized again.
        """
        if file_system_kind is None:
            raise MissingArgumentError(
                "No file system kind specified; use 'persistent' or 'temporary'."
            )
        if requested_quota is None:
            raise MissingArgumentError("No quota requested; use 0 if unsure.")
        if self._state in {SessionState.INITIALIZING, SessionState.READY}:
            msg = f"Session {self.session_id} is already {self._state.value}."
            raise SessionAlreadyInitializedError(msg)
        kind = FileSystemKind.parse(file_system_kind)
        if isinstance(requested_quota, bool) or requested_quota < 0:
            msg = f"requested_quota must be a non-negative integer (got {requested_quota!r})."
            raise ValueError(msg)

        self._state = SessionState.INITIALIZING
        self._file_system_kind = kind
        self._requested_quota = requested_quota
        try:
            granted = await self._request_quota(kind, requested_quota)
            handle = await self._native(
                "acquire_file_system",
                self._provider.acquire_file_system,
                kind,
                granted,
                wrap_as=FilesystemUnavailableError,
            )
            root = await self._native(
                "get_directory_entry",
                self._provider.get_directory_entry,
                handle.root,
                "",
                _NO_OPTIONS,
            )
        except BaseException:
            self._reset()
            self._state = SessionState.FAILED
            self._logger.warning(
                "Session initialization failed.",
                event="session_initialize_failed",
                context={"kind": str(kind), "requested_quota": requested_quota},
            )
            raise

        self._actual_quota = granted
        self._file_system = handle
        self._root = root
        self._cwd = root
        self._cwd_stack.clear()
        self._state = SessionState.READY
        self._logger.info(
            "Session initialized.",
            event="session_initialized",
            context={
                "kind": str(kind),
                "requested_quota": requested_quota,
                "actual_quota": granted,
                "root": root.native_url,
            },
        )
        _ = self._bus.publish(
            SessionInitialized(
                session_id=self.session_id,
                file_system=handle,
                requested_quota=requested_quota,
                created_at=datetime.now(UTC),
            )
        )
        return handle

    async def initialize_with_options(
        self, options: SessionConfig | Mapping[str, object] | None
    ) -> FileSystemHandle:
        """Initialize from a :class:`SessionConfig` or an equivalent mapping."""
        if options is None:
            raise MissingArgumentError("No options specified; need kind and quota.")
        if isinstance(options, SessionConfig):
            return await self.initialize(options.file_system_kind, options.requested_quota)
        kind = options.get("file_system_kind")
        quota = options.get("requested_quota")
        if kind is not None and not isinstance(kind, (str, FileSystemKind)):
            msg = f"file_system_kind must be a string (got {kind!r})."
            raise ValueError(msg)
        if quota is not None and not isinstance(quota, int):
            msg = f"requested_quota must be an integer (got {quota!r})."
            raise ValueError(msg)
        return await self.initialize(kind, quota)

    # --- Entry resolution ---

    async def resolve_local_file_system_url(self, uri: str) -> Entry:
        """Resolve a scheme-qualified or bare URI to an entry.

        The URI is normalized with :func:`resolve_uri` first; provider
        failures surface as :class:`EntryResolutionError`.
        """
        _ = self._require_ready()
        normalized = resolve_uri(uri).uri
        try:
            return await self._native(
                "resolve_entry", self._provider.resolve_entry, normalized
            )
        except EntryResolutionError:
            raise
        except SandboxFsError as error:
            msg = f"Could not resolve {normalized}: {error}"
            raise EntryResolutionError(msg) from error

    async def get_file_entry(
        self, path: PathSpec, options: EntryOptions | None = None
    ) -> Entry:
        _, cwd = self._require_ready()
        return await self._file(path, cwd, options)

    async def get_file(
        self, path: PathSpec, options: EntryOptions | None = None
    ) -> FileObject:
        """Return the file object (metadata and content snapshot) at ``path``."""
        _, cwd = self._require_ready()
        entry = await self._file(path, cwd, options)
        return await self._native("open_file", self._provider.open_file, entry)

    async def get_directory_entry(
        self, path: PathSpec = ".", options: EntryOptions | None = None
    ) -> Entry:
        _, cwd = self._require_ready()
        return await self._directory(path, cwd, options)

    def get_native_url(self, entry_or_path: PathSpec) -> str:
        """Compute a native URL without calling the provider.

        Absolute paths are appended to the root's native URL; relative ones
        are joined to the CWD's native URL with ``/``.
        """
        root, cwd = self._require_ready()
        path = entry_or_path.full_path if isinstance(entry_or_path, Entry) else entry_or_path
        if path.startswith("/"):
            return root.native_url + path
        return f"{cwd.native_url}/{path}"

    async def get_native_file_url(
        self, path: PathSpec, options: EntryOptions | None = None
    ) -> str:
        return (await self.get_file_entry(path, options)).native_url

    async def get_native_directory_url(
        self, path: PathSpec = ".", options: EntryOptions | None = None
    ) -> str:
        return (await self.get_directory_entry(path, options)).native_url

    async def get_file_url(
        self, path: PathSpec, options: EntryOptions | None = None
    ) -> str:
        """Return the URL of the file at ``path``.

        Entries carry a single provider URL, so this matches
        :meth:`get_native_file_url`.
        """
        return await self.get_native_file_url(path, options)

    async def get_directory_url(
        self, path: PathSpec = ".", options: EntryOptions | None = None
    ) -> str:
        return await self.get_native_directory_url(path, options)

    # --- Working directory ---

    async def change_directory(self, path: PathSpec) -> Entry:
        """Make the directory at ``path`` the CWD.

        The CWD is left unchanged when resolution fails.
        """
        async with self._cwd_lock:
            _, cwd = self._require_ready()
            directory = await self._directory(path, cwd, None)
            self._set_cwd(directory)
            return directory

    async def push_current_working_directory(self) -> None:
        """Save the CWD on the stack."""
        async with self._cwd_lock:
            _, cwd = self._require_ready()
            self._cwd_stack.append(cwd)

    async def pop_current_working_directory(self) -> Entry:
        """Restore the most recently pushed CWD and return it.

        Raises:
            DirectoryStackEmptyError: Nothing was pushed; the CWD is unchanged.
        """
        async with self._cwd_lock:
            _ = self._require_ready()
            if not self._cwd_stack:
                raise DirectoryStackEmptyError("The working directory stack is empty.")
            directory = self._cwd_stack.pop()
            self._set_cwd(directory)
            return directory

    @asynccontextmanager
    async def working_directory(self, path: PathSpec) -> AsyncIterator[Entry]:
        """Temporarily change into ``path``, restoring the previous CWD on exit."""
        await self.push_current_working_directory()
        try:
            yield await self.change_directory(path)
        finally:
            _ = await self.pop_current_working_directory()

    # --- Files ---

    async def read_file_contents(
        self,
        path: PathSpec,
        options: EntryOptions | None = None,
        encoding: ReadEncoding | str = ReadEncoding.TEXT,
    ) -> FileContents:
        """Read a whole file as text, a data URL, a binary string or bytes.

        Raises:
            NotFoundError: The file does not exist.
            UnsupportedEncodingError: The provider does not know ``encoding``.
        """
        _, cwd = self._require_ready()
        entry = await self._file(path, cwd, options)
        file = await self._native("open_file", self._provider.open_file, entry)
        return await self._native(
            "read_as", self._provider.read_as, file, encoding, path=entry.full_path
        )

    async def write_file_contents(
        self,
        path: PathSpec,
        data: FileContents,
        options: EntryOptions | None = None,
    ) -> Entry:
        """Replace the contents of a file, creating it by default.

        ``options`` defaults to ``create=True, exclusive=False``. Existing
        content is discarded; this never appends.
        """
        _, cwd = self._require_ready()
        entry = await self._file(path, cwd, options if options is not None else CREATE_IF_MISSING)
        writer = await self._native("create_writer", self._provider.create_writer, entry)
        await self._native(
            "write", self._provider.write, writer, data, path=entry.full_path
        )
        return entry

    async def copy_file(
        self, source: PathSpec, target_directory: PathSpec, new_name: str | None = None
    ) -> Entry:
        _, cwd = self._require_ready()
        entry = await self._file(source, cwd, _NO_OPTIONS)
        target = await self._directory(target_directory, cwd, _NO_OPTIONS)
        return await self._native("copy", self._provider.copy, entry, target, new_name)

    async def move_file(
        self, source: PathSpec, target_directory: PathSpec, new_name: str | None = None
    ) -> Entry:
        _, cwd = self._require_ready()
        entry = await self._file(source, cwd, _NO_OPTIONS)
        target = await self._directory(target_directory, cwd, _NO_OPTIONS)
        return await self._native("move", self._provider.move, entry, target, new_name)

    async def rename_file(self, source: PathSpec, new_name: str) -> Entry:
        """Rename a file by moving it to the CWD under ``new_name``."""
        return await self.move_file(source, ".", new_name)

    async def delete_file(self, path: PathSpec) -> None:
        _, cwd = self._require_ready()
        entry = await self._file(path, cwd, _NO_OPTIONS)
        await self._native("remove", self._provider.remove, entry)

    # --- Directories ---

    async def read_directory_contents(
        self, path: PathSpec = ".", options: EntryOptions | None = None
    ) -> list[Entry]:
        """List every entry of a directory in provider order.

        Batches are requested from the provider's reader until an empty one
        comes back.
        """
        _, cwd = self._require_ready()
        directory = await self._directory(path, cwd, options)
        reader = await self._native(
            "create_reader", self._provider.create_reader, directory
        )
        entries: list[Entry] = []
        batch: Sequence[Entry]
        while batch := await self._native(
            "read_entries", reader.read_entries, path=directory.full_path
        ):
            entries.extend(batch)
        return entries

    async def create_directory(self, path: PathSpec) -> Entry:
        _, cwd = self._require_ready()
        return await self._directory(path, cwd, CREATE_IF_MISSING)

    async def copy_directory(
        self, source: PathSpec, target_directory: PathSpec, new_name: str | None = None
    ) -> Entry:
        """Copy a directory tree; the provider performs the recursion."""
        _, cwd = self._require_ready()
        entry = await self._directory(source, cwd, _NO_OPTIONS)
        target = await self._directory(target_directory, cwd, _NO_OPTIONS)
        return await self._native("copy", self._provider.copy, entry, target, new_name)

    async def move_directory(
        self, source: PathSpec, target_directory: PathSpec, new_name: str | None = None
    ) -> Entry:
        _, cwd = self._require_ready()
        entry = await self._directory(source, cwd, _NO_OPTIONS)
        target = await self._directory(target_directory, cwd, _NO_OPTIONS)
        return await self._native("move", self._provider.move, entry, target, new_name)

    async def rename_directory(self, source: PathSpec, new_name: str) -> Entry:
        return await self.move_directory(source, ".", new_name)

    async def remove_directory(self, path: PathSpec, recursively: bool = False) -> None:
        """Remove a directory; without ``recursively`` it must be empty."""
        _, cwd = self._require_ready()
        entry = await self._directory(path, cwd, _NO_OPTIONS)
        await self._native(
            "remove", self._provider.remove, entry, recursive=bool(recursively)
        )

    # --- Helpers ---

    def _require_ready(self) -> tuple[Entry, Entry]:
        if self._state is not SessionState.READY or self._root is None or self._cwd is None:
            msg = f"Session {self.session_id} is {self._state.value}; call initialize() first."
            raise SessionNotReadyError(msg)
        return self._root, self._cwd

    def _reset(self) -> None:
        self._file_system_kind = None
        self._requested_quota = 0
        self._actual_quota = 0
        self._file_system = None
        self._root = None
        self._cwd = None
        self._cwd_stack.clear()

    def _set_cwd(self, directory: Entry) -> None:
        previous = self._cwd
        self._cwd = directory
        if previous == directory:
            return
        self._logger.info(
            "Working directory changed.",
            event="cwd_changed",
            context={
                "previous": previous.full_path if previous is not None else None,
                "current": directory.full_path,
            },
        )
        _ = self._bus.publish(
            CurrentDirectoryChanged(
                session_id=self.session_id,
                previous=previous,
                current=directory,
                created_at=datetime.now(UTC),
            )
        )

    async def _request_quota(self, kind: FileSystemKind, size: int) -> int:
        if not isinstance(self._provider, QuotaProvider):
            self._logger.debug(
                "Provider cannot negotiate quota; granting the full request.",
                event="quota_auto_granted",
                context={"kind": str(kind), "size": size},
            )
            return size
        return await self._native(
            "request_quota",
            self._provider.request_quota,
            kind,
            size,
            wrap_as=QuotaDeniedError,
        )

    async def _file(
        self, path: PathSpec, cwd: Entry, options: EntryOptions | None
    ) -> Entry:
        if isinstance(path, Entry):
            return path
        return await self._native(
            "get_file_entry",
            self._provider.get_file_entry,
            cwd,
            path,
            options if options is not None else _NO_OPTIONS,
        )

    async def _directory(
        self, path: PathSpec, cwd: Entry, options: EntryOptions | None
    ) -> Entry:
        if isinstance(path, Entry):
            return path
        return await self._native(
            "get_directory_entry",
            self._provider.get_directory_entry,
            cwd,
            path,
            options if options is not None else _NO_OPTIONS,
        )

    async def _native(
        self,
        operation: str,
        call: Callable[..., Awaitable[T]],
        *args: object,
        wrap_as: type[SandboxFsError] | None = None,
        path: str | None = None,
        **kwargs: object,
    ) -> T:
        """Await one provider primitive, classifying its failures.

        Failures already in the :mod:`sandboxfs.errors` taxonomy propagate
        unchanged; anything else is wrapped in ``wrap_as`` (default
        :class:`NativeOperationError`) and chained to the original error.
        """
        context: dict[str, object] = {"operation": operation}
        if path is not None:
            context["path"] = path
        self._logger.debug("Calling native provider.", event="native_call", context=context)
        try:
            return await call(*args, **kwargs)
        except SandboxFsError as error:
            self._logger.debug(
                "Native provider call failed.",
                event="native_call_failed",
                context={**context, "error": repr(error)},
            )
            raise
        except Exception as error:
            self._logger.debug(
                "Native provider call failed.",
                event="native_call_failed",
                context={**context, "error": repr(error)},
            )
            msg = f"{operation} failed: {error}"
            if wrap_as is None:
                raise NativeOperationError(msg, operation=operation) from error
            raise wrap_as(msg) from error


__all__ = ["Session"]
