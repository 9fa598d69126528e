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

"""In-process event primitives for session notifications."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from threading import RLock
from typing import Protocol, cast, override
from uuid import UUID, uuid4

from ..filesystem import Entry, FileSystemHandle
from .logging import StructuredLogger, get_logger

type EventHandler = Callable[[object], None]
"""Callback type for event subscribers."""

logger: StructuredLogger = get_logger(__name__, context={"component": "event_bus"})


class EventBus(Protocol):
    """Minimal synchronous publish/subscribe contract."""

    def subscribe(self, event_type: type[object], handler: EventHandler) -> None: ...

    def unsubscribe(self, event_type: type[object], handler: EventHandler) -> bool: ...

    def publish(self, event: object) -> PublishResult: ...


@dataclass(slots=True, frozen=True)
class HandlerFailure:
    """Container describing a handler error captured during publish."""

    handler: EventHandler
    error: BaseException

    @override
    def __str__(self) -> str:
        return f"{self.handler!r} -> {self.error!r}"


@dataclass(slots=True, frozen=True)
class PublishResult:
    """Summary of a publish invocation."""

    event: object
    handlers_invoked: tuple[EventHandler, ...]
    errors: tuple[HandlerFailure, ...]

    @property
    def handled_count(self) -> int:
        return len(self.handlers_invoked)

    @property
    def ok(self) -> bool:
        """Return ``True`` when no handler failures were recorded."""

        return not self.errors

    def raise_if_errors(self) -> None:
        """Raise an ``ExceptionGroup`` if any handlers failed."""

        if not self.errors:
            return
        failures = ", ".join(str(failure) for failure in self.errors)
        message = f"Errors while publishing {type(self.event).__name__}: {failures}"
        raise ExceptionGroup(
            message, tuple(cast(Exception, failure.error) for failure in self.errors)
        )


def _describe_handler(handler: EventHandler) -> str:
    module_name = getattr(handler, "__module__", None)
    qualname = getattr(handler, "__qualname__", None)
    if isinstance(qualname, str):
        prefix = f"{module_name}." if isinstance(module_name, str) else ""
        return f"{prefix}{qualname}"
    return repr(handler)


class InProcessEventBus:
    """Process-local event bus that delivers events synchronously.

    Handler exceptions are logged and collected in the returned
    :class:`PublishResult`; they never propagate to the publisher.
    """

    def __init__(self) -> None:
        super().__init__()
        self._handlers: dict[type[object], list[EventHandler]] = {}
        self._lock = RLock()

    def subscribe(self, event_type: type[object], handler: EventHandler) -> None:
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: type[object], handler: EventHandler) -> bool:
        with self._lock:
            handlers = self._handlers.get(event_type)
            if handlers is None or handler not in handlers:
                return False
            handlers.remove(handler)
            return True

    def publish(self, event: object) -> PublishResult:
        with self._lock:
            handlers = tuple(self._handlers.get(type(event), ()))
        failures: list[HandlerFailure] = []
        for handler in handlers:
            try:
                handler(event)
            except Exception as error:
                logger.exception(
                    "Error delivering event.",
                    event="event_delivery_failed",
                    context={
                        "handler": _describe_handler(handler),
                        "event_type": type(event).__name__,
                    },
                )
                failures.append(HandlerFailure(handler=handler, error=error))
        return PublishResult(event=event, handlers_invoked=handlers, errors=tuple(failures))


@dataclass(slots=True, frozen=True)
class SessionInitialized:
    """Event emitted once a session has acquired its filesystem."""

    session_id: UUID
    file_system: FileSystemHandle
    requested_quota: int
    created_at: datetime
    event_id: UUID = field(default_factory=uuid4)


@dataclass(slots=True, frozen=True)
class CurrentDirectoryChanged:
    """Event emitted whenever a session's working directory is replaced.

    Attributes:
        previous: Working directory before the change.
        current: Working directory after the change.
    """

    session_id: UUID
    previous: Entry | None
    current: Entry
    created_at: datetime
    event_id: UUID = field(default_factory=uuid4)


__all__ = [
    "CurrentDirectoryChanged",
    "EventBus",
    "EventHandler",
    "HandlerFailure",
    "InProcessEventBus",
    "PublishResult",
    "SessionInitialized",
]
