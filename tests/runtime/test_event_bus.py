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

"""Tests for the in-process event bus and session events."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from sandboxfs.filesystem import Entry
from sandboxfs.runtime.events import (
    CurrentDirectoryChanged,
    HandlerFailure,
    InProcessEventBus,
    SessionInitialized,
)


def _change(current: str = "/docs") -> CurrentDirectoryChanged:
    return CurrentDirectoryChanged(
        session_id=uuid4(),
        previous=None,
        current=Entry(
            full_path=current,
            is_directory=True,
            native_url=f"memory://persistent{current}",
        ),
        created_at=datetime.now(UTC),
    )


def test_publish_without_subscribers_succeeds() -> None:
    bus = InProcessEventBus()
    event = _change()

    result = bus.publish(event)

    assert result.ok
    assert result.handled_count == 0
    assert isinstance(event.event_id, UUID)


def test_handlers_receive_only_their_event_type() -> None:
    bus = InProcessEventBus()
    changes: list[object] = []
    inits: list[object] = []
    bus.subscribe(CurrentDirectoryChanged, changes.append)
    bus.subscribe(SessionInitialized, inits.append)

    event = _change()
    result = bus.publish(event)

    assert changes == [event]
    assert inits == []
    assert result.handled_count == 1


def test_unsubscribe() -> None:
    bus = InProcessEventBus()
    seen: list[object] = []
    bus.subscribe(CurrentDirectoryChanged, seen.append)

    assert bus.unsubscribe(CurrentDirectoryChanged, seen.append)
    assert not bus.unsubscribe(CurrentDirectoryChanged, seen.append)
    assert not bus.unsubscribe(SessionInitialized, seen.append)

    _ = bus.publish(_change())
    assert seen == []


def test_handler_failure_is_isolated(caplog: pytest.LogCaptureFixture) -> None:
    bus = InProcessEventBus()
    seen: list[object] = []

    def broken(event: object) -> None:
        raise RuntimeError("handler exploded")

    bus.subscribe(CurrentDirectoryChanged, broken)
    bus.subscribe(CurrentDirectoryChanged, seen.append)

    with caplog.at_level(logging.ERROR, logger="sandboxfs.runtime.events"):
        result = bus.publish(_change())

    assert len(seen) == 1
    assert not result.ok
    assert result.handled_count == 2
    assert isinstance(result.errors[0], HandlerFailure)
    assert "handler exploded" in str(result.errors[0])
    assert any(
        getattr(record, "event", None) == "event_delivery_failed" for record in caplog.records
    )


def test_raise_if_errors() -> None:
    bus = InProcessEventBus()

    def broken(event: object) -> None:
        raise ValueError("bad")

    bus.subscribe(CurrentDirectoryChanged, broken)
    result = bus.publish(_change())

    with pytest.raises(ExceptionGroup) as excinfo:
        result.raise_if_errors()
    assert "CurrentDirectoryChanged" in str(excinfo.value)
    assert isinstance(excinfo.value.exceptions[0], ValueError)


def test_raise_if_errors_is_noop_when_ok() -> None:
    result = InProcessEventBus().publish(_change())
    result.raise_if_errors()
