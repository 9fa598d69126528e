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

"""Tests for structured logging helpers."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from io import StringIO

import pytest

from sandboxfs.errors import NotFoundError, QuotaDeniedError
from sandboxfs.filesystem import FileSystemKind, InMemoryProvider
from sandboxfs.runtime.logging import (
    LIBRARY_LOGGER_NAME,
    StructuredLogger,
    _coerce_level,
    _JsonFormatter,
    configure_logging,
    get_logger,
)
from sandboxfs.session import Session
from tests.helpers import run


class _CaptureHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@contextmanager
def _capture(logger: logging.Logger) -> Iterator[list[logging.LogRecord]]:
    handler = _CaptureHandler()
    logger.addHandler(handler)
    try:
        yield handler.records
    finally:
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture(autouse=True)
def reset_logging_state() -> Iterator[None]:
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    try:
        yield
    finally:
        for handler in root.handlers:
            if handler not in original_handlers:
                handler.close()
        root.handlers = original_handlers
        root.setLevel(original_level)


def test_library_logger_has_null_handler() -> None:
    handlers = logging.getLogger(LIBRARY_LOGGER_NAME).handlers
    assert any(isinstance(handler, logging.NullHandler) for handler in handlers)


def test_structured_logger_merges_bound_and_inline_context() -> None:
    logger = get_logger("tests.sandboxfs.logging").bind(component="unit")
    logger.logger.setLevel(logging.INFO)

    with _capture(logger.logger) as records:
        logger.info("structured", event="tests.event", context={"attempt": 1})

    assert len(records) == 1
    assert records[0].event == "tests.event"
    assert records[0].context == {"component": "unit", "attempt": 1}


def test_structured_logger_requires_event() -> None:
    logger = get_logger("tests.sandboxfs.missing")
    logger.logger.setLevel(logging.INFO)
    with pytest.raises(TypeError, match="event"):
        logger.info("no event")


def test_structured_logger_rejects_non_mapping_context() -> None:
    logger = get_logger("tests.sandboxfs.context")
    logger.logger.setLevel(logging.INFO)
    with pytest.raises(TypeError, match="context"):
        logger.info("bad", event="tests.bad", context=["not", "a", "mapping"])


def test_get_logger_merges_override_context() -> None:
    override = logging.getLogger("tests.sandboxfs.override")
    adapter = StructuredLogger(override, context={"existing": True})

    logger = get_logger("ignored", logger_override=adapter, context={"bound": 1})

    assert logger.logger is override
    assert logger.context == {"existing": True, "bound": 1}


def test_json_formatter_renders_payload() -> None:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(_JsonFormatter())
    base = logging.getLogger("tests.sandboxfs.json")
    base.setLevel(logging.INFO)
    base.addHandler(handler)
    try:
        get_logger(base.name).info("hello", event="tests.json", context={"path": "/a"})
    finally:
        base.removeHandler(handler)

    payload = json.loads(stream.getvalue())
    assert payload["message"] == "hello"
    assert payload["event"] == "tests.json"
    assert payload["context"] == {"path": "/a"}
    assert payload["level"] == "INFO"


def test_configure_logging_reads_environment() -> None:
    root = logging.getLogger()
    root.handlers = []

    configure_logging(env={"SANDBOXFS_LOG_LEVEL": "debug", "SANDBOXFS_LOG_FORMAT": "json"})

    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, _JsonFormatter)


def test_configure_logging_only_adjusts_level_when_configured() -> None:
    root = logging.getLogger()
    existing = logging.NullHandler()
    root.handlers = [existing]

    configure_logging(level="WARNING", env={})

    assert root.handlers == [existing]
    assert root.level == logging.WARNING


def test_coerce_level() -> None:
    assert _coerce_level(10) == 10
    assert _coerce_level("info") == logging.INFO
    with pytest.raises(TypeError):
        _ = _coerce_level("chatty")


class TestSessionLogging:
    def test_session_logs_lifecycle_and_calls(self) -> None:
        base = logging.getLogger("tests.sandboxfs.session")
        base.setLevel(logging.DEBUG)
        session = Session(provider=InMemoryProvider(), logger=base)

        async def scenario() -> None:
            _ = await session.initialize(FileSystemKind.PERSISTENT, 0)
            _ = await session.create_directory("docs")
            _ = await session.change_directory("docs")

        with _capture(base) as records:
            run(scenario())

        events = [record.event for record in records]
        assert "session_initialized" in events
        assert "native_call" in events
        assert "cwd_changed" in events
        for record in records:
            assert record.context["session_id"] == str(session.session_id)

    def test_failures_are_logged(self) -> None:
        base = logging.getLogger("tests.sandboxfs.session.failures")
        base.setLevel(logging.DEBUG)
        session = Session(provider=InMemoryProvider(quota_limit=0), logger=base)

        with _capture(base) as records:
            with pytest.raises(QuotaDeniedError):
                run(session.initialize(FileSystemKind.PERSISTENT, 1))

        warning = [record for record in records if record.levelno == logging.WARNING]
        assert [record.event for record in warning] == ["session_initialize_failed"]

    def test_native_failure_logged_at_debug(self) -> None:
        base = logging.getLogger("tests.sandboxfs.session.native")
        base.setLevel(logging.DEBUG)
        session = Session(provider=InMemoryProvider(), logger=base)
        _ = run(session.initialize(FileSystemKind.PERSISTENT, 0))

        with _capture(base) as records:
            with pytest.raises(NotFoundError):
                run(session.read_file_contents("missing.txt"))

        failed = [record for record in records if record.event == "native_call_failed"]
        assert len(failed) == 1
        assert failed[0].context["operation"] == "get_file_entry"
