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

"""Structured logging helpers for :mod:`sandboxfs`.

Every record emitted through :class:`StructuredLogger` carries an ``event``
name and a ``context`` mapping. Library loggers hang off the ``sandboxfs``
logger, which has a :class:`logging.NullHandler` so nothing is printed until
the host application (or :func:`configure_logging`) installs a handler.
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
from collections.abc import Mapping, MutableMapping
from datetime import UTC, datetime
from typing import Any, Final, cast, override

__all__ = [
    "LIBRARY_LOGGER_NAME",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
]

LIBRARY_LOGGER_NAME: Final[str] = "sandboxfs"

_LOG_LEVEL_ENV = "SANDBOXFS_LOG_LEVEL"
_LOG_FORMAT_ENV = "SANDBOXFS_LOG_FORMAT"

type LoggerLike = logging.Logger | logging.LoggerAdapter[logging.Logger]


class StructuredLogger(logging.LoggerAdapter[logging.Logger]):
    """Logger adapter that requires an ``event`` and merges bound context."""

    def __init__(
        self,
        logger: logging.Logger,
        *,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(logger, dict(context or {}))

    @property
    def context(self) -> Mapping[str, object]:
        return cast(Mapping[str, object], self.extra)

    def bind(self, **context: object) -> StructuredLogger:
        """Return a new adapter with ``context`` layered over the current one."""

        return type(self)(self.logger, context={**self.context, **context})

    @override
    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = kwargs.get("extra")
        if extra is None:
            extra = {}
        if not isinstance(extra, MutableMapping):
            raise TypeError("Structured logs require a mutable mapping for extra.")
        extra_mapping = cast(MutableMapping[str, object], extra)

        payload: dict[str, object] = dict(self.context)
        inline = kwargs.pop("context", None)
        if inline is not None:
            if not isinstance(inline, Mapping):
                raise TypeError("context must be a mapping when provided.")
            payload.update(cast(Mapping[str, object], inline))

        event = kwargs.pop("event", None)
        if event is None:
            event = extra_mapping.pop("event", None)
        if not isinstance(event, str):
            raise TypeError("Structured logs require an 'event' field.")
        payload.update({key: value for key, value in extra_mapping.items() if key != "event"})

        kwargs["extra"] = {"event": event, "context": payload}
        return msg, kwargs


def get_logger(
    name: str,
    *,
    logger_override: LoggerLike | None = None,
    context: Mapping[str, object] | None = None,
) -> StructuredLogger:
    """Return a :class:`StructuredLogger` scoped to ``name``.

    When ``logger_override`` is given its underlying logger is reused and any
    context it already carries is merged beneath ``context``.
    """

    base_context: dict[str, object] = {}
    if logger_override is None:
        base_logger = logging.getLogger(name)
    elif isinstance(logger_override, logging.Logger):
        base_logger = logger_override
    else:
        base_logger = _unwrap_logger(logger_override)
        adapter_extra = logger_override.extra
        if isinstance(adapter_extra, Mapping):
            base_context.update(cast(Mapping[str, object], adapter_extra))
    base_context.update(context or {})
    return StructuredLogger(base_logger, context=base_context)


def configure_logging(
    *,
    level: int | str | None = None,
    json_mode: bool | None = None,
    env: Mapping[str, str] | None = None,
    force: bool = False,
) -> None:
    """Install a stderr handler on the root logger.

    ``level`` and ``json_mode`` fall back to the ``SANDBOXFS_LOG_LEVEL`` and
    ``SANDBOXFS_LOG_FORMAT`` environment variables (``json`` or ``text``).
    An already configured root logger only has its level adjusted unless
    ``force=True``.
    """

    env = os.environ if env is None else env
    resolved_level = _coerce_level(level or env.get(_LOG_LEVEL_ENV) or logging.INFO)
    if json_mode is None:
        json_mode = env.get(_LOG_FORMAT_ENV, "text").lower() == "json"

    root_logger = logging.getLogger()
    if root_logger.handlers and not force:
        root_logger.setLevel(resolved_level)
        return

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "text": {
                    "format": "%(asctime)s %(levelname)s %(name)s %(event)s %(message)s %(context)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                    "defaults": {"event": "-", "context": {}},
                },
                "json": {"()": "sandboxfs.runtime.logging._JsonFormatter"},
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "json" if json_mode else "text",
                }
            },
            "root": {"handlers": ["stderr"], "level": resolved_level},
        }
    )


class _JsonFormatter(logging.Formatter):
    """Formatter that renders structured records as compact JSON."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        event = getattr(record, "event", None)
        if event is not None:
            payload["event"] = event
        context = getattr(record, "context", None)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=repr, separators=(",", ":"))


def _unwrap_logger(adapter: logging.LoggerAdapter[Any]) -> logging.Logger:
    logger_obj = adapter.logger
    while isinstance(logger_obj, logging.LoggerAdapter):
        logger_obj = cast(logging.LoggerAdapter[Any], logger_obj).logger
    if not isinstance(logger_obj, logging.Logger):  # pragma: no cover
        raise TypeError("LoggerAdapter.logger must be a logging.Logger instance.")
    return logger_obj


def _coerce_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise TypeError(f"Unknown log level: {level!r}")
    return resolved


logging.getLogger(LIBRARY_LOGGER_NAME).addHandler(logging.NullHandler())
