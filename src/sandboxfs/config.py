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

"""Session configuration loading.

Configuration is read from a TOML or YAML file (or an in-memory mapping) and
then overridden by environment variables::

    # ~/.config/sandboxfs/config.toml
    file_system_kind = "persistent"
    requested_quota = 5242880

    [listing]
    batch_size = 50
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml

from .errors import SandboxFsError
from .filesystem import FileSystemKind

DEFAULT_CONFIG_PATH = Path("~/.config/sandboxfs/config.toml")

ENV_FILESYSTEM_KIND = "SANDBOXFS_FILESYSTEM_KIND"
ENV_REQUESTED_QUOTA = "SANDBOXFS_REQUESTED_QUOTA"
ENV_LIST_BATCH_SIZE = "SANDBOXFS_LIST_BATCH_SIZE"

__all__ = ["DEFAULT_CONFIG_PATH", "ConfigError", "SessionConfig", "load_config"]


class ConfigError(SandboxFsError, ValueError):
    """Raised when the session configuration is invalid."""


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Resolved options for :meth:`Session.initialize_with_options`.

    Attributes:
        file_system_kind: Persistent or temporary storage.
        requested_quota: Bytes to request from the provider.
        list_batch_size: Preferred directory listing batch size for providers
            that take one (``None`` keeps the provider default).
    """

    file_system_kind: FileSystemKind
    requested_quota: int
    list_batch_size: int | None = None


def load_config(
    path: Path | Mapping[str, Any] | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> SessionConfig:
    """Load and validate a session configuration.

    Parameters
    ----------
    path:
        Path to a ``.toml``, ``.yaml`` or ``.yml`` file. ``None`` falls back to
        ``~/.config/sandboxfs/config.toml``, which may be absent. Tests may
        pass a mapping to skip filesystem I/O.
    env:
        Optional environment mapping. Defaults to :data:`os.environ`.

    Returns
    -------
    SessionConfig
        The resolved configuration.

    Raises
    ------
    ConfigError
        A value is missing or invalid, or the file format is unsupported.
    """

    env_map = os.environ if env is None else env
    if isinstance(path, Mapping):
        raw: dict[str, object] = dict(cast(Mapping[str, object], path))
    else:
        raw = _load_config_file(
            path if path is not None else DEFAULT_CONFIG_PATH.expanduser()
        )

    config = _normalise_config(raw)
    if ENV_FILESYSTEM_KIND in env_map:
        config["file_system_kind"] = env_map[ENV_FILESYSTEM_KIND]
    if ENV_REQUESTED_QUOTA in env_map:
        config["requested_quota"] = env_map[ENV_REQUESTED_QUOTA]
    if ENV_LIST_BATCH_SIZE in env_map:
        config["list_batch_size"] = env_map[ENV_LIST_BATCH_SIZE]
    return _build_config(config)


def _load_config_file(path: Path) -> dict[str, object]:
    if not path.exists():
        if path == DEFAULT_CONFIG_PATH.expanduser():
            return {}
        msg = f"Configuration file not found: {path}"
        raise FileNotFoundError(msg)

    suffix = path.suffix.lower()
    data: object
    if suffix == ".toml" or not suffix:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    elif suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    else:
        msg = f"Unsupported configuration format: {path.suffix}"
        raise ConfigError(msg)

    if not isinstance(data, MutableMapping):
        msg = "Configuration file must contain a mapping at the root."
        raise ConfigError(msg)
    return {str(key): value for key, value in cast(Mapping[object, object], data).items()}


def _normalise_config(raw: Mapping[str, object]) -> dict[str, object]:
    config: dict[str, object] = {
        "file_system_kind": raw.get("file_system_kind") or raw.get("kind"),
        "requested_quota": raw.get("requested_quota", raw.get("quota")),
        "list_batch_size": raw.get("list_batch_size"),
    }
    listing = raw.get("listing")
    if config["list_batch_size"] is None and isinstance(listing, Mapping):
        config["list_batch_size"] = cast(Mapping[str, object], listing).get("batch_size")
    return config


def _build_config(config: Mapping[str, object]) -> SessionConfig:
    kind_value = config.get("file_system_kind")
    if kind_value is None:
        raise ConfigError("file_system_kind is required (persistent or temporary).")
    if not isinstance(kind_value, str):
        msg = f"file_system_kind must be a string (got {kind_value!r})."
        raise ConfigError(msg)
    try:
        kind = FileSystemKind.parse(kind_value)
    except ValueError as error:
        raise ConfigError(str(error)) from error

    quota_value = config.get("requested_quota")
    if quota_value is None:
        raise ConfigError("requested_quota is required; use 0 if unsure.")
    quota = _coerce_int("requested_quota", quota_value, minimum=0)

    batch_value = config.get("list_batch_size")
    batch_size = (
        None
        if batch_value is None
        else _coerce_int("list_batch_size", batch_value, minimum=1)
    )
    return SessionConfig(
        file_system_kind=kind, requested_quota=quota, list_batch_size=batch_size
    )


def _coerce_int(name: str, value: object, *, minimum: int) -> int:
    if isinstance(value, bool):
        msg = f"{name} must be an integer (got {value!r})."
        raise ConfigError(msg)
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        try:
            number = int(value.strip())
        except ValueError:
            msg = f"{name} must be an integer (got {value!r})."
            raise ConfigError(msg) from None
    else:
        msg = f"{name} must be an integer (got {value!r})."
        raise ConfigError(msg)
    if number < minimum:
        msg = f"{name} must be >= {minimum} (got {number})."
        raise ConfigError(msg)
    return number
