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

"""Asynchronous sessions over sandboxed filesystem providers."""

from __future__ import annotations

from . import config, errors, filesystem, runtime, session
from .config import SessionConfig, load_config
from .errors import SandboxFsError
from .filesystem import (
    Entry,
    EntryOptions,
    FileSystemKind,
    InMemoryProvider,
    NativeProvider,
    ReadEncoding,
    resolve_uri,
)
from .session import Session, SessionState

__all__ = [
    "Entry",
    "EntryOptions",
    "FileSystemKind",
    "InMemoryProvider",
    "NativeProvider",
    "ReadEncoding",
    "SandboxFsError",
    "Session",
    "SessionConfig",
    "SessionState",
    "config",
    "errors",
    "filesystem",
    "load_config",
    "resolve_uri",
    "runtime",
    "session",
]
