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

"""Native provider protocol, entry types and URI normalization.

This module provides the `NativeProvider` protocol that abstracts over
sandboxed filesystem backends (browser storage, hybrid app containers,
in-memory trees) so a :class:`sandboxfs.session.Session` can sequence file
operations without coupling to a specific host.

Example usage::

    from sandboxfs.filesystem import InMemoryProvider, resolve_uri

    resolve_uri("file:///private/var/x").uri  # 'file:///var/x'
    provider = InMemoryProvider(batch_size=10)
"""

from __future__ import annotations

from ._memory import DEFAULT_BATCH_SIZE, InMemoryProvider
from ._path import DEFAULT_SCHEME, SANDBOX_PREFIXES, ResolvedURI, join_path, resolve_uri
from ._protocol import DirectoryReader, FileWriter, NativeProvider, QuotaProvider
from ._types import (
    CREATE_IF_MISSING,
    Entry,
    EntryOptions,
    FileContents,
    FileObject,
    FileSystemHandle,
    FileSystemKind,
    ReadEncoding,
)

__all__ = [
    "CREATE_IF_MISSING",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_SCHEME",
    "SANDBOX_PREFIXES",
    "DirectoryReader",
    "Entry",
    "EntryOptions",
    "FileContents",
    "FileObject",
    "FileSystemHandle",
    "FileSystemKind",
    "FileWriter",
    "InMemoryProvider",
    "NativeProvider",
    "QuotaProvider",
    "ReadEncoding",
    "ResolvedURI",
    "join_path",
    "resolve_uri",
]
