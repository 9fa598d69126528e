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

"""URI and path normalization utilities.

Constants:
    DEFAULT_SCHEME: Scheme assumed for bare paths ("file")
    SANDBOX_PREFIXES: Leading segments stripped from sandbox URLs

Functions:
    resolve_uri: Split a URI into a scheme and normalized path segments
    join_path: Resolve a relative or absolute path against a directory path
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from ..errors import MalformedURIError

DEFAULT_SCHEME: Final[str] = "file"
SANDBOX_PREFIXES: Final[frozenset[str]] = frozenset({"private", "localhost"})


@dataclass(slots=True, frozen=True)
class ResolvedURI:
    """Normalized form of a scheme-qualified path.

    Attributes:
        scheme: URI scheme, ``"file"`` when the input had none.
        segments: Ordered, non-empty path segments.
    """

    scheme: str
    segments: tuple[str, ...]

    @property
    def path(self) -> str:
        """Absolute slash-separated path, ``"/"`` for the root."""
        return "/" + "/".join(self.segments)

    @property
    def uri(self) -> str:
        """Reconstructed ``scheme:///joined/segments`` URI."""
        return f"{self.scheme}:///" + "/".join(self.segments)


def resolve_uri(uri: str) -> ResolvedURI:
    """Normalize ``uri`` into a scheme and path segments.

    This function:
    - Splits on ``:``; more than one separator is malformed
    - Defaults the scheme to ``file`` when none is given
    - Trims each ``/``-separated segment and drops empty ones
    - Drops a ``private`` or ``localhost`` segment only when it is first

    Args:
        uri: Scheme-qualified (``file:///a/b``) or bare (``a/b``) path.

    Returns:
        The normalized scheme and segments.

    Raises:
        MalformedURIError: ``uri`` contains more than one ``:``.

    Examples:
        >>> resolve_uri("file:///private/var/x").uri
        'file:///var/x'
        >>> resolve_uri("docs/readme.txt").scheme
        'file'
    """
    parts = uri.split(":")
    if len(parts) > 2:
        msg = f"The URI is not well-formed; too many scheme separators: {uri!r}"
        raise MalformedURIError(msg)
    if len(parts) == 1:
        scheme, path = DEFAULT_SCHEME, parts[0]
    else:
        scheme, path = parts

    segments: list[str] = []
    for raw in path.split("/"):
        segment = raw.strip()
        if not segment:
            continue
        if not segments and segment in SANDBOX_PREFIXES:
            continue
        segments.append(segment)
    return ResolvedURI(scheme=scheme, segments=tuple(segments))


def join_path(base: str, path: str) -> str:
    """Resolve ``path`` against the directory ``base``.

    Absolute paths (leading ``/``) ignore ``base``. ``.`` segments are
    dropped and ``..`` pops a segment, never climbing above the root.

    Examples:
        >>> join_path("/docs", "../img/a.png")
        '/img/a.png'
        >>> join_path("/docs", "/etc")
        '/etc'
    """
    stack: list[str] = [] if path.startswith("/") else _split(base)
    for segment in _split(path):
        if segment == ".":
            continue
        if segment == "..":
            if stack:
                _ = stack.pop()
        else:
            stack.append(segment)
    return "/" + "/".join(stack)


def _split(path: str) -> list[str]:
    return [s for s in (part.strip() for part in path.split("/")) if s]


__all__ = [
    "DEFAULT_SCHEME",
    "SANDBOX_PREFIXES",
    "ResolvedURI",
    "join_path",
    "resolve_uri",
]
