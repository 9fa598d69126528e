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

"""Property-based tests for URI normalization."""

from __future__ import annotations

from hypothesis import given, strategies as st

from sandboxfs.filesystem import SANDBOX_PREFIXES, join_path, resolve_uri

_segment = st.text(
    alphabet=st.characters(blacklist_characters=":/", blacklist_categories=("Cs",)),
    min_size=0,
    max_size=8,
)
_paths = st.lists(_segment, max_size=6).map("/".join)
_schemes = st.sampled_from(["file", "cdvfile", "filesystem", "memory"])


@given(scheme=_schemes, path=_paths)
def test_resolution_is_idempotent(scheme: str, path: str) -> None:
    once = resolve_uri(f"{scheme}://{path}")
    assert resolve_uri(once.uri) == once
    assert not once.segments or once.segments[0] not in SANDBOX_PREFIXES


@given(scheme=_schemes, path=_paths)
def test_segments_are_trimmed_and_non_empty(scheme: str, path: str) -> None:
    resolved = resolve_uri(f"{scheme}:{path}")
    assert resolved.scheme == scheme
    for segment in resolved.segments:
        assert segment
        assert segment == segment.strip()
        assert "/" not in segment


@given(path=_paths)
def test_bare_paths_use_file_scheme(path: str) -> None:
    assert resolve_uri(path).scheme == "file"


@given(base=_paths, path=_paths)
def test_join_path_is_absolute_and_normalized(base: str, path: str) -> None:
    joined = join_path("/" + base, path)
    assert joined.startswith("/")
    assert "//" not in joined
    assert join_path("/", joined) == joined
