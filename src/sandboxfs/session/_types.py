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

"""Shared types for session modules."""

from __future__ import annotations

from enum import Enum

from ..filesystem import Entry

type PathSpec = Entry | str
"""An already-resolved entry (used as-is) or a path resolved against the CWD."""


class SessionState(Enum):
    """Lifecycle of a :class:`Session`.

    ``UNINITIALIZED -> INITIALIZING -> READY``; a failing initialization ends
    in ``FAILED``, from which ``initialize`` may be retried.
    """

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


__all__ = ["PathSpec", "SessionState"]
