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

from __future__ import annotations

from typing import Protocol

import pytest

from sandboxfs.filesystem import FileSystemKind, InMemoryProvider, NativeProvider
from sandboxfs.session import Session
from tests.helpers import RecordingBus, run


class SessionFactory(Protocol):
    def __call__(
        self,
        *,
        provider: NativeProvider | None = None,
        kind: FileSystemKind = FileSystemKind.PERSISTENT,
        quota: int = 1024,
    ) -> tuple[Session, RecordingBus]:
        """Return an initialized session and the bus it publishes to."""


@pytest.fixture
def provider() -> InMemoryProvider:
    return InMemoryProvider()


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def session_factory() -> SessionFactory:
    """Return a factory that creates ready session and bus pairs."""

    def factory(
        *,
        provider: NativeProvider | None = None,
        kind: FileSystemKind = FileSystemKind.PERSISTENT,
        quota: int = 1024,
    ) -> tuple[Session, RecordingBus]:
        bus = RecordingBus()
        session = Session(
            provider=provider if provider is not None else InMemoryProvider(),
            bus=bus,
        )
        _ = run(session.initialize(kind, quota))
        return session, bus

    return factory


@pytest.fixture
def session(session_factory: SessionFactory) -> Session:
    ready, _ = session_factory()
    return ready
