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

"""Tests for the sandboxfs exception hierarchy."""

from __future__ import annotations

import pytest

from sandboxfs import errors
from sandboxfs.errors import (
    AlreadyExistsError,
    DirectoryStackEmptyError,
    MalformedURIError,
    MissingArgumentError,
    NativeOperationError,
    NotFoundError,
    SandboxFsError,
    SessionAlreadyInitializedError,
    SessionNotReadyError,
    SessionStateError,
    UnsupportedEncodingError,
)


@pytest.mark.parametrize("name", errors.__all__)
def test_every_error_derives_from_base(name: str) -> None:
    assert issubclass(getattr(errors, name), SandboxFsError)


@pytest.mark.parametrize(
    ("error_type", "builtin"),
    [
        (MissingArgumentError, ValueError),
        (MalformedURIError, ValueError),
        (UnsupportedEncodingError, ValueError),
        (NotFoundError, FileNotFoundError),
        (AlreadyExistsError, FileExistsError),
        (SessionNotReadyError, RuntimeError),
        (SessionAlreadyInitializedError, RuntimeError),
        (DirectoryStackEmptyError, IndexError),
    ],
)
def test_builtin_compatibility(
    error_type: type[SandboxFsError], builtin: type[Exception]
) -> None:
    assert issubclass(error_type, builtin)


def test_state_errors_share_base() -> None:
    for error_type in (
        SessionNotReadyError,
        SessionAlreadyInitializedError,
        DirectoryStackEmptyError,
    ):
        assert issubclass(error_type, SessionStateError)


def test_native_operation_error_records_operation() -> None:
    error = NativeOperationError("copy failed: boom", operation="copy")
    assert error.operation == "copy"
    assert str(error) == "copy failed: boom"


def test_not_found_is_caught_as_os_error() -> None:
    with pytest.raises(OSError):
        raise NotFoundError("/missing")
