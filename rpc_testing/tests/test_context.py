# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

from unittest.mock import Mock

import grpc
import pytest

from rpc_testing.config import CALLER, CALLER_METADATA_KEY
from rpc_testing.context import LocalServicerContext
from rpc_testing.errors import AbortError, RpcFailure


def test_default_invocation_metadata_carries_caller() -> None:
    context = LocalServicerContext()
    assert dict(context.invocation_metadata())[CALLER_METADATA_KEY] == CALLER
    assert context.is_active()
    assert context.time_remaining() is None
    assert context.peer() == "local"


def test_abort_raises_and_records_status() -> None:
    context = LocalServicerContext()
    with pytest.raises(AbortError) as excinfo:
        context.abort(grpc.StatusCode.INVALID_ARGUMENT, "Error: name required")
    assert excinfo.value.code == grpc.StatusCode.INVALID_ARGUMENT
    assert excinfo.value.details == "Error: name required"
    assert context.code() == grpc.StatusCode.INVALID_ARGUMENT
    assert context.details() == "Error: name required"
    assert not context.is_active()


def test_abort_with_ok_status_is_unknown() -> None:
    context = LocalServicerContext()
    with pytest.raises(AbortError):
        context.abort(grpc.StatusCode.OK, "fine")
    assert context.code() == grpc.StatusCode.UNKNOWN


def test_abort_with_status_sets_trailing_metadata() -> None:
    context = LocalServicerContext()
    status = Mock(code=grpc.StatusCode.NOT_FOUND, details="gone", trailing_metadata=(("key", "value"),))
    with pytest.raises(AbortError):
        context.abort_with_status(status)
    assert context.trailing_metadata() == (("key", "value"),)
    assert context.code() == grpc.StatusCode.NOT_FOUND


def test_failure_follows_status_code() -> None:
    context = LocalServicerContext()
    assert context.failure is None
    context.set_code(grpc.StatusCode.OK)
    assert context.failure is None
    context.set_code(grpc.StatusCode.NOT_FOUND)
    context.set_details("Error: user not found")
    failure = context.failure
    assert isinstance(failure, RpcFailure)
    assert failure == "Error: user not found"
    assert failure.code == grpc.StatusCode.NOT_FOUND


def test_callbacks_run_on_termination() -> None:
    context = LocalServicerContext()
    callback = Mock()
    assert context.add_callback(callback)
    callback.assert_not_called()
    context.terminate()
    callback.assert_called_once_with()
    assert not context.add_callback(callback)


def test_initial_metadata_is_sent_once() -> None:
    context = LocalServicerContext()
    context.send_initial_metadata((("key", "value"),))
    assert context.initial_metadata() == (("key", "value"),)
    with pytest.raises(ValueError):
        context.send_initial_metadata((("key", "value"),))
