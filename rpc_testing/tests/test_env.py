# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import pytest

from rpc_testing.config import CALLER, CALLER_METADATA_KEY
from rpc_testing.env import env_for_request, rpc_env, wrapped_request
from rpc_testing.tests.protos import users_pb2
from rpc_testing.tests.services import UserServicer


def test_rpc_env() -> None:
    env = rpc_env(UserServicer, "Create", {"name": "Jack"})
    assert env.caller == CALLER
    assert env.service_name == "users.UserService"
    assert env.method_name == "Create"
    assert env.request == users_pb2.CreateUserRequest(name="Jack")
    assert env.request_type is users_pb2.CreateUserRequest
    assert env.response_type is users_pb2.User
    assert env.rpc_method.full_name == "/users.UserService/Create"
    assert env.rpc_service is UserServicer
    assert dict(env.context.invocation_metadata())[CALLER_METADATA_KEY] == CALLER
    assert env.response is None
    assert not env.failed


def test_rpc_env_for_servicer_instances() -> None:
    servicer = UserServicer()
    env = rpc_env(servicer, "create", users_pb2.CreateUserRequest(name="Jack"))
    assert env.method_name == "Create"
    assert env.rpc_service is UserServicer


def test_rpc_env_passes_messages_through() -> None:
    request = users_pb2.CreateUserRequest(name="Jack")
    env = env_for_request(UserServicer, "Create", request)
    assert env.request is request


def test_rpc_env_rejects_unknown_fields() -> None:
    with pytest.raises(ValueError):
        rpc_env(UserServicer, "Create", {"nickname": "Jack"})


def test_rpc_env_rejects_mistyped_fields() -> None:
    with pytest.raises(TypeError):
        rpc_env(UserServicer, "Create", {"name": 42})


def test_rpc_env_is_fresh_on_every_call() -> None:
    env = rpc_env(UserServicer, "Create", {"name": "Jack"})
    other_env = rpc_env(UserServicer, "Create", {"name": "Jack"})
    assert env.context is not other_env.context
    assert env.request is not other_env.request


def test_rpc_env_coerces_request_streams() -> None:
    env = rpc_env(UserServicer, "CreateUsers", [{"name": "Jack"}, users_pb2.CreateUserRequest(name="Jill")])
    assert env.request == [users_pb2.CreateUserRequest(name="Jack"), users_pb2.CreateUserRequest(name="Jill")]


def test_wrapped_request() -> None:
    request_wrapper = wrapped_request(UserServicer, "Create", {"name": "Jack"})
    assert request_wrapper.service_name == "users.UserService"
    assert request_wrapper.method_name == "Create"
    assert request_wrapper.caller == CALLER
    assert request_wrapper.full_method_name == "/users.UserService/Create"
    request = users_pb2.CreateUserRequest.FromString(request_wrapper.request_proto)
    assert request.name == "Jack"


def test_wrapped_request_stream() -> None:
    request_wrapper = wrapped_request(UserServicer, "CreateUsers", [{"name": "Jack"}, {"name": "Jill"}])
    names = [users_pb2.CreateUserRequest.FromString(chunk).name for chunk in request_wrapper.request_proto]
    assert names == ["Jack", "Jill"]
