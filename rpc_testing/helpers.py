# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import typing

import grpc
from google.protobuf.message import Message

from rpc_testing import env, local, mocking, registry, stack
from rpc_testing.config import DEFAULT_TIMEOUT


class RpcHelpers:
    """
    RPC test helpers bound to a subject service.

    .. code-block:: python

       helpers = RpcHelpers(UserServicer)
       assert helpers.local_rpc("Create", {"name": "Jack"}).name == "Jack"
       assert helpers.request_class("Create") is CreateUserRequest

    Attributes:
        subject_service: gRPC servicer class or instance under test.
        interceptors: server interceptors for full stack calls.
        timeout: time in seconds to wait for deferred responses.
    """

    def __init__(
        self,
        subject_service: typing.Any,
        interceptors: typing.Sequence[grpc.ServerInterceptor] = (),
        *,
        timeout: typing.Optional[float] = DEFAULT_TIMEOUT,
    ) -> None:
        self.subject_service = subject_service
        self.interceptors = tuple(interceptors)
        self.timeout = timeout

    def local_rpc(
        self,
        method: str,
        request: env.Request,
        configure: typing.Optional[typing.Callable[[typing.Any], None]] = None,
    ) -> typing.Any:
        """Calls a local RPC `method` on the subject service. See `rpc_testing.local.local_rpc`."""
        return local.local_rpc(self.subject_service, method, request, configure, timeout=self.timeout)

    def rpc(self, method: str, request: env.Request) -> typing.Any:
        """Calls an RPC `method` on the subject service through interceptors. See `rpc_testing.stack.rpc`."""
        return stack.rpc(self.subject_service, method, request, self.interceptors, timeout=self.timeout)

    def rpc_env(self, method: str, request: env.Request) -> env.RpcEnv:
        """Initializes an RPC environment for the subject service. See `rpc_testing.env.rpc_env`."""
        return env.rpc_env(self.subject_service, method, request)

    env_for_request = rpc_env

    def wrapped_request(self, method: str, request: env.Request) -> env.WrappedRequest:
        return env.wrapped_request(self.subject_service, method, request)

    def rpcs(self) -> typing.Mapping[str, registry.RpcMethod]:
        return registry.rpcs(self.subject_service)

    def request_class(self, method: str) -> typing.Type[Message]:
        """Returns the request class for a given `method` of the subject service."""
        return registry.request_class(self.subject_service, method)

    def response_class(self, method: str) -> typing.Type[Message]:
        """Returns the response class for a given `method` of the subject service."""
        return registry.response_class(self.subject_service, method)

    @staticmethod
    def mock_rpc(klass: typing.Any, method: str, **kwargs: typing.Any) -> mocking.ClientMock:
        """Creates a client mock. See `rpc_testing.mocking.mock_rpc`."""
        return mocking.mock_rpc(klass, method, **kwargs)

    mock_service = mock_rpc
    mock_remote_service = mock_rpc
