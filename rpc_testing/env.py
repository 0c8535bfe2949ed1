# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import collections.abc
import dataclasses
import typing

from google.protobuf.message import Message

from rpc_testing.config import CALLER, CALLER_METADATA_KEY
from rpc_testing.context import LocalServicerContext
from rpc_testing.errors import RpcFailure
from rpc_testing.registry import RpcMethod, lookup_rpc_method

Request = typing.Union[Message, typing.Mapping[str, typing.Any], typing.Iterable[typing.Any]]


@dataclasses.dataclass
class RpcEnv:
    """
    An RPC invocation environment, as a dispatch would see it.

    Attributes:
        caller: tag of the call originator.
        service_name: fully qualified service name.
        method_name: unqualified method name.
        request: request message, or sequence of messages for request-streaming methods.
        request_type: declared request message class.
        response_type: declared response message class.
        rpc_method: method registry entry.
        rpc_service: servicer class.
        context: servicer context for the call.
        response: call response, once dispatched and if successful.
        failure: call failure, once dispatched and if failed.
    """

    caller: str
    service_name: str
    method_name: str
    request: typing.Any
    request_type: typing.Optional[typing.Type[Message]]
    response_type: typing.Optional[typing.Type[Message]]
    rpc_method: typing.Optional[RpcMethod]
    rpc_service: typing.Any
    context: LocalServicerContext = dataclasses.field(default_factory=LocalServicerContext)
    response: typing.Any = None
    failure: typing.Optional[RpcFailure] = None

    @property
    def failed(self) -> bool:
        """Whether the call failed."""
        return self.failure is not None

    @property
    def outcome(self) -> typing.Any:
        """Call response if successful, call failure otherwise."""
        if self.failure is not None:
            return self.failure
        return self.response


@dataclasses.dataclass(frozen=True)
class WrappedRequest:
    """The request wrapper that would be sent over the wire for an RPC call."""

    service_name: str
    method_name: str
    request_proto: typing.Union[bytes, typing.List[bytes]]
    caller: str = CALLER

    @property
    def full_method_name(self) -> str:
        return f"/{self.service_name}/{self.method_name}"


def coerce_request(request_type: typing.Type[Message], request: Request) -> typing.Any:
    """
    Coerces `request` into a `request_type` message.

    Mappings are used as message constructor keyword arguments. Messages pass through.
    Constructor errors, such as unknown fields, propagate.
    """
    if isinstance(request, collections.abc.Mapping):
        return request_type(**request)
    return request


def build_request(rpc_method: RpcMethod, request: Request) -> typing.Any:
    """Builds the request for `rpc_method`, coercing every message in a request stream."""
    if rpc_method.request_streaming and not isinstance(request, (Message, collections.abc.Mapping)):
        return [coerce_request(rpc_method.request_type, item) for item in request]
    return coerce_request(rpc_method.request_type, request)


def rpc_env(service: typing.Any, method: str, request: Request) -> RpcEnv:
    """
    Initializes a new RPC environment simulating what a dispatch would build.

    Useful to test a servicer directly without `local_rpc` or `rpc`.

    .. code-block:: python

       env = rpc_env(UserServicer, "Create", {"name": "Jack"})
       response = UserServicer().Create(env.request, env.context)
       assert response.name == "Jack"

    Args:
        service: gRPC servicer class or instance.
        method: method name, either verbatim or in snake case.
        request: request message of the expected type, or a mapping of its fields.

    Returns:
        the environment derived from the request.
    """
    rpc_method = lookup_rpc_method(service, method)
    servicer_class = service if isinstance(service, type) else type(service)
    return RpcEnv(
        caller=CALLER,
        service_name=rpc_method.service_name,
        method_name=rpc_method.name,
        request=build_request(rpc_method, request),
        request_type=rpc_method.request_type,
        response_type=rpc_method.response_type,
        rpc_method=rpc_method,
        rpc_service=servicer_class,
        context=LocalServicerContext(((CALLER_METADATA_KEY, CALLER),)),
    )


env_for_request = rpc_env


def wrapped_request(service: typing.Any, method: str, request: Request) -> WrappedRequest:
    """
    Returns the request wrapper that is encoded and sent over the wire
    when calling an RPC `method` with the given `request`.
    """
    rpc_method = lookup_rpc_method(service, method)
    request = build_request(rpc_method, request)
    if rpc_method.request_streaming and isinstance(request, list):
        request_proto: typing.Union[bytes, typing.List[bytes]] = [item.SerializeToString() for item in request]
    else:
        request_proto = request.SerializeToString()
    return WrappedRequest(
        service_name=rpc_method.service_name,
        method_name=rpc_method.name,
        request_proto=request_proto,
    )
