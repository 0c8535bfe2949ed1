# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import collections
import logging
import typing

import grpc

from rpc_testing.config import CALLER_METADATA_KEY, DEFAULT_TIMEOUT
from rpc_testing.context import LocalServicerContext
from rpc_testing.env import Request, RpcEnv, WrappedRequest, wrapped_request
from rpc_testing.errors import RpcFailure
from rpc_testing.local import await_deferred, capture_outcome
from rpc_testing.registry import collect_method_handlers, qualified_rpcs

logger = logging.getLogger(__name__)


class _HandlerCallDetails(
    collections.namedtuple("_HandlerCallDetails", ("method", "invocation_metadata")),
    grpc.HandlerCallDetails,
):
    pass


def _identity(value: typing.Any) -> typing.Any:
    return value


class RpcStack:
    """
    An in-process gRPC dispatch pipeline.

    It resolves RPC method handlers through server interceptors, then decodes requests,
    runs handlers, and encodes responses just like a gRPC server would, with no transport.

    .. code-block:: python

       stack = RpcStack(UserServicer(), interceptors=[AuthInterceptor()])
       env = stack.call(wrapped_request(UserServicer, "Create", {"name": "Jack"}))
       assert env.response.name == "Jack"
    """

    def __init__(
        self,
        servicer: typing.Any,
        interceptors: typing.Sequence[grpc.ServerInterceptor] = (),
        *,
        timeout: typing.Optional[float] = DEFAULT_TIMEOUT,
    ) -> None:
        """
        Args:
            servicer: gRPC servicer instance to dispatch to.
            interceptors: server interceptors, the first one being the outermost.
            timeout: time in seconds to wait for deferred responses.
        """
        self.servicer = servicer
        self.interceptors = tuple(interceptors)
        self.timeout = timeout
        self._method_handlers = collect_method_handlers(servicer)

    def lookup_handler(self, handler_call_details: grpc.HandlerCallDetails) -> typing.Optional[grpc.RpcMethodHandler]:
        """Looks up the RPC method handler for a call, as the innermost continuation."""
        service_name, _, method_name = handler_call_details.method[1:].rpartition("/")
        return self._method_handlers.get(service_name, {}).get(method_name)

    def _intercept_at(self, index: int, handler_call_details: grpc.HandlerCallDetails) -> typing.Any:
        if index < len(self.interceptors):
            interceptor = self.interceptors[index]

            def continuation(details: grpc.HandlerCallDetails) -> typing.Any:
                return self._intercept_at(index + 1, details)

            return interceptor.intercept_service(continuation, handler_call_details)
        return self.lookup_handler(handler_call_details)

    def resolve(self, handler_call_details: grpc.HandlerCallDetails) -> typing.Optional[grpc.RpcMethodHandler]:
        """Resolves the RPC method handler for a call through all interceptors."""
        return self._intercept_at(0, handler_call_details)

    def call(self, request: WrappedRequest) -> RpcEnv:
        """
        Dispatches a wrapped request.

        Returns:
            the RPC environment, filled with the call outcome.
        """
        invocation_metadata = ((CALLER_METADATA_KEY, request.caller),)
        rpc_method = qualified_rpcs(self.servicer).get((request.service_name, request.method_name))
        env = RpcEnv(
            caller=request.caller,
            service_name=request.service_name,
            method_name=request.method_name,
            request=None,
            request_type=rpc_method.request_type if rpc_method else None,
            response_type=rpc_method.response_type if rpc_method else None,
            rpc_method=rpc_method,
            rpc_service=type(self.servicer),
            context=LocalServicerContext(invocation_metadata),
        )
        handler_call_details = _HandlerCallDetails(request.full_method_name, invocation_metadata)
        logger.debug("Dispatching %s", request.full_method_name)
        handler = self.resolve(handler_call_details)
        if handler is None:
            logger.debug("No handler for %s", request.full_method_name)
            env.failure = RpcFailure(f"Method not found: {request.full_method_name}", grpc.StatusCode.UNIMPLEMENTED)
            return env

        deserialize = handler.request_deserializer or _identity
        serialize = handler.response_serializer or _identity
        if handler.request_streaming:
            request_proto = request.request_proto
            if isinstance(request_proto, bytes):
                request_proto = [request_proto]
            env.request = [deserialize(item) for item in request_proto]
        else:
            env.request = deserialize(request.request_proto)

        if handler.response_streaming:
            if handler.request_streaming:
                behavior = handler.stream_stream
            else:
                behavior = handler.unary_stream
        else:
            if handler.request_streaming:
                behavior = handler.stream_unary
            else:
                behavior = handler.unary_unary

        def decode(response: typing.Any) -> typing.Any:
            if response is None:
                return None
            encoded_response = serialize(response)
            if env.response_type is not None and isinstance(encoded_response, bytes):
                return env.response_type.FromString(encoded_response)
            return encoded_response

        def invoke() -> typing.Any:
            if handler.request_streaming:
                response = behavior(iter(env.request), env.context)
            else:
                response = behavior(env.request, env.context)
            response = await_deferred(response, request.full_method_name, self.timeout)
            if handler.response_streaming:
                return [decode(item) for item in response]
            return decode(response)

        return capture_outcome(env, invoke, timeout=self.timeout)


def rpc(
    service: typing.Any,
    method: str,
    request: Request,
    interceptors: typing.Sequence[grpc.ServerInterceptor] = (),
    *,
    timeout: typing.Optional[float] = DEFAULT_TIMEOUT,
) -> typing.Any:
    """
    Makes an RPC call through the entire dispatch pipeline, interceptors included,
    without going through the underlying transport.

    Works the same as `local_rpc`, but it exercises interceptors and the wire codec.

    .. code-block:: python

       def test_find_user():
           response = rpc(UserServicer, "Find", {"guid": "USR-123"})
           assert response.name == "Jack"

    Args:
        service: gRPC servicer class, to be instantiated without arguments, or instance.
        method: method name, either verbatim or in snake case.
        request: request message of the expected type, or a mapping of its fields.
        interceptors: server interceptors to dispatch through.
        timeout: time in seconds to wait for deferred responses.

    Returns:
        the response message, or the call failure.
    """
    request_wrapper = wrapped_request(service, method, request)
    servicer = service() if isinstance(service, type) else service
    stack = RpcStack(servicer, interceptors, timeout=timeout)
    return stack.call(request_wrapper).outcome
