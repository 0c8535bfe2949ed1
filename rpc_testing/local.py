# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import concurrent.futures
import logging
import typing

import grpc
from google.protobuf.message import Message

from rpc_testing.config import DEFAULT_TIMEOUT
from rpc_testing.env import Request, RpcEnv, rpc_env
from rpc_testing.errors import AbortError, RpcFailure, RpcTimeoutError

logger = logging.getLogger(__name__)


def await_deferred(response: typing.Any, method_name: str, timeout: typing.Optional[float]) -> typing.Any:
    """
    Waits for a deferred `response`, if it is one.

    Servicers may defer their response by returning a `concurrent.futures.Future`.

    Raises:
        RpcTimeoutError: if the deferred response does not complete within `timeout` seconds.
    """
    if not isinstance(response, concurrent.futures.Future):
        return response
    try:
        return response.result(timeout=timeout)
    except concurrent.futures.TimeoutError as e:
        raise RpcTimeoutError(f"{method_name} did not respond within {timeout} seconds") from e


def capture_outcome(
    env: RpcEnv, call: typing.Callable[[], typing.Any], *, timeout: typing.Optional[float] = DEFAULT_TIMEOUT
) -> RpcEnv:
    """
    Runs `call` and fills `env` with its outcome.

    Call failures, signaled by aborting or by setting a non-OK status code, are
    captured in `env`. Any other error propagates.
    """
    full_method_name = f"/{env.service_name}/{env.method_name}"
    response = None
    try:
        response = await_deferred(call(), full_method_name, timeout)
    except AbortError as e:
        env.failure = RpcFailure(e.details, e.code)
    except grpc.RpcError as e:
        env.failure = RpcFailure.from_rpc_error(e)
    finally:
        env.context.terminate()
    if env.failure is None:
        env.failure = env.context.failure
    if env.failure is not None:
        logger.debug("%s failed: %r", full_method_name, env.failure)
        return env
    if response is None:
        logger.warning("%s returned no response and set no status code", full_method_name)
    env.response = response
    return env


def invoke(servicer: typing.Any, env: RpcEnv, *, timeout: typing.Optional[float] = DEFAULT_TIMEOUT) -> RpcEnv:
    """Invokes the RPC method in `env` on `servicer` directly, filling `env` with the outcome."""
    rpc_method = env.rpc_method
    handler = getattr(servicer, rpc_method.name)
    request = env.request
    if rpc_method.request_streaming:
        request = iter([request] if isinstance(request, Message) else request)

    def call() -> typing.Any:
        response = handler(request, env.context)
        if rpc_method.response_streaming:
            response = list(response)
        return response

    logger.debug("Invoking %s locally", rpc_method.full_name)
    return capture_outcome(env, call, timeout=timeout)


def local_rpc(
    service: typing.Any,
    method: str,
    request: Request,
    configure: typing.Optional[typing.Callable[[typing.Any], None]] = None,
    *,
    timeout: typing.Optional[float] = DEFAULT_TIMEOUT,
) -> typing.Any:
    """
    Calls a local RPC `method` to test responses and behavior based on the given `request`,
    without going through the underlying transport.

    .. code-block:: python

       class UserServicer(users_pb2_grpc.UserServiceServicer):
           def Create(self, request, context):
               if not request.name:
                   context.abort(grpc.StatusCode.INVALID_ARGUMENT, "Error: name required")
               return User.create_from_proto(request)

       def test_create_user():
           assert local_rpc(UserServicer, "Create", {"name": "Jack"}).name == "Jack"

       def test_create_nameless_user():
           assert "Error" in local_rpc(UserServicer, "Create", {"name": ""})

    Args:
        service: gRPC servicer class, to be instantiated without arguments, or instance.
        method: method name, either verbatim or in snake case.
        request: request message of the expected type, or a mapping of its fields.
        configure: optional callable to run on the servicer before the call,
            e.g. to set expectations on it.
        timeout: time in seconds to wait for deferred responses.

    Returns:
        the response message, or the call failure.
    """
    env = rpc_env(service, method, request)
    servicer = service() if isinstance(service, type) else service
    if configure is not None:
        configure(servicer)
    return invoke(servicer, env, timeout=timeout).outcome
