# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import functools
import logging
import typing

import grpc
import inflection

logger = logging.getLogger(__name__)

Handler = typing.Callable[[typing.Any], typing.Any]


class Call:
    """A callback-style RPC call, for success and failure handlers to be registered on."""

    def __init__(self, method_name: str) -> None:
        self.method_name = method_name
        self._success_handlers: typing.List[Handler] = []
        self._failure_handlers: typing.List[Handler] = []

    def on_success(self, handler: Handler) -> bool:
        """Registers a `handler` to be called with the response, if the call succeeds."""
        self._success_handlers.append(handler)
        return True

    def on_failure(self, handler: Handler) -> bool:
        """Registers a `handler` to be called with the error, if the call fails."""
        self._failure_handlers.append(handler)
        return True

    def succeed(self, response: typing.Any) -> None:
        for handler in self._success_handlers:
            handler(response)

    def fail(self, error: typing.Any) -> None:
        for handler in self._failure_handlers:
            handler(error)


class CallbackClient:
    """
    A callback-style gRPC client.

    It wraps a generated gRPC stub. Calling a method runs the RPC synchronously and
    dispatches the outcome to the handlers registered by the configuration callable.

    .. code-block:: python

       client = CallbackClient(UserServiceStub(channel))

       def configure(call):
           call.on_success(lambda user: print(user.name))
           call.on_failure(lambda error: print(error.details()))

       client.create(CreateUserRequest(name="Jack"), configure)
    """

    def __init__(self, stub: typing.Any, *, timeout: typing.Optional[float] = None) -> None:
        """
        Args:
            stub: generated gRPC stub.
            timeout: default time in seconds for calls to complete.
        """
        self._stub = stub
        self._timeout = timeout

    def __getattr__(self, name: str) -> typing.Callable[..., Call]:
        if name.startswith("_"):
            raise AttributeError(name)
        method_name = name if hasattr(self._stub, name) else inflection.camelize(name)
        multicallable = getattr(self._stub, method_name)
        return functools.partial(self._call, method_name, multicallable)

    def _call(
        self,
        method_name: str,
        multicallable: grpc.UnaryUnaryMultiCallable,
        request: typing.Any,
        configure: typing.Optional[typing.Callable[[Call], None]] = None,
        *,
        timeout: typing.Optional[float] = None,
        metadata: typing.Optional[typing.Sequence[typing.Tuple[str, str]]] = None,
    ) -> Call:
        call = Call(method_name)
        if configure is not None:
            configure(call)
        try:
            response = multicallable(request, timeout=timeout or self._timeout, metadata=metadata)
        except grpc.RpcError as e:
            logger.debug("%s failed: %s", method_name, e)
            call.fail(e)
        else:
            call.succeed(response)
        return call
