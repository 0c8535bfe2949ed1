# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import dataclasses
import functools
import sys
import types
import typing

import grpc
import inflection
from google.protobuf import descriptor_pool, message_factory
from google.protobuf.descriptor import MethodDescriptor
from google.protobuf.message import Message

from rpc_testing.errors import NotAServicerError, UnknownRpcMethodError


class GenericRpcHandlerAccumulator:
    """A helper class to use in place of a `grpc.Server` to inspect handlers."""

    def __init__(self) -> None:
        self.method_handlers: typing.Dict[str, typing.Dict[str, grpc.RpcMethodHandler]] = {}

    @property
    def service_names(self) -> typing.Iterable[str]:
        """Yields all fully qualified service names known to the accumulator."""
        yield from self.method_handlers

    def add_generic_rpc_handlers(self, handlers: typing.Iterable[grpc.GenericRpcHandler]) -> None:
        """Implements `grpc.Server.add_generic_rpc_handlers`."""
        for handler in handlers:
            if not hasattr(handler, "service_name") or not hasattr(handler, "_method_handlers"):
                continue
            service_handlers = self.method_handlers.setdefault(handler.service_name(), {})
            for endpoint_name, method_handler in handler._method_handlers.items():
                _, _, method_name = endpoint_name.rpartition("/")
                service_handlers.setdefault(method_name, method_handler)

    def add_registered_method_handlers(
        self, service_name: str, method_handlers: typing.Mapping[str, grpc.RpcMethodHandler]
    ) -> None:
        """Implements `grpc.Server.add_registered_method_handlers`."""
        service_handlers = self.method_handlers.setdefault(service_name, {})
        for method_name, method_handler in method_handlers.items():
            service_handlers.setdefault(method_name, method_handler)


def collect_servicer_add_functions(
    servicer_class: typing.Any,
) -> typing.Iterable[typing.Callable]:
    """Yields all generated ``add_*_to_server`` functions associated with the given `servicer_class`."""
    for cls in servicer_class.__mro__:
        module = sys.modules[cls.__module__]
        servicer_add_function_name = f"add_{cls.__name__}_to_server"
        servicer_add = getattr(module, servicer_add_function_name, None)
        if callable(servicer_add):
            yield servicer_add


def collect_method_handlers(
    servicer: typing.Any,
) -> typing.Dict[str, typing.Dict[str, grpc.RpcMethodHandler]]:
    """
    Collects RPC method handlers for the given `servicer`, by service name.

    `servicer` may be an instance or a class. Handlers built for a class wrap
    unbound methods and are only good for inspection.
    """
    servicer_class = servicer if isinstance(servicer, type) else type(servicer)
    add_functions = list(collect_servicer_add_functions(servicer_class))
    if not add_functions:
        raise NotAServicerError(f"{servicer_class.__qualname__} is not a gRPC servicer")
    accumulator = GenericRpcHandlerAccumulator()
    for add in add_functions:
        add(servicer, accumulator)
    return accumulator.method_handlers


@dataclasses.dataclass(frozen=True)
class RpcMethod:
    """
    A gRPC service method, as declared.

    Attributes:
        name: unqualified method name e.g. ``CreateUser``.
        service_name: fully qualified service name e.g. ``users.UserService``.
        request_type: declared request message class.
        response_type: declared response message class.
        request_streaming: whether the method takes a stream of requests.
        response_streaming: whether the method returns a stream of responses.
        descriptor: protobuf method descriptor.
    """

    name: str
    service_name: str
    request_type: typing.Type[Message]
    response_type: typing.Type[Message]
    request_streaming: bool = False
    response_streaming: bool = False
    descriptor: typing.Optional[MethodDescriptor] = None

    @property
    def full_name(self) -> str:
        """Method path, as seen on the wire."""
        return f"/{self.service_name}/{self.name}"


@functools.lru_cache(maxsize=None)
def _qualified_registry_for(servicer_class: type) -> typing.Mapping[typing.Tuple[str, str], RpcMethod]:
    pool = descriptor_pool.Default()
    registry: typing.Dict[typing.Tuple[str, str], RpcMethod] = {}
    for service_name, method_handlers in collect_method_handlers(servicer_class).items():
        service_descriptor = pool.FindServiceByName(service_name)
        for method_name, method_handler in method_handlers.items():
            method_descriptor = service_descriptor.methods_by_name[method_name]
            registry[(service_name, method_name)] = RpcMethod(
                name=method_name,
                service_name=service_name,
                request_type=message_factory.GetMessageClass(method_descriptor.input_type),
                response_type=message_factory.GetMessageClass(method_descriptor.output_type),
                request_streaming=method_handler.request_streaming,
                response_streaming=method_handler.response_streaming,
                descriptor=method_descriptor,
            )
    return types.MappingProxyType(registry)


@functools.lru_cache(maxsize=None)
def _registry_for(servicer_class: type) -> typing.Mapping[str, RpcMethod]:
    registry: typing.Dict[str, RpcMethod] = {}
    for (_, method_name), rpc_method in _qualified_registry_for(servicer_class).items():
        # Services registered first own unqualified method names.
        registry.setdefault(method_name, rpc_method)
    return types.MappingProxyType(registry)


def rpcs(service: typing.Any) -> typing.Mapping[str, RpcMethod]:
    """
    Returns the RPC method registry of a gRPC `service` class or instance, by method name.

    When more than one service declares a method name, the first service registered owns it.
    See `qualified_rpcs` for all methods.
    """
    servicer_class = service if isinstance(service, type) else type(service)
    return _registry_for(servicer_class)


def qualified_rpcs(service: typing.Any) -> typing.Mapping[typing.Tuple[str, str], RpcMethod]:
    """Returns the RPC method registry of a gRPC `service` class or instance, by service and method names."""
    servicer_class = service if isinstance(service, type) else type(service)
    return _qualified_registry_for(servicer_class)


def lookup_rpc_method(service: typing.Any, method: str) -> RpcMethod:
    """
    Looks up an RPC `method` of a gRPC `service`.

    Method names are looked up verbatim first. Failing that, they are camelized,
    so that ``create_user`` resolves ``CreateUser``. Method names may be qualified
    by their service name, as in ``admin.AdminService/Create``, for servicers that
    implement more than one service.
    """
    servicer_class = service if isinstance(service, type) else type(service)
    method = str(method)
    service_name, _, method_name = method.lstrip("/").rpartition("/")
    if service_name:
        qualified_registry = _qualified_registry_for(servicer_class)
        for candidate_name in (method_name, inflection.camelize(method_name)):
            if (service_name, candidate_name) in qualified_registry:
                return qualified_registry[(service_name, candidate_name)]
        raise UnknownRpcMethodError(servicer_class.__qualname__, method)
    registry = _registry_for(servicer_class)
    if method in registry:
        return registry[method]
    camelized_method = inflection.camelize(method)
    if camelized_method in registry:
        return registry[camelized_method]
    raise UnknownRpcMethodError(servicer_class.__qualname__, method)


def service_names(service: typing.Any) -> typing.List[str]:
    """Returns the fully qualified names of all services a gRPC `service` implements."""
    return list(collect_method_handlers(service))


def request_class(service: typing.Any, method: str) -> typing.Type[Message]:
    """
    Returns the request class for a given `method` of a gRPC `service`.

    .. code-block:: python

       request_class(UserServicer, "Create")  # => CreateUserRequest
    """
    return lookup_rpc_method(service, method).request_type


def response_class(service: typing.Any, method: str) -> typing.Type[Message]:
    """
    Returns the response class for a given `method` of a gRPC `service`.

    .. code-block:: python

       response_class(UserServicer, "Create")  # => User
    """
    return lookup_rpc_method(service, method).response_type
