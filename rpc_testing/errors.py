# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import typing

import grpc


class UnknownRpcMethodError(KeyError):
    """Raised when a method name is not registered for a gRPC service."""

    def __init__(self, service: typing.Any, method: str) -> None:
        super().__init__(method)
        self.service = service
        self.method = method

    def __str__(self) -> str:
        return f"{self.service} has no '{self.method}' RPC method"


class NotAServicerError(TypeError):
    """Raised when a class cannot be added to a gRPC server."""


class AbortError(Exception):
    """Raised by local servicer contexts when a call is aborted."""

    def __init__(self, code: grpc.StatusCode, details: str) -> None:
        super().__init__(f"{code.name}: {details}")
        self.code = code
        self.details = details


class RpcTimeoutError(TimeoutError):
    """Raised when a deferred RPC response does not complete in time."""


class RpcFailure(str):
    """
    The outcome of a failed RPC call.

    It is the failure details string, so it can be matched like one,
    with the failure status code attached.
    """

    code: grpc.StatusCode

    def __new__(cls, details: typing.Optional[str], code: grpc.StatusCode = grpc.StatusCode.UNKNOWN) -> "RpcFailure":
        failure = super().__new__(cls, details or "")
        failure.code = code
        return failure

    def __repr__(self) -> str:
        return f"RpcFailure({str(self)!r}, code={self.code})"

    @classmethod
    def from_rpc_error(cls, error: grpc.RpcError) -> "RpcFailure":
        """Builds a failure from a client side `grpc.RpcError`, if it carries a status."""
        code = error.code() if hasattr(error, "code") else grpc.StatusCode.UNKNOWN
        details = error.details() if hasattr(error, "details") else str(error)
        return cls(details, code)
