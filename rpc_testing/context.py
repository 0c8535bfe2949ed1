# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import logging
import typing

import grpc

from rpc_testing.config import CALLER, CALLER_METADATA_KEY
from rpc_testing.errors import AbortError, RpcFailure

logger = logging.getLogger(__name__)

Metadata = typing.Tuple[typing.Tuple[str, typing.Union[str, bytes]], ...]


class LocalServicerContext(grpc.ServicerContext):
    """
    A `grpc.ServicerContext` for in-process calls.

    It records everything a servicer sets on it: status code, details, and metadata.
    Aborting raises `AbortError`, for helpers to catch and turn into call outcomes.
    """

    def __init__(
        self,
        invocation_metadata: typing.Optional[Metadata] = None,
        *,
        peer: str = "local",
        timeout: typing.Optional[float] = None,
    ) -> None:
        if invocation_metadata is None:
            invocation_metadata = ((CALLER_METADATA_KEY, CALLER),)
        self._invocation_metadata = tuple(invocation_metadata)
        self._peer = peer
        self._timeout = timeout
        self._active = True
        self._callbacks: typing.List[typing.Callable[[], None]] = []
        self._code: typing.Optional[grpc.StatusCode] = None
        self._details: typing.Optional[str] = None
        self._compression: typing.Optional[grpc.Compression] = None
        self._initial_metadata: typing.Optional[Metadata] = None
        self._trailing_metadata: typing.Optional[Metadata] = None
        self._compression_disabled = False

    def is_active(self) -> bool:
        return self._active

    def time_remaining(self) -> typing.Optional[float]:
        return self._timeout

    def cancel(self) -> None:
        self._active = False
        self._code = self._code or grpc.StatusCode.CANCELLED

    def add_callback(self, callback: typing.Callable[[], None]) -> bool:
        if not self._active:
            return False
        self._callbacks.append(callback)
        return True

    def invocation_metadata(self) -> Metadata:
        return self._invocation_metadata

    def peer(self) -> str:
        return self._peer

    def peer_identities(self) -> typing.Optional[typing.Iterable[bytes]]:
        return None

    def peer_identity_key(self) -> typing.Optional[str]:
        return None

    def auth_context(self) -> typing.Mapping[str, typing.Iterable[bytes]]:
        return {}

    def set_compression(self, compression: grpc.Compression) -> None:
        self._compression = compression

    def send_initial_metadata(self, initial_metadata: Metadata) -> None:
        if self._initial_metadata is not None:
            raise ValueError("initial metadata already sent")
        self._initial_metadata = tuple(initial_metadata)

    def initial_metadata(self) -> typing.Optional[Metadata]:
        return self._initial_metadata

    def set_trailing_metadata(self, trailing_metadata: Metadata) -> None:
        self._trailing_metadata = tuple(trailing_metadata)

    def trailing_metadata(self) -> typing.Optional[Metadata]:
        return self._trailing_metadata

    def abort(self, code: grpc.StatusCode, details: str) -> typing.NoReturn:
        if code == grpc.StatusCode.OK:
            logger.error("abort() called with StatusCode.OK; returning UNKNOWN")
            code = grpc.StatusCode.UNKNOWN
        self._code = code
        self._details = details
        self._active = False
        raise AbortError(code, details)

    def abort_with_status(self, status: grpc.Status) -> typing.NoReturn:
        self.set_trailing_metadata(status.trailing_metadata)
        self.abort(status.code, status.details)

    def set_code(self, code: grpc.StatusCode) -> None:
        self._code = code

    def code(self) -> typing.Optional[grpc.StatusCode]:
        return self._code

    def set_details(self, details: str) -> None:
        self._details = details

    def details(self) -> typing.Optional[str]:
        return self._details

    def disable_next_message_compression(self) -> None:
        self._compression_disabled = True

    @property
    def failure(self) -> typing.Optional[RpcFailure]:
        """Call failure, if a non-OK status code was set."""
        if self._code is None or self._code == grpc.StatusCode.OK:
            return None
        return RpcFailure(self._details, self._code)

    def terminate(self) -> None:
        """Terminates the call, running all registered callbacks."""
        self._active = False
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()
