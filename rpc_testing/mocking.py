# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import logging
import typing
from unittest import mock

from rpc_testing.config import DEFAULT_CLIENT_ACCESSOR

logger = logging.getLogger(__name__)

def _yielding(value: typing.Any) -> typing.Callable:
    def side_effect(handler: typing.Callable[[typing.Any], typing.Any]) -> typing.Any:
        handler(value)
        return mock.DEFAULT

    return side_effect


class ClientMock:
    """
    A stubbed out service client, to test client -> service calls.

    On start, the service client accessor is patched to return a ``Client`` double.
    Calling the mocked method on the double yields the double to any configuration
    callable given and returns the double, for handlers to be registered on it. When
    armed, ``on_success`` and ``on_failure`` handlers are invoked immediately.

    Attributes:
        client: the client double.
    """

    def __init__(
        self,
        klass: typing.Any,
        method: str,
        *,
        request: typing.Any = None,
        success: typing.Any = None,
        failure: typing.Any = None,
        assert_request: typing.Optional[typing.Callable[[typing.Any], None]] = None,
        accessor: str = DEFAULT_CLIENT_ACCESSOR,
    ) -> None:
        self.klass = klass
        self.method = method
        self.accessor = accessor
        self._expected_request = request
        self._assert_request = assert_request
        self._mismatches: typing.List[str] = []

        self.client = mock.Mock(name="Client")
        self.client.on_success.return_value = True
        self.client.on_failure.return_value = True
        getattr(self.client, method).side_effect = self._receive
        if success is not None:
            self.client.on_success.side_effect = _yielding(success)
        if failure is not None:
            self.client.on_failure.side_effect = _yielding(failure)

        self._patcher = mock.patch.object(klass, accessor, create=True, return_value=self.client)
        self._started = False

    @property
    def calls(self) -> typing.List[typing.Any]:
        """Calls made to the mocked method."""
        return getattr(self.client, self.method).call_args_list

    def _receive(self, *args: typing.Any, **kwargs: typing.Any) -> typing.Any:
        given_request = args[0] if args else kwargs.get("request")
        if self._expected_request is not None:
            if given_request != self._expected_request:
                message = (
                    f"Client received {self.method} with unexpected request\n"
                    f"  expected: {self._expected_request!r}\n"
                    f"       got: {given_request!r}"
                )
                self._mismatches.append(message)
                raise AssertionError(message)
        elif self._assert_request is not None:
            self._assert_request(given_request)

        configure = kwargs.get("configure")
        if configure is None:
            configure = next((arg for arg in args[1:] if callable(arg)), None)
        if configure is not None:
            configure(self.client)
        return self.client

    def start(self) -> mock.Mock:
        """Patches the service client accessor, returning the client double."""
        if self._started:
            raise RuntimeError("client mock already started")
        logger.debug("Mocking %r.%s().%s", self.klass, self.accessor, self.method)
        self._patcher.start()
        self._started = True
        return self.client

    def stop(self) -> None:
        """Restores the service client accessor."""
        if self._started:
            self._patcher.stop()
            self._started = False

    def verify(self) -> None:
        """
        Verifies the mocked method was called exactly once, as expected.

        Raises:
            AssertionError: if it was not.
        """
        if self._mismatches:
            raise AssertionError(self._mismatches[0])
        getattr(self.client, self.method).assert_called_once()

    def __enter__(self) -> mock.Mock:
        return self.start()

    def __exit__(self, exc_type: typing.Any, *exc: typing.Any) -> None:
        self.stop()
        if exc_type is None:
            self.verify()


def mock_rpc(
    klass: typing.Any,
    method: str,
    *,
    request: typing.Any = None,
    success: typing.Any = None,
    response: typing.Any = None,
    failure: typing.Any = None,
    error: typing.Any = None,
    assert_request: typing.Optional[typing.Callable[[typing.Any], None]] = None,
    accessor: str = DEFAULT_CLIENT_ACCESSOR,
) -> ClientMock:
    """
    Creates a mock service client that responds the way you expect, to aid in testing
    client -> service calls.

    To test a success handler, provide a `success` object. To test a failure handler,
    provide a `failure` object. `response` and `error` are accepted as aliases.

    The request can be asserted in one of two ways. To compare it directly, provide
    the expected `request`. To check it yourself, e.g. only a few of its fields, provide
    an `assert_request` callable that will be called with the given request. If both are
    provided, `assert_request` is ignored.

    .. code-block:: python

       # Code under test
       def create_user(request):
           status = "unknown"

           def configure(call):
               def on_success(response):
                   nonlocal status
                   status = response.status

               call.on_success(on_success)

           UserService.client().create(request, configure)
           return status

       # Test
       def test_create_user_succeeds():
           response = Mock(status="success")
           with mock_rpc(UserService, "create", success=response):
               assert create_user(request) == "success"

    Args:
        klass: service class, the owner of the client accessor.
        method: name of the client method to mock.
        request: expected request, if any. `None` sets no expectation.
        success: value to yield to success handlers, if any.
        response: alias for `success`.
        failure: value to yield to failure handlers, if any.
        error: alias for `failure`.
        assert_request: optional callable to assert the given request.
        accessor: name of the client accessor on `klass`.

    Returns:
        the client mock, to be used as a context manager or started and stopped explicitly.
    """
    return ClientMock(
        klass,
        method,
        request=request,
        success=success if success is not None else response,
        failure=failure if failure is not None else error,
        assert_request=assert_request,
        accessor=accessor,
    )


mock_service = mock_rpc
mock_remote_service = mock_rpc
