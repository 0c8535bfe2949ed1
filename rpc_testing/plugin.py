# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

"""
`pytest` plugin providing RPC test helpers as fixtures.

It is registered through the ``pytest11`` entry point on install.
"""

import typing
from unittest.mock import Mock

import grpc
import pytest

from rpc_testing import mocking
from rpc_testing.helpers import RpcHelpers

_call_failed_key = pytest.StashKey[bool]()


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers", "subject_service(service=...): gRPC servicer class or instance under test for RPC helpers"
    )


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo) -> typing.Iterator:
    outcome = yield
    report = outcome.get_result()
    if report.when == "call":
        item.stash[_call_failed_key] = report.failed


@pytest.fixture
def subject_service(request: pytest.FixtureRequest) -> typing.Any:
    """
    The gRPC servicer under test.

    It is taken from the closest ``subject_service`` marker or, failing that, from a
    ``described_class`` attribute of the test class or module. Override this fixture
    for anything else.

    .. code-block:: python

       @pytest.mark.subject_service(service=UserServicer)
       def test_create_user(rpc_helpers): ...

       @pytest.mark.subject_service.with_args(UserServicer)
       def test_find_user(rpc_helpers): ...
    """
    marker = request.node.get_closest_marker("subject_service")
    if marker is not None:
        if "service" in marker.kwargs:
            return marker.kwargs["service"]
        if not marker.args:
            raise pytest.UsageError("subject_service marker takes the service as its service keyword argument")
        return marker.args[0]
    for owner in (request.cls, request.module):
        if owner is not None and hasattr(owner, "described_class"):
            return owner.described_class
    pytest.fail(
        "no subject service: use the subject_service marker, set described_class, "
        "or override the subject_service fixture",
        pytrace=False,
    )


@pytest.fixture
def rpc_interceptors() -> typing.List[grpc.ServerInterceptor]:
    """Server interceptors for full stack RPC calls. Override to add some."""
    return []


@pytest.fixture
def rpc_helpers(subject_service: typing.Any, rpc_interceptors: typing.List[grpc.ServerInterceptor]) -> RpcHelpers:
    """RPC test helpers bound to the subject service."""
    return RpcHelpers(subject_service, rpc_interceptors)


@pytest.fixture
def mock_rpc(request: pytest.FixtureRequest) -> typing.Iterator[typing.Callable[..., Mock]]:
    """
    A factory of client mocks, active for as long as the test lasts.

    Takes the same arguments as `rpc_testing.mocking.mock_rpc` and returns the client double.
    Client mocks are verified on teardown, unless the test failed already.
    """
    client_mocks: typing.List[mocking.ClientMock] = []

    def factory(klass: typing.Any, method: str, **kwargs: typing.Any) -> Mock:
        client_mock = mocking.mock_rpc(klass, method, **kwargs)
        client = client_mock.start()
        client_mocks.append(client_mock)
        return client

    yield factory

    for client_mock in reversed(client_mocks):
        client_mock.stop()
    if not request.node.stash.get(_call_failed_key, False):
        for client_mock in client_mocks:
            client_mock.verify()
