# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

"""
This package provides `pytest` compatible machinery to test gRPC services and clients.

At its core, this machinery is nothing but helpers around servicers and mocks around
clients: helpers that call servicer methods in-process, with no transport in between,
and mocks that stand in for callback-style service clients.

Servicer methods are looked up by name on the gRPC servicer class, and so are their
declared request and response message classes. Requests may be given as messages or
as mappings of message fields.

.. code-block:: python

   import grpc

   from rpc_testing import local_rpc

   from users_pb2 import User
   from users_pb2_grpc import UserServiceServicer

   class UserServicer(UserServiceServicer):
       def Create(self, request, context):
           if not request.name:
               context.abort(grpc.StatusCode.INVALID_ARGUMENT, "Error: name required")
           return User(name=request.name)

   def test_create_user():
       assert local_rpc(UserServicer, "Create", {"name": "Jack"}).name == "Jack"

   def test_create_nameless_user():
       assert "Error" in local_rpc(UserServicer, "Create", {"name": ""})

Failed calls, whether aborted or with a non-OK status code set, do not raise.
Their outcome is an `rpc_testing.errors.RpcFailure`, a string of the failure details
carrying the failure status code.

`local_rpc` calls servicer methods directly. `rpc` dispatches calls through server
interceptors and the wire codec, like a gRPC server would.

Client mocks patch a service client accessor for the client double to be returned
instead. The double yields itself to the configuration callable passed to the mocked
method, and invokes success and failure handlers as instructed.

.. code-block:: python

   from rpc_testing import mock_rpc

   def test_create_user_reports_errors():
       error = Mock(details="this is an error message")
       with mock_rpc(UserService, "create", error=error):
           assert create_user(request) == "error"

When installed, a `pytest` plugin makes all of the above available as fixtures
bound to a subject service, see `rpc_testing.plugin`. The service goes to the marker
as a keyword: pytest takes a lone class argument for the decorated object.

.. code-block:: python

   @pytest.mark.subject_service(service=UserServicer)
   def test_create_user(rpc_helpers):
       assert rpc_helpers.local_rpc("Create", {"name": "Jack"}).name == "Jack"
"""

from rpc_testing.client import CallbackClient
from rpc_testing.env import RpcEnv, WrappedRequest, env_for_request, rpc_env, wrapped_request
from rpc_testing.errors import RpcFailure, RpcTimeoutError, UnknownRpcMethodError
from rpc_testing.helpers import RpcHelpers
from rpc_testing.local import local_rpc
from rpc_testing.mocking import ClientMock, mock_remote_service, mock_rpc, mock_service
from rpc_testing.registry import RpcMethod, qualified_rpcs, request_class, response_class, rpcs
from rpc_testing.stack import RpcStack, rpc

__all__ = [
    "CallbackClient",
    "ClientMock",
    "RpcEnv",
    "RpcFailure",
    "RpcHelpers",
    "RpcMethod",
    "RpcStack",
    "RpcTimeoutError",
    "UnknownRpcMethodError",
    "WrappedRequest",
    "env_for_request",
    "local_rpc",
    "mock_remote_service",
    "mock_rpc",
    "mock_service",
    "qualified_rpcs",
    "request_class",
    "response_class",
    "rpc",
    "rpc_env",
    "rpcs",
    "wrapped_request",
]
