# Copyright (c) 2026 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import concurrent.futures
import typing

import grpc

from rpc_testing.client import Call, CallbackClient
from rpc_testing.tests.protos import admin_pb2, admin_pb2_grpc, users_pb2, users_pb2_grpc


class UserStore:
    """A user store, for servicers to call into. Tests mock it."""

    @staticmethod
    def create_from_proto(request: users_pb2.CreateUserRequest) -> users_pb2.User:
        return users_pb2.User(guid="USR-1", name=request.name, email=request.email)

    @staticmethod
    def find_by_guid(guid: str) -> typing.Optional[users_pb2.User]:
        return None


class Mailer:
    """A mail queue, for servicers to call into. Tests mock it."""

    @staticmethod
    def enqueue(job: str, guid: str) -> None:
        raise RuntimeError("no mail queue in tests")


class ErrorReporter:
    """An error reporter, for clients to call into. Tests mock it."""

    @staticmethod
    def report(message: str) -> None:
        raise RuntimeError("no error reporting in tests")


class UserServicer(users_pb2_grpc.UserServiceServicer):
    def Create(self, request: users_pb2.CreateUserRequest, context: grpc.ServicerContext) -> users_pb2.User:
        if not request.name:
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, "Error: name required")
        return UserStore.create_from_proto(request)

    def Find(self, request: users_pb2.FindUserRequest, context: grpc.ServicerContext) -> users_pb2.User:
        user = UserStore.find_by_guid(request.guid)
        if user is None:
            context.set_code(grpc.StatusCode.NOT_FOUND)
            context.set_details("Error: user not found")
            return users_pb2.User()
        return user

    def Notify(
        self, request: users_pb2.NotifyUserRequest, context: grpc.ServicerContext
    ) -> users_pb2.NotifyUserResponse:
        user = UserStore.find_by_guid(request.guid)
        if user is None:
            context.abort(grpc.StatusCode.NOT_FOUND, "Error: user not found")
        Mailer.enqueue("email_user", user.guid)
        return users_pb2.NotifyUserResponse(queued=True)

    def ListUsers(
        self, request: users_pb2.FindUserRequest, context: grpc.ServicerContext
    ) -> typing.Iterator[users_pb2.User]:
        for number, name in enumerate(("Jack", "Jill"), start=1):
            yield users_pb2.User(guid=f"USR-{number}", name=name)

    def CreateUsers(
        self, request_iterator: typing.Iterator[users_pb2.CreateUserRequest], context: grpc.ServicerContext
    ) -> typing.Iterator[users_pb2.User]:
        for request in request_iterator:
            yield self.Create(request, context)


class DeferredUserServicer(UserServicer):
    """A user servicer that defers its responses to whoever resolves them."""

    def __init__(self) -> None:
        self.pending: typing.List[concurrent.futures.Future] = []

    def Find(self, request: users_pb2.FindUserRequest, context: grpc.ServicerContext) -> concurrent.futures.Future:
        future: concurrent.futures.Future = concurrent.futures.Future()
        self.pending.append(future)
        return future


class UserAdminServicer(UserServicer, admin_pb2_grpc.AdminServiceServicer):
    """A servicer for both users and admins. Both services declare a Create method."""

    def Create(self, request: typing.Any, context: grpc.ServicerContext) -> typing.Any:
        if isinstance(request, admin_pb2.CreateAdminRequest):
            return admin_pb2.Admin(name=request.name, role=request.role or "viewer")
        return super().Create(request, context)


class UserService:
    """Client side access to the user service."""

    target = "localhost:50051"

    @classmethod
    def client(cls) -> CallbackClient:
        return CallbackClient(users_pb2_grpc.UserServiceStub(grpc.insecure_channel(cls.target)))


def create_user(request: users_pb2.CreateUserRequest) -> str:
    """Creates a user remotely, returning the outcome."""
    status = "unknown"

    def on_success(user: users_pb2.User) -> None:
        nonlocal status
        status = f"created {user.name}"

    def on_failure(error: typing.Any) -> None:
        nonlocal status
        status = "error"
        ErrorReporter.report(error.details())

    def configure(call: Call) -> None:
        call.on_success(on_success)
        call.on_failure(on_failure)

    UserService.client().create(request, configure)
    return status
