"""
API依赖项 - 从 app.state 取出生命周期内装配好的服务
"""
from fastapi import Request

from application.ports.transport import TransportPort
from application.services.dispatch_service import RpcDispatchService
from application.services.proto_service import ProtoSchemaService
from application.services.streaming_service import StreamingSessionController


async def get_proto_service(request: Request) -> ProtoSchemaService:
    return request.app.state.proto_service


async def get_dispatch_service(request: Request) -> RpcDispatchService:
    return request.app.state.dispatch_service


async def get_stream_controller(request: Request) -> StreamingSessionController:
    return request.app.state.stream_controller


async def get_transport(request: Request) -> TransportPort:
    return request.app.state.transport
