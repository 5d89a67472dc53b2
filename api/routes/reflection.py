"""
服务端反射 API 路由
"""
from typing import List

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_transport
from application.dto import MethodDTO
from application.ports.transport import TransportPort
from core.logging_config import get_logger
from core.response import Response as ApiResponse, success_response

logger = get_logger(__name__)

router = APIRouter(
    prefix="/reflection",
    tags=["Reflection"]
)


@router.get("/services", summary="反射列出服务", response_model=ApiResponse[List[str]])
async def list_services(
    address: str = Query(..., min_length=1, description="host:port"),
    transport: TransportPort = Depends(get_transport),
):
    services = await transport.list_services(address)
    logger.info("reflection_services_listed", address=address, count=len(services))
    return success_response(data=services)


@router.get("/services/{service}", summary="反射描述服务", response_model=ApiResponse[List[MethodDTO]])
async def describe_service(
    service: str,
    address: str = Query(..., min_length=1, description="host:port"),
    transport: TransportPort = Depends(get_transport),
):
    """返回服务的 RPC 方法，类型名为去掉包名的裸名。"""
    methods = await transport.describe_service(address, service)
    return success_response(data=[MethodDTO.from_domain(m) for m in methods])
