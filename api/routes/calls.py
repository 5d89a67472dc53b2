"""
RPC 调用 API 路由 - 一元调用与流式会话
"""
from fastapi import APIRouter, Depends

from api.dependencies import get_dispatch_service, get_stream_controller
from application.dto import (
    CallRequestDTO,
    CallResponseDTO,
    SignalRequestDTO,
    StreamMessageDTO,
    StreamSessionDTO,
)
from application.dtos.calls import CallResult, RequestForm
from application.services.dispatch_service import RpcDispatchService
from application.services.streaming_service import StreamingSessionController
from core.response import Response as ApiResponse, success_response
from domain.common.exceptions import StreamNotStartedException
from domain.streaming.session import SessionState

router = APIRouter(
    prefix="/calls",
    tags=["Calls"]
)


@router.post("", summary="发起调用", response_model=ApiResponse[CallResponseDTO])
async def make_call(
    body: CallRequestDTO,
    dispatcher: RpcDispatchService = Depends(get_dispatch_service),
):
    """
    按方法的调用形态分发

    - **unary**: 同步返回 result（失败也以 success=false 的记录返回）
    - **streaming**: 返回会话快照，后续消息通过 `GET /calls/stream` 查看
    """
    form = RequestForm(
        address=body.address,
        request_data=body.request_data,
        streaming_data=body.streaming_data,
    )
    outcome = await dispatcher.make_call(body.service_name, body.method.to_domain(), form, body.proto_text)
    if isinstance(outcome, CallResult):
        return success_response(data=CallResponseDTO(kind="unary", result=outcome))
    return success_response(data=CallResponseDTO(kind="stream", session=StreamSessionDTO.from_domain(outcome)))


@router.get("/stream", summary="当前流式会话", response_model=ApiResponse[StreamSessionDTO])
async def current_stream(
    controller: StreamingSessionController = Depends(get_stream_controller),
):
    # 返回前先应用所有已到达的事件
    await controller.drain()
    if controller.state is SessionState.IDLE:
        raise StreamNotStartedException()
    return success_response(data=StreamSessionDTO.from_domain(controller.session))


@router.post("/stream/signal", summary="发送流控制信号", response_model=ApiResponse[CallResult])
async def send_signal(
    body: SignalRequestDTO,
    controller: StreamingSessionController = Depends(get_stream_controller),
):
    result = await controller.send_signal(body.signal)
    return success_response(data=result)


@router.post("/stream/messages", summary="向流发送消息", response_model=ApiResponse[CallResult])
async def send_message(
    body: StreamMessageDTO,
    controller: StreamingSessionController = Depends(get_stream_controller),
):
    result = await controller.send_message(body.message)
    return success_response(data=result)


@router.delete("", summary="清空调用结果", response_model=ApiResponse[None])
async def clear_calls(
    dispatcher: RpcDispatchService = Depends(get_dispatch_service),
):
    await dispatcher.clear()
    return success_response(message="Cleared")
