"""RPC dispatch facade.

Classifies the selected method's call shape and routes it: unary calls
go straight to the transport and yield one CallResult; every streaming
shape is delegated to the StreamingSessionController. Nothing is retried.
"""
from __future__ import annotations

from typing import Optional, Union

from application.dtos.calls import CallResult, RequestForm
from application.ports.transport import TransportPort
from application.services.streaming_service import StreamingSessionController
from application.utils.json_format import parse_json_text
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException, TransportException
from domain.schema.entities import CallShape, MethodDescriptor
from domain.streaming.session import StreamSessionRecord


logger = get_logger(__name__)


def build_full_method(service_name: str, method_name: str) -> str:
    return f"{service_name}.{method_name}"


class RpcDispatchService:
    def __init__(
        self,
        *,
        transport: TransportPort,
        controller: StreamingSessionController,
        insecure: bool = True,
    ) -> None:
        self._transport = transport
        self._controller = controller
        self._insecure = insecure
        self.last_response: Optional[CallResult] = None
        self.loading = False

    @property
    def controller(self) -> StreamingSessionController:
        return self._controller

    @property
    def session(self) -> StreamSessionRecord:
        return self._controller.session

    async def make_call(
        self,
        service_name: str,
        method: MethodDescriptor,
        form: RequestForm,
        proto_text: str = "",
    ) -> Union[CallResult, StreamSessionRecord]:
        full_method = build_full_method(service_name, method.name)
        # empty schema text tells the backend to use a registered schema
        proto_source = proto_text or None

        if method.call_shape is CallShape.UNARY:
            return await self.invoke_unary(form, full_method, proto_source)

        self.loading = True
        try:
            return await self._controller.start_call(
                address=form.address,
                full_method=full_method,
                call_shape=method.call_shape,
                request_data=form.request_data,
                streaming_data=form.streaming_data,
                proto_source=proto_source,
            )
        finally:
            self.loading = False

    async def invoke_unary(
        self,
        form: RequestForm,
        full_method: str,
        proto_source: Optional[str],
    ) -> CallResult:
        self.loading = True
        try:
            request_json = parse_json_text(form.request_data, field="request_data")
            response = await self._transport.invoke_unary(
                form.address,
                full_method,
                request_json,
                proto_source,
                self._insecure,
            )
            result = CallResult.ok(response)
            logger.info("grpc_unary_succeeded", method=full_method, address=form.address)
        except TransportException as exc:
            result = CallResult.failed(exc.message, status=exc.status_name)
            logger.warning("grpc_unary_failed", method=full_method, error=exc.message, status=exc.status_name)
        except BusinessException as exc:
            result = CallResult.failed(exc.message)
            logger.warning("grpc_unary_rejected", method=full_method, error=exc.message)
        except Exception as exc:
            result = CallResult.failed(str(exc))
            logger.error("grpc_unary_failed", method=full_method, error=str(exc), exc_info=True)
        finally:
            self.loading = False

        self.last_response = result
        return result

    async def clear(self) -> None:
        self.last_response = None
        await self._controller.clear()


__all__ = ["RpcDispatchService", "build_full_method"]
