"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
Schema/validation problems are returned as data; these exceptions only cross
the transport boundary and the HTTP surface.
"""
from __future__ import annotations

from typing import Any, Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class SchemaNotFoundException(BusinessException):
    def __init__(self, type_name: str):
        super().__init__(
            code=BusinessCode.SCHEMA_NOT_FOUND,
            message=f"Could not find message definition for '{type_name}'",
            error_type="SchemaNotFound",
            details={"type_name": type_name},
            field="type_name",
        )


class InvalidJsonException(BusinessException):
    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(
            code=BusinessCode.INVALID_JSON,
            message=message,
            error_type="InvalidJson",
            field=field,
        )


class TransportException(BusinessException):
    """Failure reported by the transport backend (spawn, I/O or RPC status)."""

    def __init__(self, message: str, *, status: Any = None, details: dict | None = None):
        # status is a grpc.StatusCode when the backend reported one
        self.status = status
        super().__init__(
            code=BusinessCode.TRANSPORT_ERROR,
            message=message,
            error_type="TransportError",
            details=details,
        )

    @property
    def status_name(self) -> Optional[str]:
        return getattr(self.status, "name", None)


class StreamNotStartedException(BusinessException):
    def __init__(self):
        super().__init__(
            code=BusinessCode.STREAM_NOT_STARTED,
            message="No streaming call has been started",
            error_type="StreamNotStarted",
        )


class StreamNotActiveException(BusinessException):
    def __init__(self, state: str):
        super().__init__(
            code=BusinessCode.STREAM_NOT_ACTIVE,
            message=f"stream is not active ({state})",
            error_type="StreamNotActive",
            details={"state": state},
        )
