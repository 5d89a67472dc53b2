"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输
"""
from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from application.dtos.calls import CallResult
from application.ports.transport import StreamingSignal
from domain.payload import ValidationError, ValidationResult
from domain.schema import MessageSchema, MethodDescriptor, ServiceDescriptor
from domain.schema.entities import CallShape
from domain.streaming.session import StreamEntry, StreamSessionRecord


class ProtoTextDTO(BaseModel):
    """携带原始 .proto 文本的请求"""
    proto_text: str = Field(..., description=".proto 源文本")


class MessageQueryDTO(ProtoTextDTO):
    type_name: str = Field(..., min_length=1, description="消息类型名（不含包名）")


class ValidatePayloadDTO(MessageQueryDTO):
    payload_text: str = Field(..., description="待校验的 JSON 文本")


class MethodDTO(BaseModel):
    """RPC 方法描述"""
    model_config = ConfigDict(from_attributes=True)

    name: str
    call_shape: CallShape
    input_type: str
    output_type: str

    @classmethod
    def from_domain(cls, method: MethodDescriptor) -> "MethodDTO":
        return cls.model_validate(method)

    def to_domain(self) -> MethodDescriptor:
        return MethodDescriptor(
            name=self.name,
            call_shape=self.call_shape,
            input_type=self.input_type,
            output_type=self.output_type,
        )


class ServiceDTO(BaseModel):
    name: str
    methods: List[MethodDTO] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, service: ServiceDescriptor) -> "ServiceDTO":
        return cls(name=service.name, methods=[MethodDTO.from_domain(m) for m in service.methods])


class FieldDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    declared_type: str
    repeated: bool
    required: bool
    tag: int


class MessageSchemaDTO(BaseModel):
    name: str
    fields: List[FieldDTO]

    @classmethod
    def from_domain(cls, schema: MessageSchema) -> "MessageSchemaDTO":
        return cls(name=schema.name, fields=[FieldDTO.model_validate(f) for f in schema.fields])


class SampleDTO(BaseModel):
    """示例载荷：sample 为 JSON 值，text 为格式化后的文本"""
    type_name: str
    sample: Any = None
    text: str


class ValidationErrorDTO(BaseModel):
    field_path: str
    kind: str
    message: str
    nested: List["ValidationErrorDTO"] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, error: ValidationError) -> "ValidationErrorDTO":
        return cls(
            field_path=error.field_path,
            kind=error.kind.value,
            message=error.message,
            nested=[cls.from_domain(n) for n in error.nested],
        )


class ValidationResultDTO(BaseModel):
    valid: bool
    errors: List[ValidationErrorDTO] = Field(default_factory=list)
    summary: str = ""


class JsonFormatRequestDTO(BaseModel):
    text: str = ""
    indent: int = Field(default=2, ge=0, le=8)
    minify: bool = False


class JsonFormatResultDTO(BaseModel):
    success: bool
    formatted: str
    error: Optional[str] = None


class CallRequestDTO(BaseModel):
    """发起一次 RPC 调用"""
    service_name: str = Field(..., min_length=1, description="全限定服务名，如 pkg.Greeter")
    method: MethodDTO
    address: str = Field(..., min_length=1, description="host:port")
    request_data: str = Field(default="", description="请求消息 JSON 文本")
    streaming_data: Optional[str] = Field(default=None, description="首条流式消息 JSON 文本")
    proto_text: str = Field(default="", description="为空时由服务端使用已注册的 schema")


class StreamEntryDTO(BaseModel):
    outcome: str
    payload: Any = None
    direction: Optional[str] = None
    terminal: bool = False
    error: Optional[str] = None

    @classmethod
    def from_domain(cls, entry: StreamEntry) -> "StreamEntryDTO":
        return cls(
            outcome=entry.outcome.value,
            payload=entry.payload,
            direction=entry.direction.value if entry.direction else None,
            terminal=entry.terminal,
            error=entry.error,
        )


class StreamSessionDTO(BaseModel):
    address: str
    full_method: str
    call_shape: Optional[CallShape] = None
    state: str
    active: bool
    entries: List[StreamEntryDTO] = Field(default_factory=list)
    last_error: Optional[str] = None

    @classmethod
    def from_domain(cls, record: StreamSessionRecord) -> "StreamSessionDTO":
        return cls(
            address=record.address,
            full_method=record.full_method,
            call_shape=record.call_shape,
            state=record.state.value,
            active=record.active,
            entries=[StreamEntryDTO.from_domain(e) for e in record.entries],
            last_error=record.last_error,
        )


class CallResponseDTO(BaseModel):
    """一元调用返回 result，流式调用返回 session"""
    kind: Literal["unary", "stream"]
    result: Optional[CallResult] = None
    session: Optional[StreamSessionDTO] = None


class SignalRequestDTO(BaseModel):
    signal: StreamingSignal


class StreamMessageDTO(BaseModel):
    message: Any = Field(default=None, description="已解析的 JSON 值")


def validation_result_to_dto(result: ValidationResult, summary: str) -> ValidationResultDTO:
    return ValidationResultDTO(
        valid=result.valid,
        errors=[ValidationErrorDTO.from_domain(e) for e in result.errors],
        summary=summary,
    )
