"""
Proto 解析 API 路由 - 服务列表、消息结构、示例载荷与载荷校验
"""
import json
from typing import List

from fastapi import APIRouter, Depends

from api.dependencies import get_proto_service
from application.dto import (
    MessageQueryDTO,
    MessageSchemaDTO,
    ProtoTextDTO,
    SampleDTO,
    ServiceDTO,
    ValidatePayloadDTO,
    ValidationResultDTO,
    validation_result_to_dto,
)
from application.services.proto_service import ProtoSchemaService
from application.utils.json_format import parse_json_text
from core.response import Response as ApiResponse, success_response
from domain.common.exceptions import SchemaNotFoundException
from domain.payload import format_validation_errors

router = APIRouter(
    prefix="/proto",
    tags=["Proto"]
)


@router.post("/services", summary="解析服务与方法", response_model=ApiResponse[List[ServiceDTO]])
async def list_services(
    body: ProtoTextDTO,
    service: ProtoSchemaService = Depends(get_proto_service),
):
    """
    从 .proto 文本中提取服务及其 RPC 方法

    服务名按 package 限定；无法识别的行会被忽略。
    """
    services = service.list_services(body.proto_text)
    return success_response(data=[ServiceDTO.from_domain(s) for s in services])


@router.post("/message", summary="消息字段结构", response_model=ApiResponse[MessageSchemaDTO])
async def describe_message(
    body: MessageQueryDTO,
    service: ProtoSchemaService = Depends(get_proto_service),
):
    schema = service.describe_message(body.type_name, body.proto_text)
    if schema is None:
        raise SchemaNotFoundException(body.type_name)
    return success_response(data=MessageSchemaDTO.from_domain(schema))


@router.post("/sample", summary="生成示例载荷", response_model=ApiResponse[SampleDTO])
async def sample_payload(
    body: MessageQueryDTO,
    service: ProtoSchemaService = Depends(get_proto_service),
):
    """按字段类型生成占位载荷，找不到消息定义时返回占位示例。"""
    sample = service.sample(body.type_name, body.proto_text)
    text = json.dumps(sample, indent=2, ensure_ascii=False)
    return success_response(data=SampleDTO(type_name=body.type_name, sample=sample, text=text))


@router.post("/validate", summary="校验载荷", response_model=ApiResponse[ValidationResultDTO])
async def validate_payload(
    body: ValidatePayloadDTO,
    service: ProtoSchemaService = Depends(get_proto_service),
):
    """
    按消息定义校验 JSON 载荷

    - JSON 无法解析时返回 400
    - 校验结果（含错误列表）始终以 200 返回
    """
    payload = parse_json_text(body.payload_text, field="payload_text")
    result = service.validate(payload, body.type_name, body.proto_text)
    summary = format_validation_errors(result.errors)
    return success_response(data=validation_result_to_dto(result, summary))
