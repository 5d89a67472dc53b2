"""
JSON 工具路由
"""
from fastapi import APIRouter

from application.dto import JsonFormatRequestDTO, JsonFormatResultDTO
from application.utils.json_format import format_json, minify_json
from core.response import Response as ApiResponse, success_response

router = APIRouter(
    prefix="/json",
    tags=["JSON"]
)


@router.post("/format", summary="格式化/压缩 JSON", response_model=ApiResponse[JsonFormatResultDTO])
async def format_text(body: JsonFormatRequestDTO):
    """解析失败时原样返回输入文本，并附带解析错误信息。"""
    result = minify_json(body.text) if body.minify else format_json(body.text, indent=body.indent)
    return success_response(
        data=JsonFormatResultDTO(success=result.success, formatted=result.formatted, error=result.error)
    )
