"""Application service for schema introspection use cases.

Thin orchestration over the domain extractor/generator/validator that
applies configured limits and logs outcomes.
"""
from __future__ import annotations

from typing import Any, List, Optional

from core.logging_config import get_logger
from domain.payload import (
    ValidationResult,
    generate_sample,
    generate_sample_for_method,
    validate_payload,
)
from domain.payload.primitives import DEFAULT_MAX_DEPTH
from domain.schema import (
    MessageSchema,
    MethodDescriptor,
    ServiceDescriptor,
    extract_message,
    extract_services,
)


logger = get_logger(__name__)


class ProtoSchemaService:
    def __init__(self, *, max_depth: int = DEFAULT_MAX_DEPTH, strict_tags: bool = False) -> None:
        self._max_depth = max_depth
        self._strict_tags = strict_tags

    def list_services(self, proto_text: str) -> List[ServiceDescriptor]:
        services = extract_services(proto_text)
        logger.debug(
            "proto_services_extracted",
            services=len(services),
            methods=sum(len(s.methods) for s in services),
        )
        return services

    def describe_message(self, type_name: str, proto_text: str) -> Optional[MessageSchema]:
        return extract_message(type_name, proto_text)

    def sample(self, type_name: str, proto_text: str) -> Any:
        return generate_sample(type_name, proto_text, max_depth=self._max_depth)

    def sample_for_method(self, method: MethodDescriptor, proto_text: str) -> Any:
        return generate_sample_for_method(method, proto_text, max_depth=self._max_depth)

    def validate(self, payload: Any, type_name: str, proto_text: str) -> ValidationResult:
        result = validate_payload(
            payload,
            type_name,
            proto_text,
            max_depth=self._max_depth,
            strict_tags=self._strict_tags,
        )
        if not result.valid:
            logger.info("payload_validation_failed", type_name=type_name, errors=len(result.errors))
        return result


__all__ = ["ProtoSchemaService"]
