"""
Payload 校验 - 按消息字段定义检查 JSON 值树

Every discrepancy is collected; validation is fail-fast only inside a
single repeated field (first failing element), never across fields.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, List, Optional, Sequence

from domain.schema.entities import FieldSchema, MessageSchema
from domain.schema.extractor import extract_message, type_name_is_message

from .primitives import (
    BOOL_TYPES,
    BYTES_TYPES,
    DEFAULT_MAX_DEPTH,
    FLOAT_TYPES,
    INTEGER_TYPES,
    STRING_TYPES,
    normalize,
)


ROOT_PATH = "root"


class ValidationErrorKind(str, Enum):
    MISSING = "missing"
    TYPE_MISMATCH = "type_mismatch"
    INVALID_VALUE = "invalid_value"
    UNKNOWN_FIELD = "unknown_field"


@dataclass(frozen=True)
class ValidationError:
    field_path: str
    kind: ValidationErrorKind
    message: str
    # full error list of a failing nested message, paths already prefixed
    nested: tuple["ValidationError", ...] = ()


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: tuple[ValidationError, ...] = field(default_factory=tuple)

    @classmethod
    def from_errors(cls, errors: Sequence[ValidationError]) -> "ValidationResult":
        return cls(valid=not errors, errors=tuple(errors))


def _js_type_name(value: Any) -> str:
    """Describe a JSON value the way the payload author sees it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integral(value: Any) -> bool:
    if not _is_number(value):
        return False
    if isinstance(value, int):
        return True
    return math.isfinite(value) and float(value).is_integer()


def _prefix(error: ValidationError, parent: str) -> ValidationError:
    path = parent if error.field_path == ROOT_PATH else f"{parent}.{error.field_path}"
    return replace(
        error,
        field_path=path,
        nested=tuple(_prefix(n, parent) for n in error.nested),
    )


class _Validator:
    def __init__(self, proto_text: str, *, max_depth: int, strict_tags: bool) -> None:
        self.proto_text = proto_text
        self.max_depth = max_depth
        self.strict_tags = strict_tags

    def validate(self, payload: Any, type_name: str, depth: int) -> ValidationResult:
        if depth > self.max_depth:
            return ValidationResult.from_errors([
                ValidationError(
                    ROOT_PATH,
                    ValidationErrorKind.INVALID_VALUE,
                    f"Maximum nesting depth {self.max_depth} exceeded at '{type_name}'",
                )
            ])

        schema = extract_message(type_name, self.proto_text)
        if schema is None:
            return ValidationResult.from_errors([
                ValidationError(
                    ROOT_PATH,
                    ValidationErrorKind.INVALID_VALUE,
                    f"Could not find message definition for '{type_name}'",
                )
            ])

        if not isinstance(payload, dict):
            return ValidationResult.from_errors([
                ValidationError(
                    ROOT_PATH,
                    ValidationErrorKind.TYPE_MISMATCH,
                    f"Expected object (message '{type_name}'), got {_js_type_name(payload)}",
                )
            ])

        errors: List[ValidationError] = []
        if self.strict_tags:
            errors.extend(self._check_tags(schema))

        for f in schema.fields:
            value = payload.get(f.name)
            if value is None:
                if f.required:
                    errors.append(ValidationError(
                        f.name,
                        ValidationErrorKind.MISSING,
                        f"Required field '{f.name}' is missing",
                    ))
                continue
            error = self._check_field(value, f, depth)
            if error is not None:
                errors.append(error)

        known = schema.field_names
        for key in payload:
            if key not in known:
                errors.append(ValidationError(
                    str(key),
                    ValidationErrorKind.UNKNOWN_FIELD,
                    f"Unknown field '{key}'",
                ))

        return ValidationResult.from_errors(errors)

    def _check_tags(self, schema: MessageSchema) -> List[ValidationError]:
        return [
            ValidationError(
                ROOT_PATH,
                ValidationErrorKind.INVALID_VALUE,
                f"Field number {tag} is used more than once in '{schema.name}'",
            )
            for tag in schema.duplicate_tags()
        ]

    def _check_field(self, value: Any, f: FieldSchema, depth: int) -> Optional[ValidationError]:
        if f.repeated:
            if not isinstance(value, (list, tuple)):
                return ValidationError(
                    f.name,
                    ValidationErrorKind.TYPE_MISMATCH,
                    f"Field '{f.name}' should be an array (repeated field)",
                )
            for index, element in enumerate(value):
                error = self._check_value(element, f.declared_type, f"{f.name}[{index}]", depth)
                if error is not None:
                    return error
            return None
        return self._check_value(value, f.declared_type, f.name, depth)

    def _check_value(self, value: Any, type_name: str, path: str, depth: int) -> Optional[ValidationError]:
        kind = normalize(type_name)
        message: Optional[str] = None

        if kind in STRING_TYPES:
            if not isinstance(value, str):
                message = f"Expected string, got {_js_type_name(value)}"
        elif kind in BOOL_TYPES:
            if not isinstance(value, bool):
                message = f"Expected boolean, got {_js_type_name(value)}"
        elif kind in FLOAT_TYPES:
            if not _is_number(value):
                message = f"Expected number, got {_js_type_name(value)}"
        elif kind in INTEGER_TYPES:
            if not _is_integral(value):
                message = f"Expected integer, got {_js_type_name(value)}"
        elif kind in BYTES_TYPES:
            if not isinstance(value, str):
                message = f"Expected string (base64), got {_js_type_name(value)}"
        elif type_name_is_message(type_name, self.proto_text):
            if not isinstance(value, dict):
                message = f"Expected object (message type), got {_js_type_name(value)}"
            else:
                nested = self.validate(value, type_name, depth + 1)
                if not nested.valid:
                    return ValidationError(
                        path,
                        ValidationErrorKind.TYPE_MISMATCH,
                        f"Invalid nested message: {nested.errors[0].message}",
                        nested=tuple(_prefix(e, path) for e in nested.errors),
                    )
        else:
            message = f"Unknown type '{type_name}'"

        if message is None:
            return None
        return ValidationError(path, ValidationErrorKind.TYPE_MISMATCH, message)


def validate_payload(
    payload: Any,
    type_name: str,
    proto_text: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    strict_tags: bool = False,
) -> ValidationResult:
    """Check ``payload`` against the fields of message ``type_name``.

    Args:
        payload: decoded JSON value, expected to be an object
        type_name: bare message name as written in the proto text
        proto_text: raw .proto source
        max_depth: nesting bound for recursion into message fields
        strict_tags: also report duplicated field numbers

    Returns:
        ValidationResult with every discrepancy found
    """
    validator = _Validator(proto_text or "", max_depth=max_depth, strict_tags=strict_tags)
    return validator.validate(payload, type_name, 0)


_MARKERS = {
    ValidationErrorKind.MISSING: "❌",
    ValidationErrorKind.TYPE_MISMATCH: "⚠️",
    ValidationErrorKind.UNKNOWN_FIELD: "ℹ️",
    ValidationErrorKind.INVALID_VALUE: "🚫",
}


def format_validation_errors(errors: Sequence[ValidationError]) -> str:
    """Render errors one per line with a marker per error kind."""
    if not errors:
        return ""
    return "\n".join(f"{_MARKERS.get(e.kind, '❓')} {e.message}" for e in errors)


__all__ = [
    "ValidationErrorKind",
    "ValidationError",
    "ValidationResult",
    "validate_payload",
    "format_validation_errors",
]
