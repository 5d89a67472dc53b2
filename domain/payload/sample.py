"""Sample payload generation for message types.

Generation never fails: any unresolvable input yields the placeholder
object, unknown scalar aliases become strings, and self-referential
message graphs are cut at the first repeated type.
"""
from __future__ import annotations

import copy
import re
from typing import Any, FrozenSet

from domain.schema.entities import FieldSchema, MethodDescriptor
from domain.schema.extractor import extract_message, type_name_is_message

from .primitives import (
    BOOL_TYPES,
    BYTES_TYPES,
    DEFAULT_MAX_DEPTH,
    FLOAT_TYPES,
    INTEGER_TYPES,
    PLACEHOLDER_SAMPLE,
    SAMPLE_BYTES,
    SAMPLE_STRING,
    STRING_TYPES,
    normalize,
)


def _placeholder() -> dict[str, Any]:
    return copy.deepcopy(PLACEHOLDER_SAMPLE)


def _scalar_default(type_name: str) -> Any:
    kind = normalize(type_name)
    if kind in STRING_TYPES:
        return SAMPLE_STRING
    if kind in BOOL_TYPES:
        return False
    if kind in FLOAT_TYPES:
        return 1.0
    if kind in INTEGER_TYPES:
        return 1
    if kind in BYTES_TYPES:
        return SAMPLE_BYTES
    return None


def _field_value(
    field: FieldSchema,
    proto_text: str,
    visiting: FrozenSet[str],
    depth: int,
    max_depth: int,
) -> Any:
    scalar = _scalar_default(field.declared_type)
    if scalar is not None:
        return [scalar] if field.repeated else scalar

    if not type_name_is_message(field.declared_type, proto_text):
        # unknown aliases are treated as opaque strings
        return [SAMPLE_STRING] if field.repeated else SAMPLE_STRING

    if field.declared_type in visiting or depth >= max_depth:
        # cycle or runaway nesting: leave the field unset
        return [] if field.repeated else None

    nested = _message_sample(field.declared_type, proto_text, visiting, depth + 1, max_depth)
    return [nested] if field.repeated else nested


def _message_sample(
    type_name: str,
    proto_text: str,
    visiting: FrozenSet[str],
    depth: int,
    max_depth: int,
) -> dict[str, Any]:
    schema = extract_message(type_name, proto_text)
    if schema is None:
        return {}
    inner = visiting | {type_name}
    return {
        f.name: _field_value(f, proto_text, inner, depth, max_depth)
        for f in schema.fields
    }


def generate_sample(
    type_name: str,
    proto_text: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Any:
    """Build a default-populated JSON-compatible value for ``type_name``.

    Repeated fields get exactly one element. Nested messages that are
    field-less produce ``{}`` so the sample still validates; only the
    top-level call falls back to the placeholder.
    """
    if not type_name or not proto_text:
        return _placeholder()
    try:
        schema = extract_message(type_name, proto_text)
        if schema is None or not schema.fields:
            return _placeholder()
        return _message_sample(type_name, proto_text, frozenset(), 0, max_depth)
    except (re.error, RecursionError):
        return _placeholder()


def generate_sample_for_method(
    method: MethodDescriptor,
    proto_text: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Any:
    return generate_sample(method.input_type, proto_text, max_depth=max_depth)


__all__ = ["generate_sample", "generate_sample_for_method"]
