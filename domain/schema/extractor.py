"""Best-effort structural extraction from raw .proto text.

Matching is textual and line oriented: there is no grammar and no brace
tracking for service bodies, so malformed input yields partial results
rather than errors. Only the ``message { field = N; }`` and
``service { rpc ... returns (...); }`` subset is recognised.
"""
from __future__ import annotations

import re
from typing import List, Optional

from .entities import (
    CallShape,
    FieldSchema,
    MessageSchema,
    MethodDescriptor,
    ServiceDescriptor,
)


_PACKAGE_RE = re.compile(r"\bpackage\s+([A-Za-z0-9_.]+)\s*;")
_SERVICE_RE = re.compile(r"service\s+(\w+)")
_RPC_RE = re.compile(
    r"rpc\s+(\w+)\s*\(\s*(stream\s+)?(\w+)\s*\)\s*returns\s*\(\s*(stream\s+)?(\w+)\s*\)"
)
_FIELD_RE = re.compile(r"(repeated\s+)?(\w+)\s+(\w+)\s*=\s*(\d+)\s*;")


def _message_body_pattern(type_name: str) -> re.Pattern[str]:
    # One level of nested braces inside the body is tolerated.
    return re.compile(
        r"message\s+" + re.escape(type_name) + r"\s*\{([^{}]*(?:\{[^{}]*\}[^{}]*)*)\}",
        re.DOTALL,
    )


def extract_package(proto_text: str) -> str:
    """Return the first declared package name, or ``""`` when absent."""
    if not proto_text:
        return ""
    match = _PACKAGE_RE.search(proto_text)
    return match.group(1) if match else ""


def parse_rpc_line(line: str) -> Optional[MethodDescriptor]:
    """Match a single rpc declaration line, or return None."""
    match = _RPC_RE.search(line)
    if not match:
        return None
    name, in_stream, input_type, out_stream, output_type = match.groups()
    return MethodDescriptor(
        name=name,
        call_shape=CallShape.from_stream_flags(bool(in_stream), bool(out_stream)),
        input_type=input_type,
        output_type=output_type,
    )


def extract_services(proto_text: str) -> List[ServiceDescriptor]:
    """Scan proto text top to bottom and collect services with their rpcs.

    A new descriptor list is built on every call; nothing is carried
    between calls.
    """
    if not proto_text:
        return []

    package = extract_package(proto_text)
    services: List[ServiceDescriptor] = []
    current: Optional[ServiceDescriptor] = None

    for line in proto_text.split("\n"):
        trimmed = line.strip()

        if trimmed.startswith("service "):
            match = _SERVICE_RE.match(trimmed)
            if match:
                name = f"{package}.{match.group(1)}" if package else match.group(1)
                current = ServiceDescriptor(name=name)
                services.append(current)

        # an rpc may sit on the same line as its service header
        if current is not None and "rpc " in trimmed:
            method = parse_rpc_line(trimmed)
            if method is not None:
                current.methods.append(method)

    return services


def extract_message(type_name: str, proto_text: str) -> Optional[MessageSchema]:
    """Resolve the field list of ``message <type_name> { ... }``.

    Returns None when the message cannot be found. Lines that do not look
    like field declarations are skipped.
    """
    if not type_name or not proto_text:
        return None
    try:
        match = _message_body_pattern(type_name).search(proto_text)
    except re.error:
        return None
    if not match:
        return None

    fields = tuple(
        FieldSchema(
            name=m.group(3),
            declared_type=m.group(2),
            repeated=m.group(1) is not None,
            required=False,
            tag=int(m.group(4)),
        )
        for m in _FIELD_RE.finditer(match.group(1))
    )
    return MessageSchema(name=type_name, fields=fields)


def type_name_is_message(type_name: str, proto_text: str) -> bool:
    """True when ``message <type_name> {`` occurs anywhere in the text."""
    if not type_name or not proto_text:
        return False
    try:
        pattern = re.compile(r"message\s+" + re.escape(type_name) + r"\s*\{")
    except re.error:
        return False
    return pattern.search(proto_text) is not None


__all__ = [
    "extract_package",
    "extract_services",
    "extract_message",
    "type_name_is_message",
    "parse_rpc_line",
]
