"""JSON text helpers used by request forms and the formatter endpoint."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from domain.common.exceptions import InvalidJsonException


@dataclass
class JsonFormatResult:
    success: bool
    formatted: str
    error: Optional[str] = None


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _loads(text: str) -> Any:
    # NaN/Infinity are not JSON
    return json.loads(text, parse_constant=_reject_constant)


def format_json(text: str, indent: int = 2) -> JsonFormatResult:
    """Pretty-print JSON text.

    Blank input is returned unchanged with success; unparsable input is
    echoed back unchanged together with the parser message.
    """
    if not text.strip():
        return JsonFormatResult(success=True, formatted=text)
    try:
        parsed = _loads(text)
    except ValueError as exc:
        return JsonFormatResult(success=False, formatted=text, error=str(exc))
    return JsonFormatResult(
        success=True,
        formatted=json.dumps(parsed, indent=indent, ensure_ascii=False, allow_nan=False),
    )


def minify_json(text: str) -> JsonFormatResult:
    if not text.strip():
        return JsonFormatResult(success=True, formatted=text)
    try:
        parsed = _loads(text)
    except ValueError as exc:
        return JsonFormatResult(success=False, formatted=text, error=str(exc))
    return JsonFormatResult(
        success=True,
        formatted=json.dumps(parsed, separators=(",", ":"), ensure_ascii=False, allow_nan=False),
    )


def parse_json_text(text: str, *, field: str) -> Any:
    """Decode a required JSON body; raises InvalidJsonException."""
    try:
        return _loads(text)
    except (ValueError, TypeError) as exc:
        raise InvalidJsonException(f"Invalid JSON in {field}: {exc}", field=field) from exc


def parse_optional_json(text: Optional[str], *, field: str) -> Any:
    """Decode an optional JSON body; empty text means absent (None)."""
    if not text:
        return None
    return parse_json_text(text, field=field)
