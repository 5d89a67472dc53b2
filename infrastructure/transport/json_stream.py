"""Split a line-oriented text stream into JSON documents.

grpcurl pretty-prints each response message over several lines. Lines are
accumulated while the brace depth (ignoring braces inside strings) stays
above zero; once it returns to zero the buffer is one document.
"""
from __future__ import annotations

import json
from typing import Any, List


class JsonStreamSplitter:
    def __init__(self) -> None:
        self._buffer: List[str] = []
        self._depth = 0
        self._in_string = False
        self._escape = False

    @property
    def pending(self) -> bool:
        return any(part.strip() for part in self._buffer)

    def feed_line(self, line: str) -> List[Any]:
        """Consume one line (without its newline); return completed documents."""
        for ch in line:
            if self._in_string:
                if self._escape:
                    self._escape = False
                elif ch == "\\":
                    self._escape = True
                elif ch == '"':
                    self._in_string = False
            elif ch == '"':
                self._in_string = True
            elif ch == "{":
                self._depth += 1
            elif ch == "}":
                self._depth -= 1
        self._buffer.append(line)

        if self._depth > 0:
            return []
        return self._take()

    def flush(self) -> List[Any]:
        """Emit whatever is buffered at end of stream."""
        return self._take()

    def _take(self) -> List[Any]:
        text = "\n".join(self._buffer).strip()
        self._buffer = []
        self._depth = 0
        self._in_string = False
        self._escape = False
        if not text:
            return []
        return [decode_document(text)]


def decode_document(text: str) -> Any:
    """Parsed JSON value, or the raw text when it is not JSON."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


__all__ = ["JsonStreamSplitter", "decode_document"]
