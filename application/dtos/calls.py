"""
RPC call DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from typing import Any, Optional
from pydantic import BaseModel, Field


class RequestForm(BaseModel):
    """Request form as entered by the user; JSON bodies are raw text."""

    address: str = Field(..., min_length=1, description="host:port of the target server")
    request_data: str = Field(default="", description="JSON text of the request message")
    streaming_data: Optional[str] = Field(default=None, description="JSON text of the first streamed message")


class CallResult(BaseModel):
    """Single terminal response record (unary call or signal/message acknowledgement)."""

    success: bool
    response: Any = None
    error: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def ok(cls, response: Any = None) -> "CallResult":
        return cls(success=True, response=response)

    @classmethod
    def failed(cls, error: str, *, status: Optional[str] = None) -> "CallResult":
        return cls(success=False, error=error, status=status)
