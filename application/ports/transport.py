"""Application-owned transport port (hexagonal architecture).

The actual gRPC wire work is owned by a backend reached through these
named operations. Streaming completion and data are not returned from
the initiating call; they arrive later on the event channel.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Protocol, runtime_checkable

from domain.schema.entities import CallShape, MethodDescriptor


class StreamingSignal(str, Enum):
    CANCEL = "cancel"
    END = "end"
    PAUSE = "pause"
    RESUME = "resume"


class StreamEventKind(str, Enum):
    DATA = "data"
    ERROR = "error"
    END = "end"


@dataclass(frozen=True)
class StreamEvent:
    """Inbound event pushed by the backend for an active stream.

    ``call_key`` identifies the originating call (``<address>-<method>``)
    when the backend knows it.
    """

    kind: StreamEventKind
    payload: Any = None
    call_key: Optional[str] = None

    @classmethod
    def data(cls, payload: Any, *, call_key: Optional[str] = None) -> "StreamEvent":
        return cls(StreamEventKind.DATA, payload, call_key)

    @classmethod
    def error(cls, payload: Any, *, call_key: Optional[str] = None) -> "StreamEvent":
        return cls(StreamEventKind.ERROR, payload, call_key)

    @classmethod
    def end(cls, *, call_key: Optional[str] = None) -> "StreamEvent":
        return cls(StreamEventKind.END, None, call_key)


EventHandler = Callable[[StreamEvent], Awaitable[None]]


def stream_key(address: str, full_method: str) -> str:
    return f"{address}-{full_method}"


@runtime_checkable
class TransportPort(Protocol):
    """Operations the backend must provide.

    Failures are raised as ``TransportException``; callers in the
    application layer downgrade them to failure records.
    """

    async def invoke_unary(
        self,
        address: str,
        full_method: str,
        request_json: Any,
        proto_source: Optional[str],
        insecure: bool,
    ) -> Any: ...

    async def start_streaming_call(
        self,
        address: str,
        full_method: str,
        request_json: Any,
        streaming_json: Any,
        proto_source: Optional[str],
        call_shape: CallShape,
    ) -> None: ...

    async def send_streaming_signal(self, address: str, full_method: str, signal: StreamingSignal) -> None: ...

    async def send_streaming_message(self, address: str, full_method: str, message: Any) -> None: ...

    async def subscribe(self, handler: EventHandler) -> None: ...

    async def list_services(self, address: str) -> List[str]: ...

    async def describe_service(self, address: str, service: str) -> List[MethodDescriptor]: ...

    async def aclose(self) -> None: ...


__all__ = [
    "StreamingSignal",
    "StreamEventKind",
    "StreamEvent",
    "EventHandler",
    "TransportPort",
    "stream_key",
]
