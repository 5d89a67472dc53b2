"""In-memory implementation of TransportPort.

Single-process only. Records every call and replays scripted responses;
useful for local dev and tests.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import grpc

from application.ports.transport import (
    EventHandler,
    StreamEvent,
    StreamingSignal,
    TransportPort,
    stream_key,
)
from core.logging_config import get_logger
from domain.common.exceptions import TransportException
from domain.schema.entities import CallShape, MethodDescriptor


logger = get_logger(__name__)


@dataclass
class RecordedCall:
    operation: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class _OpenStream:
    call_shape: CallShape
    stdin_open: bool
    paused: bool = False


class InMemoryTransport(TransportPort):
    def __init__(
        self,
        *,
        unary_responses: Optional[Dict[str, Any]] = None,
        stream_responses: Optional[Dict[str, List[Any]]] = None,
        services: Optional[Dict[str, List[MethodDescriptor]]] = None,
        echo_messages: bool = False,
    ) -> None:
        # full_method -> response; unscripted methods echo the request
        self.unary_responses: Dict[str, Any] = dict(unary_responses or {})
        # full_method -> messages published right after a stream starts
        self.stream_responses: Dict[str, List[Any]] = dict(stream_responses or {})
        self.services: Dict[str, List[MethodDescriptor]] = dict(services or {})
        self.echo_messages = echo_messages
        self.calls: List[RecordedCall] = []
        self._failures: Dict[str, Exception] = {}
        self._streams: Dict[str, _OpenStream] = {}
        self._handlers: List[EventHandler] = []
        self._lock = asyncio.Lock()

    # Scripting helpers
    def fail_next(self, operation: str, exc: Exception) -> None:
        """Make the next call of ``operation`` raise ``exc``."""
        self._failures[operation] = exc

    def is_open(self, address: str, full_method: str) -> bool:
        return stream_key(address, full_method) in self._streams

    def calls_of(self, operation: str) -> List[RecordedCall]:
        return [c for c in self.calls if c.operation == operation]

    async def publish(self, event: StreamEvent) -> None:
        # deliver sequentially, in publish order
        async with self._lock:
            handlers = list(self._handlers)
        for h in handlers:
            await h(event)

    def _record(self, operation: str, **arguments: Any) -> None:
        self.calls.append(RecordedCall(operation, arguments))
        exc = self._failures.pop(operation, None)
        if exc is not None:
            raise exc

    # TransportPort
    async def invoke_unary(
        self,
        address: str,
        full_method: str,
        request_json: Any,
        proto_source: Optional[str],
        insecure: bool,
    ) -> Any:
        self._record(
            "invoke_unary",
            address=address,
            full_method=full_method,
            request_json=request_json,
            proto_source=proto_source,
            insecure=insecure,
        )
        if full_method in self.unary_responses:
            return self.unary_responses[full_method]
        return request_json

    async def start_streaming_call(
        self,
        address: str,
        full_method: str,
        request_json: Any,
        streaming_json: Any,
        proto_source: Optional[str],
        call_shape: CallShape,
    ) -> None:
        self._record(
            "start_streaming_call",
            address=address,
            full_method=full_method,
            request_json=request_json,
            streaming_json=streaming_json,
            proto_source=proto_source,
            call_shape=call_shape,
        )
        key = stream_key(address, full_method)
        self._streams[key] = _OpenStream(
            call_shape=call_shape,
            stdin_open=call_shape is not CallShape.SERVER_STREAMING,
        )
        logger.debug("inmemory_stream_opened", call_key=key, call_shape=call_shape.value)

        scripted = self.stream_responses.get(full_method)
        if scripted is not None:
            for payload in scripted:
                await self.publish(StreamEvent.data(payload, call_key=key))
            await self.publish(StreamEvent.end(call_key=key))
            self._streams.pop(key, None)

    async def send_streaming_signal(self, address: str, full_method: str, signal: StreamingSignal) -> None:
        self._record("send_streaming_signal", address=address, full_method=full_method, signal=signal)
        try:
            signal = StreamingSignal(signal)
        except ValueError:
            raise TransportException(f"unknown signal: {signal}")

        key = stream_key(address, full_method)
        if signal is StreamingSignal.CANCEL:
            self._streams.pop(key, None)
            return
        stream = self._streams.get(key)
        if stream is None:
            return
        if signal is StreamingSignal.END:
            stream.stdin_open = False
        else:
            stream.paused = signal is StreamingSignal.PAUSE

    async def send_streaming_message(self, address: str, full_method: str, message: Any) -> None:
        self._record("send_streaming_message", address=address, full_method=full_method, message=message)
        key = stream_key(address, full_method)
        stream = self._streams.get(key)
        if stream is None or not stream.stdin_open:
            raise TransportException("no active stream or stdin closed")
        if self.echo_messages and not stream.paused:
            await self.publish(StreamEvent.data(message, call_key=key))

    async def subscribe(self, handler: EventHandler) -> None:
        async with self._lock:
            self._handlers.append(handler)

    async def list_services(self, address: str) -> List[str]:
        self._record("list_services", address=address)
        return sorted(self.services)

    async def describe_service(self, address: str, service: str) -> List[MethodDescriptor]:
        self._record("describe_service", address=address, service=service)
        if service not in self.services:
            raise TransportException(
                f"service not found: {service}",
                status=grpc.StatusCode.NOT_FOUND,
            )
        return list(self.services[service])

    async def aclose(self) -> None:
        async with self._lock:
            self._handlers.clear()
        self._streams.clear()


__all__ = ["InMemoryTransport", "RecordedCall"]
