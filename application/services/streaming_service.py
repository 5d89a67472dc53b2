"""Streaming session controller.

Owns the client-visible state of the one active streaming RPC and
reconciles user-initiated signals/messages with backend-pushed events.
Inbound events are applied by a single consumer task reading an ordered
queue, so the session record is only ever mutated from the event loop.
"""
from __future__ import annotations

import asyncio
from typing import Any, Optional

from application.dtos.calls import CallResult
from application.ports.transport import (
    StreamEvent,
    StreamEventKind,
    StreamingSignal,
    TransportPort,
)
from application.utils.json_format import parse_optional_json
from core.logging_config import get_logger
from domain.common.exceptions import (
    BusinessException,
    StreamNotActiveException,
    StreamNotStartedException,
    TransportException,
)
from domain.schema.entities import CallShape
from domain.streaming.session import SessionState, StreamEntry, StreamSessionRecord


logger = get_logger(__name__)


class StreamingSessionController:
    def __init__(self, transport: TransportPort, *, queue_maxsize: int = 0) -> None:
        self._transport = transport
        self._record = StreamSessionRecord()
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue(maxsize=max(0, int(queue_maxsize)))
        self._consumer: Optional[asyncio.Task] = None

    @property
    def session(self) -> StreamSessionRecord:
        return self._record

    @property
    def state(self) -> SessionState:
        return self._record.state

    # Lifecycle
    async def attach(self) -> None:
        """Subscribe to the transport event channel and start the consumer."""
        if self._consumer is not None:
            return
        await self._transport.subscribe(self.on_transport_event)
        self._consumer = asyncio.create_task(self._consume())
        logger.info("stream_controller_attached")

    async def aclose(self) -> None:
        task, self._consumer = self._consumer, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def drain(self) -> None:
        """Wait until every queued event has been applied."""
        await self._queue.join()

    async def clear(self) -> None:
        """Reset to an empty IDLE record; a still-active call is cancelled first."""
        record, self._record = self._record, StreamSessionRecord()
        if not record.active:
            return
        try:
            await self._transport.send_streaming_signal(
                record.address, record.full_method, StreamingSignal.CANCEL
            )
        except Exception as exc:
            logger.warning("stream_clear_cancel_failed", method=record.full_method, error=str(exc))
        else:
            logger.info("stream_cancelled_on_clear", method=record.full_method)

    # Outbound
    async def start_call(
        self,
        *,
        address: str,
        full_method: str,
        call_shape: CallShape,
        request_data: Optional[str] = None,
        streaming_data: Optional[str] = None,
        proto_source: Optional[str] = None,
    ) -> StreamSessionRecord:
        if not call_shape.is_streaming:
            raise ValueError("unary calls do not open a streaming session")

        previous = self._record
        if previous.active:
            # no guard here: callers must prevent concurrent initiation
            logger.warning(
                "stream_session_discarded",
                method=previous.full_method,
                entries=len(previous.entries),
            )

        record = StreamSessionRecord(address=address, full_method=full_method, call_shape=call_shape)
        record.activate()
        self._record = record

        try:
            request_json = parse_optional_json(request_data, field="request_data")
            streaming_json = parse_optional_json(streaming_data, field="streaming_data")
            await self._transport.start_streaming_call(
                address,
                full_method,
                request_json,
                streaming_json,
                proto_source,
                call_shape,
            )
        except BusinessException as exc:
            record.fail(exc.message)
            logger.warning("stream_start_failed", method=full_method, error=exc.message)
        except Exception as exc:
            record.fail(str(exc))
            logger.error("stream_start_failed", method=full_method, error=str(exc), exc_info=True)
        else:
            logger.info("stream_started", method=full_method, call_shape=call_shape.value)
        return record

    async def send_signal(self, signal: StreamingSignal) -> CallResult:
        record = self._record
        if record.state is SessionState.IDLE:
            return CallResult.failed(StreamNotStartedException().message)

        try:
            await self._transport.send_streaming_signal(record.address, record.full_method, signal)
        except TransportException as exc:
            logger.warning("stream_signal_failed", signal=signal.value, error=exc.message)
            return CallResult.failed(exc.message, status=exc.status_name)
        except Exception as exc:
            logger.error("stream_signal_failed", signal=signal.value, error=str(exc), exc_info=True)
            return CallResult.failed(str(exc))

        # pause/resume are the transport's concern; only cancel/end move local state
        if signal is StreamingSignal.CANCEL:
            record.finish(SessionState.CANCELLED)
        elif signal is StreamingSignal.END:
            record.finish(SessionState.ENDED)
        logger.info("stream_signal_sent", signal=signal.value, state=record.state.value)
        return CallResult.ok()

    async def send_message(self, message: Any) -> CallResult:
        record = self._record
        if not record.active:
            return CallResult.failed(StreamNotActiveException(record.state.value).message)

        # optimistic: kept even if the dispatch below fails
        record.append(StreamEntry.sent(message))
        try:
            await self._transport.send_streaming_message(record.address, record.full_method, message)
        except TransportException as exc:
            logger.warning("stream_message_failed", method=record.full_method, error=exc.message)
            return CallResult.failed(exc.message, status=exc.status_name)
        except Exception as exc:
            logger.error("stream_message_failed", method=record.full_method, error=str(exc), exc_info=True)
            return CallResult.failed(str(exc))
        return CallResult.ok()

    # Inbound
    async def on_transport_event(self, event: StreamEvent) -> None:
        await self._queue.put(event)

    def apply_event(self, event: StreamEvent) -> None:
        record = self._record
        if record.state is SessionState.IDLE:
            logger.debug("stream_event_dropped", kind=event.kind.value, reason="no_session")
            return
        if event.call_key is not None and event.call_key != record.call_key:
            logger.debug("stream_event_dropped", kind=event.kind.value, reason="stale_call")
            return

        if event.kind is StreamEventKind.DATA:
            record.append(StreamEntry.received(event.payload))
        elif event.kind is StreamEventKind.ERROR:
            record.append(StreamEntry.failure(str(event.payload)))
            record.finish(SessionState.ERROR)
        elif event.kind is StreamEventKind.END:
            record.append(StreamEntry.end_marker())
            record.finish(SessionState.ENDED)

    async def _consume(self) -> None:
        try:
            while True:
                event = await self._queue.get()
                try:
                    self.apply_event(event)
                except Exception as exc:  # pragma: no cover
                    logger.error("stream_event_apply_failed", error=str(exc), exc_info=True)
                finally:
                    self._queue.task_done()
        except asyncio.CancelledError:  # graceful exit
            return


__all__ = ["StreamingSessionController"]
