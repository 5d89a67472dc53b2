"""grpcurl subprocess based TransportPort implementation.

Every operation shells out to the ``grpcurl`` binary. Unary and reflection
calls run to completion; streaming calls keep the child process alive and
pump its stdout/stderr into StreamEvents keyed by ``<address>-<method>``.
"""
from __future__ import annotations

import asyncio
import json
import re
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

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
from .json_stream import JsonStreamSplitter


logger = get_logger(__name__)


_STATUS_RE = re.compile(r"Code:\s*(\w+)")
_DESCRIBE_RPC_RE = re.compile(
    r"^\s*rpc\s+(\w+)\s*\(\s*(stream\s+)?([\w.]+)\s*\)\s*returns\s*\(\s*(stream\s+)?([\w.]+)\s*\)"
)
# grpcurl prints Go status names; the one spelling that differs from grpc.StatusCode
_STATUS_ALIASES = {"CANCELED": "CANCELLED"}


def build_method_path(method: str) -> str:
    """Pass through ``svc/Method`` or ``pkg.Svc.Method``; prefix bare names with ``/``."""
    if "/" in method or "." in method:
        return method
    return f"/{method}"


def parse_status(stderr: str) -> Optional[grpc.StatusCode]:
    """Map the ``Code: Unavailable`` line of grpcurl's error output to a StatusCode."""
    match = _STATUS_RE.search(stderr or "")
    if not match:
        return None
    name = re.sub(r"(?<!^)(?=[A-Z])", "_", match.group(1)).upper()
    name = _STATUS_ALIASES.get(name, name)
    return getattr(grpc.StatusCode, name, grpc.StatusCode.UNKNOWN)


def bare_type_name(name: str) -> str:
    return name.lstrip(".").rsplit(".", 1)[-1]


def parse_describe_output(text: str) -> List[MethodDescriptor]:
    """Collect the rpc lines of ``grpcurl describe <service>`` output."""
    methods: List[MethodDescriptor] = []
    for line in (text or "").splitlines():
        match = _DESCRIBE_RPC_RE.match(line)
        if not match:
            continue
        name, in_stream, input_type, out_stream, output_type = match.groups()
        methods.append(
            MethodDescriptor(
                name=name,
                call_shape=CallShape.from_stream_flags(bool(in_stream), bool(out_stream)),
                input_type=bare_type_name(input_type),
                output_type=bare_type_name(output_type),
            )
        )
    return methods


@dataclass
class _StreamHandle:
    call_key: str
    process: asyncio.subprocess.Process
    stdin_open: bool
    temp_proto: Optional[Path] = None
    paused: bool = False
    # set when a newer call with the same key replaces this one
    detached: bool = False


class GrpcurlTransport(TransportPort):
    def __init__(
        self,
        *,
        binary: str = "grpcurl",
        insecure: bool = True,
        temp_dir: Optional[str] = None,
    ) -> None:
        self._binary = binary
        self._insecure = insecure
        self._temp_dir = Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())
        self._handlers: List[EventHandler] = []
        self._streams: Dict[str, _StreamHandle] = {}
        # pump tasks outlive their handle when a stream is cancelled
        self._tasks: Set[asyncio.Task] = set()
        self._lock = asyncio.Lock()

    # Helpers
    def _write_temp_proto(self, proto_source: str) -> Path:
        path = self._temp_dir / f"grpc_workbench_{uuid.uuid4().hex}.proto"
        try:
            path.write_text(proto_source, encoding="utf-8")
        except OSError as exc:
            raise TransportException(f"failed writing temp proto: {exc}")
        return path

    @staticmethod
    def _remove_temp(path: Optional[Path]) -> None:
        if path is None:
            return
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("grpcurl_temp_proto_cleanup_failed", path=str(path), error=str(exc))

    def _call_args(self, address: str, full_method: str, insecure: bool, temp_proto: Optional[Path]) -> List[str]:
        args: List[str] = []
        if insecure:
            args.append("-plaintext")
        if temp_proto is not None:
            args += ["-import-path", str(temp_proto.parent), "-proto", str(temp_proto)]
        # request bodies are always fed through stdin
        args += ["-d", "@", address, build_method_path(full_method)]
        return args

    async def _spawn(self, args: Sequence[str], *, with_stdin: bool) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(
                self._binary,
                *args,
                stdin=asyncio.subprocess.PIPE if with_stdin else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise TransportException(f"failed to spawn grpcurl: {exc}")

    async def _run(self, args: Sequence[str], stdin_data: Optional[bytes] = None) -> Tuple[int, str, str]:
        process = await self._spawn(args, with_stdin=stdin_data is not None)
        stdout, stderr = await process.communicate(stdin_data)
        return (
            process.returncode if process.returncode is not None else -1,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )

    async def _emit(self, event: StreamEvent) -> None:
        async with self._lock:
            handlers = list(self._handlers)
        for h in handlers:
            try:
                await h(event)
            except Exception as exc:  # pragma: no cover
                logger.error("grpcurl_event_handler_failed", kind=event.kind.value, error=str(exc))

    async def _emit_for(self, handle: _StreamHandle, event: StreamEvent) -> None:
        if not handle.detached:
            await self._emit(event)

    @staticmethod
    def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            pass

    # Unary
    async def invoke_unary(
        self,
        address: str,
        full_method: str,
        request_json: Any,
        proto_source: Optional[str],
        insecure: bool,
    ) -> Any:
        try:
            payload = json.dumps(request_json, ensure_ascii=False, allow_nan=False).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise TransportException(f"invalid request json: {exc}")

        temp_proto = self._write_temp_proto(proto_source) if proto_source else None
        try:
            code, stdout, stderr = await self._run(
                self._call_args(address, full_method, insecure, temp_proto),
                stdin_data=payload,
            )
        finally:
            self._remove_temp(temp_proto)

        if code != 0:
            status = parse_status(stderr)
            logger.info(
                "grpcurl_unary_failed",
                method=full_method,
                exit_code=code,
                status=getattr(status, "name", None),
            )
            raise TransportException(
                f"grpcurl error: {stderr.strip()}",
                status=status,
                details={"stderr": stderr, "exit_code": code},
            )
        try:
            return json.loads(stdout)
        except json.JSONDecodeError as exc:
            raise TransportException(
                f"failed to parse grpcurl json: {exc}",
                details={"raw": stdout},
            )

    # Streaming
    async def start_streaming_call(
        self,
        address: str,
        full_method: str,
        request_json: Any,
        streaming_json: Any,
        proto_source: Optional[str],
        call_shape: CallShape,
    ) -> None:
        key = stream_key(address, full_method)
        previous = self._streams.pop(key, None)
        if previous is not None:
            logger.info("grpcurl_stream_replaced", call_key=key)
            previous.detached = True
            self._kill(previous.process)

        temp_proto = self._write_temp_proto(proto_source) if proto_source else None
        try:
            process = await self._spawn(
                self._call_args(address, full_method, self._insecure, temp_proto),
                with_stdin=True,
            )
        except TransportException:
            self._remove_temp(temp_proto)
            raise

        handle = _StreamHandle(call_key=key, process=process, stdin_open=True, temp_proto=temp_proto)
        try:
            if call_shape is CallShape.SERVER_STREAMING:
                body = request_json if request_json is not None else {}
                await self._write_line(handle, body)
                self._close_stdin(handle)
            elif streaming_json is not None:
                await self._write_line(handle, streaming_json)
        except TransportException:
            self._kill(process)
            self._remove_temp(temp_proto)
            raise

        self._streams[key] = handle
        for pump in (self._pump_stdout(handle), self._pump_stderr(handle)):
            task = asyncio.create_task(pump)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        logger.info("grpcurl_stream_started", call_key=key, call_shape=call_shape.value, pid=process.pid)

    async def _write_line(self, handle: _StreamHandle, message: Any) -> None:
        stdin = handle.process.stdin
        if stdin is None or not handle.stdin_open:
            raise TransportException("no active stream or stdin closed")
        try:
            data = json.dumps(message, ensure_ascii=False, allow_nan=False).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise TransportException(f"invalid JSON: {exc}")
        try:
            stdin.write(data + b"\n")
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise TransportException(f"stdin write failed: {exc}")

    @staticmethod
    def _close_stdin(handle: _StreamHandle) -> None:
        handle.stdin_open = False
        stdin = handle.process.stdin
        if stdin is not None and not stdin.is_closing():
            stdin.close()

    async def _pump_stdout(self, handle: _StreamHandle) -> None:
        splitter = JsonStreamSplitter()
        stdout = handle.process.stdout
        try:
            if stdout is not None:
                async for raw in stdout:
                    if handle.paused:
                        continue
                    line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                    for document in splitter.feed_line(line):
                        await self._emit_for(handle, StreamEvent.data(document, call_key=handle.call_key))
            for document in splitter.flush():
                await self._emit_for(handle, StreamEvent.data(document, call_key=handle.call_key))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            await self._emit_for(handle, StreamEvent.error(f"read error: {exc}", call_key=handle.call_key))

        await handle.process.wait()
        await self._emit_for(handle, StreamEvent.end(call_key=handle.call_key))
        logger.info("grpcurl_stream_finished", call_key=handle.call_key, exit_code=handle.process.returncode)
        self._remove_temp(handle.temp_proto)
        if self._streams.get(handle.call_key) is handle:
            del self._streams[handle.call_key]

    async def _pump_stderr(self, handle: _StreamHandle) -> None:
        stderr = handle.process.stderr
        if stderr is None:
            return
        async for raw in stderr:
            line = raw.decode("utf-8", errors="replace").strip()
            if line:
                await self._emit_for(handle, StreamEvent.error(line, call_key=handle.call_key))

    async def send_streaming_signal(self, address: str, full_method: str, signal: StreamingSignal) -> None:
        try:
            signal = StreamingSignal(signal)
        except ValueError:
            raise TransportException(f"unknown signal: {signal}")

        key = stream_key(address, full_method)
        if signal is StreamingSignal.CANCEL:
            handle = self._streams.pop(key, None)
            if handle is not None:
                self._kill(handle.process)
            logger.info("grpcurl_stream_cancelled", call_key=key, found=handle is not None)
            return

        handle = self._streams.get(key)
        if handle is None:
            logger.debug("grpcurl_signal_ignored", call_key=key, signal=signal.value)
            return
        if signal is StreamingSignal.END:
            self._close_stdin(handle)
        else:
            handle.paused = signal is StreamingSignal.PAUSE

    async def send_streaming_message(self, address: str, full_method: str, message: Any) -> None:
        handle = self._streams.get(stream_key(address, full_method))
        if handle is None:
            raise TransportException("no active stream or stdin closed")
        await self._write_line(handle, message)

    async def subscribe(self, handler: EventHandler) -> None:
        async with self._lock:
            self._handlers.append(handler)

    # Reflection
    async def list_services(self, address: str) -> List[str]:
        args = ["-plaintext"] if self._insecure else []
        code, stdout, stderr = await self._run([*args, address, "list"])
        if code != 0:
            raise TransportException(stderr.strip() or "grpcurl list failed", status=parse_status(stderr))
        return [line.strip() for line in stdout.splitlines() if line.strip()]

    async def describe_service(self, address: str, service: str) -> List[MethodDescriptor]:
        args = ["-plaintext"] if self._insecure else []
        code, stdout, stderr = await self._run([*args, address, "describe", service])
        if code != 0:
            raise TransportException(stderr.strip() or "grpcurl describe failed", status=parse_status(stderr))
        return parse_describe_output(stdout)

    async def aclose(self) -> None:
        handles = list(self._streams.values())
        self._streams.clear()
        for handle in handles:
            self._kill(handle.process)
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for handle in handles:
            # killed processes must be reaped before the loop closes
            await handle.process.wait()
            self._remove_temp(handle.temp_proto)
        async with self._lock:
            self._handlers.clear()


__all__ = [
    "GrpcurlTransport",
    "build_method_path",
    "parse_status",
    "parse_describe_output",
]
