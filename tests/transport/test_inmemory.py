import grpc
import pytest

from application.ports.transport import StreamEvent, StreamingSignal, TransportPort
from domain.common.exceptions import TransportException
from domain.schema.entities import CallShape, MethodDescriptor
from infrastructure.transport import InMemoryTransport


def test_satisfies_transport_port():
    assert isinstance(InMemoryTransport(), TransportPort)


@pytest.mark.asyncio
async def test_publish_reaches_every_subscriber():
    transport = InMemoryTransport()
    seen_a, seen_b = [], []

    async def handler_a(event):
        seen_a.append(event)

    async def handler_b(event):
        seen_b.append(event)

    await transport.subscribe(handler_a)
    await transport.subscribe(handler_b)
    await transport.publish(StreamEvent.data({"n": 1}))

    assert [e.payload for e in seen_a] == [{"n": 1}]
    assert [e.payload for e in seen_b] == [{"n": 1}]


@pytest.mark.asyncio
async def test_fail_next_is_one_shot():
    transport = InMemoryTransport()
    transport.fail_next("list_services", TransportException("down"))

    with pytest.raises(TransportException):
        await transport.list_services("a:1")
    assert await transport.list_services("a:1") == []
    assert len(transport.calls_of("list_services")) == 2


@pytest.mark.asyncio
async def test_describe_unknown_service():
    method = MethodDescriptor("SayHello", CallShape.UNARY, "HelloRequest", "HelloReply")
    transport = InMemoryTransport(services={"demo.v1.Greeter": [method]})

    assert await transport.describe_service("a:1", "demo.v1.Greeter") == [method]
    with pytest.raises(TransportException) as excinfo:
        await transport.describe_service("a:1", "demo.v1.Missing")
    assert excinfo.value.status is grpc.StatusCode.NOT_FOUND


@pytest.mark.asyncio
async def test_stream_stdin_lifecycle():
    transport = InMemoryTransport(echo_messages=True)
    received = []

    async def handler(event):
        received.append(event.payload)

    await transport.subscribe(handler)
    await transport.start_streaming_call("a:1", "svc.Bidi", None, None, None, CallShape.BIDIRECTIONAL)
    await transport.send_streaming_message("a:1", "svc.Bidi", {"x": 1})
    await transport.send_streaming_signal("a:1", "svc.Bidi", StreamingSignal.END)

    with pytest.raises(TransportException):
        await transport.send_streaming_message("a:1", "svc.Bidi", {"x": 2})
    assert received == [{"x": 1}]

    await transport.send_streaming_signal("a:1", "svc.Bidi", StreamingSignal.CANCEL)
    assert not transport.is_open("a:1", "svc.Bidi")


@pytest.mark.asyncio
async def test_server_streaming_has_no_open_stdin():
    transport = InMemoryTransport()
    await transport.start_streaming_call("a:1", "svc.Server", {}, None, None, CallShape.SERVER_STREAMING)

    with pytest.raises(TransportException):
        await transport.send_streaming_message("a:1", "svc.Server", {"x": 1})
