import pytest
import grpc

from application.dtos.calls import CallResult, RequestForm
from application.ports.transport import StreamingSignal
from application.services.dispatch_service import RpcDispatchService, build_full_method
from application.services.streaming_service import StreamingSessionController
from domain.common.exceptions import TransportException
from domain.schema.entities import CallShape, MethodDescriptor
from domain.streaming.session import SessionState, StreamSessionRecord
from infrastructure.transport import InMemoryTransport


SERVICE = "demo.v1.Greeter"
SAY_HELLO = MethodDescriptor("SayHello", CallShape.UNARY, "HelloRequest", "HelloReply")
BIDI = MethodDescriptor("BidiHello", CallShape.BIDIRECTIONAL, "HelloRequest", "HelloReply")


def _dispatcher(transport: InMemoryTransport) -> RpcDispatchService:
    return RpcDispatchService(transport=transport, controller=StreamingSessionController(transport))


def test_build_full_method():
    assert build_full_method(SERVICE, "SayHello") == "demo.v1.Greeter.SayHello"


@pytest.mark.asyncio
async def test_unary_call_success():
    transport = InMemoryTransport(unary_responses={"demo.v1.Greeter.SayHello": {"message": "hi"}})
    dispatcher = _dispatcher(transport)
    form = RequestForm(address="localhost:50051", request_data='{"name": "x"}')

    result = await dispatcher.make_call(SERVICE, SAY_HELLO, form)

    assert isinstance(result, CallResult)
    assert result.success is True
    assert result.response == {"message": "hi"}
    assert dispatcher.last_response is result
    assert dispatcher.loading is False

    call = transport.calls_of("invoke_unary")[0]
    assert call.arguments["request_json"] == {"name": "x"}
    assert call.arguments["proto_source"] is None
    assert call.arguments["insecure"] is True


@pytest.mark.asyncio
async def test_proto_text_is_forwarded(greeter_proto):
    transport = InMemoryTransport()
    dispatcher = _dispatcher(transport)

    await dispatcher.make_call(SERVICE, SAY_HELLO, RequestForm(address="a:1", request_data="{}"), greeter_proto)

    assert transport.calls_of("invoke_unary")[0].arguments["proto_source"] == greeter_proto


@pytest.mark.asyncio
async def test_invalid_request_json_is_a_failed_result():
    transport = InMemoryTransport()
    dispatcher = _dispatcher(transport)

    result = await dispatcher.make_call(SERVICE, SAY_HELLO, RequestForm(address="a:1", request_data="{oops"))

    assert result.success is False
    assert result.error.startswith("Invalid JSON in request_data")
    assert transport.calls_of("invoke_unary") == []


@pytest.mark.asyncio
async def test_transport_failure_carries_status():
    transport = InMemoryTransport()
    transport.fail_next(
        "invoke_unary",
        TransportException("grpcurl error: connection refused", status=grpc.StatusCode.UNAVAILABLE),
    )
    dispatcher = _dispatcher(transport)

    result = await dispatcher.make_call(SERVICE, SAY_HELLO, RequestForm(address="a:1", request_data="{}"))

    assert result.success is False
    assert result.error == "grpcurl error: connection refused"
    assert result.status == "UNAVAILABLE"
    assert dispatcher.last_response is result


@pytest.mark.asyncio
async def test_streaming_call_goes_to_controller():
    transport = InMemoryTransport()
    dispatcher = _dispatcher(transport)
    form = RequestForm(address="a:1", streaming_data='{"name": "first"}')

    outcome = await dispatcher.make_call(SERVICE, BIDI, form)

    assert isinstance(outcome, StreamSessionRecord)
    assert outcome.state is SessionState.ACTIVE
    assert outcome.full_method == "demo.v1.Greeter.BidiHello"
    assert transport.calls_of("invoke_unary") == []
    started = transport.calls_of("start_streaming_call")[0]
    assert started.arguments["streaming_json"] == {"name": "first"}
    assert started.arguments["call_shape"] is CallShape.BIDIRECTIONAL


@pytest.mark.asyncio
async def test_clear_drops_response_and_session():
    transport = InMemoryTransport()
    dispatcher = _dispatcher(transport)
    await dispatcher.make_call(SERVICE, SAY_HELLO, RequestForm(address="a:1", request_data="{}"))
    await dispatcher.make_call(SERVICE, BIDI, RequestForm(address="a:1"))

    await dispatcher.clear()

    assert dispatcher.last_response is None
    assert dispatcher.session.state is SessionState.IDLE
    assert not transport.is_open("a:1", "demo.v1.Greeter.BidiHello")
    cancel = transport.calls_of("send_streaming_signal")[0]
    assert cancel.arguments["signal"] is StreamingSignal.CANCEL

    result = await dispatcher.controller.send_signal(StreamingSignal.CANCEL)
    assert result.success is False
