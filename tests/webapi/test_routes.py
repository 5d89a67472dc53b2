import pytest
from fastapi.testclient import TestClient

from application.ports.transport import StreamEvent
from domain.schema.entities import CallShape, MethodDescriptor
from infrastructure.transport import InMemoryTransport
from main import app
from shared.codes import BusinessCode


SAY_HELLO = {"name": "SayHello", "call_shape": "unary", "input_type": "HelloRequest", "output_type": "HelloReply"}
BIDI = {"name": "BidiHello", "call_shape": "bidirectional-streaming", "input_type": "HelloRequest", "output_type": "HelloReply"}


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["code"] == BusinessCode.SUCCESS
    assert body["data"]["status"] == "healthy"
    assert "X-Request-ID" in resp.headers


def test_list_services(client, greeter_proto):
    resp = client.post("/api/v1/proto/services", json={"proto_text": greeter_proto})

    assert resp.status_code == 200
    services = resp.json()["data"]
    assert services[0]["name"] == "demo.v1.Greeter"
    shapes = {m["name"]: m["call_shape"] for m in services[0]["methods"]}
    assert shapes == {
        "SayHello": "unary",
        "LotsOfReplies": "server-streaming",
        "LotsOfGreetings": "client-streaming",
        "BidiHello": "bidirectional-streaming",
    }


def test_describe_message(client, greeter_proto):
    resp = client.post("/api/v1/proto/message", json={"proto_text": greeter_proto, "type_name": "Address"})
    assert resp.status_code == 200
    assert [f["name"] for f in resp.json()["data"]["fields"]] == ["city", "zip"]


def test_describe_missing_message(client, greeter_proto):
    resp = client.post("/api/v1/proto/message", json={"proto_text": greeter_proto, "type_name": "Nope"})

    assert resp.status_code == 404
    body = resp.json()
    assert body["code"] == BusinessCode.SCHEMA_NOT_FOUND
    assert body["error"]["type"] == "SchemaNotFound"


def test_sample(client):
    resp = client.post(
        "/api/v1/proto/sample",
        json={"proto_text": "message M { repeated int32 ids = 1; }", "type_name": "M"},
    )
    data = resp.json()["data"]
    assert data["sample"] == {"ids": [1]}
    assert data["text"] == '{\n  "ids": [\n    1\n  ]\n}'


def test_validate(client):
    resp = client.post(
        "/api/v1/proto/validate",
        json={
            "proto_text": "message Person { string name = 1; }",
            "type_name": "Person",
            "payload_text": '{"name": 5}',
        },
    )
    data = resp.json()["data"]
    assert data["valid"] is False
    assert data["errors"][0]["kind"] == "type_mismatch"
    assert data["errors"][0]["field_path"] == "name"
    assert "Expected string, got number" in data["summary"]


def test_validate_rejects_invalid_json(client):
    resp = client.post(
        "/api/v1/proto/validate",
        json={"proto_text": "message P { }", "type_name": "P", "payload_text": "{"},
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == BusinessCode.INVALID_JSON
    assert resp.json()["error"]["field"] == "payload_text"


def test_request_validation_error(client):
    resp = client.post("/api/v1/proto/message", json={"proto_text": "x"})
    assert resp.status_code == 422
    assert resp.json()["code"] == BusinessCode.PARAM_VALIDATION_ERROR


def test_json_format(client):
    blank = client.post("/api/v1/json/format", json={"text": "  "}).json()["data"]
    assert blank == {"success": True, "formatted": "  ", "error": None}

    minified = client.post("/api/v1/json/format", json={"text": '{ "a" : 1 }', "minify": True}).json()["data"]
    assert minified["formatted"] == '{"a":1}'

    broken = client.post("/api/v1/json/format", json={"text": "{oops"}).json()["data"]
    assert broken["success"] is False
    assert broken["formatted"] == "{oops"


def test_unary_call(client):
    resp = client.post(
        "/api/v1/calls",
        json={
            "service_name": "demo.v1.Greeter",
            "method": SAY_HELLO,
            "address": "localhost:50051",
            "request_data": '{"name": "x"}',
        },
    )

    data = resp.json()["data"]
    assert data["kind"] == "unary"
    # the in-memory transport echoes unscripted requests
    assert data["result"] == {"success": True, "response": {"name": "x"}, "error": None, "status": None}


def test_unary_call_with_invalid_json_is_failed_result(client):
    resp = client.post(
        "/api/v1/calls",
        json={"service_name": "s", "method": SAY_HELLO, "address": "a:1", "request_data": "{"},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["result"]["success"] is False


def test_stream_not_started(client):
    resp = client.get("/api/v1/calls/stream")
    assert resp.status_code == 409
    assert resp.json()["code"] == BusinessCode.STREAM_NOT_STARTED


def test_streaming_session_flow(client):
    resp = client.post(
        "/api/v1/calls",
        json={"service_name": "demo.v1.Greeter", "method": BIDI, "address": "a:1"},
    )
    session = resp.json()["data"]["session"]
    assert session["state"] == "active"
    assert session["entries"] == []

    sent = client.post("/api/v1/calls/stream/messages", json={"message": {"x": 1}}).json()["data"]
    assert sent["success"] is True

    transport: InMemoryTransport = app.state.transport
    client.portal.call(transport.publish, StreamEvent.data({"reply": 1}, call_key="a:1-demo.v1.Greeter.BidiHello"))

    snapshot = client.get("/api/v1/calls/stream").json()["data"]
    assert [e["direction"] for e in snapshot["entries"]] == ["sent", "received"]
    assert snapshot["entries"][1]["payload"] == {"reply": 1}

    ended = client.post("/api/v1/calls/stream/signal", json={"signal": "end"}).json()["data"]
    assert ended["success"] is True
    assert client.get("/api/v1/calls/stream").json()["data"]["state"] == "ended"

    rejected = client.post("/api/v1/calls/stream/messages", json={"message": {"x": 2}}).json()["data"]
    assert rejected["success"] is False

    assert client.delete("/api/v1/calls").status_code == 200
    assert client.get("/api/v1/calls/stream").status_code == 409


def test_unknown_signal_is_rejected(client):
    resp = client.post("/api/v1/calls/stream/signal", json={"signal": "rewind"})
    assert resp.status_code == 422


def test_reflection(client):
    transport: InMemoryTransport = app.state.transport
    transport.services["demo.v1.Greeter"] = [
        MethodDescriptor("SayHello", CallShape.UNARY, "HelloRequest", "HelloReply"),
    ]

    listed = client.get("/api/v1/reflection/services", params={"address": "a:1"}).json()["data"]
    assert listed == ["demo.v1.Greeter"]

    described = client.get("/api/v1/reflection/services/demo.v1.Greeter", params={"address": "a:1"}).json()["data"]
    assert described == [SAY_HELLO]

    missing = client.get("/api/v1/reflection/services/demo.v1.Missing", params={"address": "a:1"})
    assert missing.status_code == 502
    assert missing.json()["code"] == BusinessCode.TRANSPORT_ERROR
