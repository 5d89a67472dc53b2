from application.services.proto_service import ProtoSchemaService


def test_service_applies_configured_limits():
    relaxed = ProtoSchemaService()
    strict = ProtoSchemaService(max_depth=4, strict_tags=True)
    text = "message M { string a = 1; string b = 1; }"

    assert relaxed.validate({}, "M", text).valid
    assert not strict.validate({}, "M", text).valid


def test_sample_for_method(greeter_proto):
    service = ProtoSchemaService()
    greeter = service.list_services(greeter_proto)[0]
    method = next(m for m in greeter.methods if m.name == "LotsOfReplies")

    assert service.sample_for_method(method, greeter_proto)["address"] == {"city": "sample", "zip": 1}


def test_describe_message(greeter_proto):
    service = ProtoSchemaService()
    assert service.describe_message("HelloReply", greeter_proto).field_names == {"message"}
    assert service.describe_message("Nope", greeter_proto) is None
