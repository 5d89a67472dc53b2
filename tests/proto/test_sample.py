from domain.payload import generate_sample, generate_sample_for_method, validate_payload
from domain.payload.primitives import PLACEHOLDER_SAMPLE
from domain.schema import CallShape, MethodDescriptor


def test_repeated_int_field():
    assert generate_sample("M", "message M { repeated int32 ids = 1; }") == {"ids": [1]}


def test_scalar_defaults_and_nested_message(greeter_proto):
    sample = generate_sample("HelloRequest", greeter_proto)

    assert sample == {
        "name": "sample",
        "times": 1,
        "tags": ["sample"],
        "address": {"city": "sample", "zip": 1},
        "avatar": "c2FtcGxl",
        "polite": False,
        "score": 1.0,
    }


def test_unresolvable_inputs_yield_placeholder():
    assert generate_sample("Missing", "message M { string a = 1; }") == PLACEHOLDER_SAMPLE
    assert generate_sample("M", "") == PLACEHOLDER_SAMPLE
    assert generate_sample("Empty", "message Empty { }") == PLACEHOLDER_SAMPLE


def test_placeholder_is_a_fresh_copy():
    first = generate_sample("Missing", "")
    first["sample_field"] = "changed"
    assert generate_sample("Missing", "") == PLACEHOLDER_SAMPLE


def test_unknown_alias_becomes_string():
    assert generate_sample("M", "message M { Timestamp at = 1; }") == {"at": "sample"}


def test_self_reference_is_cut():
    text = "message Node { string id = 1; Node next = 2; repeated Node children = 3; }"
    assert generate_sample("Node", text) == {"id": "sample", "next": None, "children": []}


def test_mutual_recursion_terminates():
    text = "message A { B b = 1; }\nmessage B { A a = 1; string v = 2; }"
    assert generate_sample("A", text) == {"b": {"a": None, "v": "sample"}}


def test_depth_bound_stops_nesting():
    text = "message A { B b = 1; }\nmessage B { C c = 1; }\nmessage C { string v = 1; }"
    assert generate_sample("A", text, max_depth=1) == {"b": {"c": None}}


def test_nested_empty_message_is_empty_object():
    text = "message Outer { Inner inner = 1; }\nmessage Inner { }"
    assert generate_sample("Outer", text) == {"inner": {}}


def test_sample_validates_against_its_schema(greeter_proto):
    sample = generate_sample("HelloRequest", greeter_proto)
    assert validate_payload(sample, "HelloRequest", greeter_proto).valid


def test_sample_for_method_uses_input_type(greeter_proto):
    method = MethodDescriptor("SayHello", CallShape.UNARY, "HelloReply", "HelloRequest")
    assert generate_sample_for_method(method, greeter_proto) == {"message": "sample"}
