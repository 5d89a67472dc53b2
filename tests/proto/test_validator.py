from domain.payload import (
    ValidationErrorKind,
    format_validation_errors,
    validate_payload,
)
from domain.payload.validator import _MARKERS

PERSON = "message Person { string name = 1; }"


def test_wrong_scalar_type_is_a_single_mismatch():
    result = validate_payload({"name": 5}, "Person", PERSON)

    assert result.valid is False
    assert len(result.errors) == 1
    assert result.errors[0].kind is ValidationErrorKind.TYPE_MISMATCH
    assert result.errors[0].field_path == "name"


def test_unknown_field_is_reported():
    result = validate_payload({"name": "x", "extra": 1}, "Person", PERSON)

    assert result.valid is False
    assert len(result.errors) == 1
    assert result.errors[0].kind is ValidationErrorKind.UNKNOWN_FIELD
    assert result.errors[0].field_path == "extra"


def test_absent_and_null_fields_are_accepted():
    assert validate_payload({}, "Person", PERSON).valid
    assert validate_payload({"name": None}, "Person", PERSON).valid


def test_missing_schema():
    result = validate_payload({}, "Nope", PERSON)
    assert result.errors[0].kind is ValidationErrorKind.INVALID_VALUE
    assert result.errors[0].message == "Could not find message definition for 'Nope'"


def test_non_object_payload_is_root_mismatch():
    result = validate_payload([1, 2], "Person", PERSON)
    assert len(result.errors) == 1
    assert result.errors[0].field_path == "root"
    assert result.errors[0].kind is ValidationErrorKind.TYPE_MISMATCH


def test_integer_rules(greeter_proto):
    assert validate_payload({"times": 2.0}, "HelloRequest", greeter_proto).valid
    assert not validate_payload({"times": 1.5}, "HelloRequest", greeter_proto).valid
    result = validate_payload({"times": True}, "HelloRequest", greeter_proto)
    assert result.errors[0].message == "Expected integer, got boolean"


def test_number_bool_and_bytes(greeter_proto):
    assert validate_payload({"score": 3, "polite": True, "avatar": "AA=="}, "HelloRequest", greeter_proto).valid
    result = validate_payload({"score": "1", "polite": 0, "avatar": 1}, "HelloRequest", greeter_proto)
    assert [e.field_path for e in result.errors] == ["avatar", "polite", "score"]


def test_repeated_field_must_be_array(greeter_proto):
    result = validate_payload({"tags": "a"}, "HelloRequest", greeter_proto)
    assert result.errors[0].message == "Field 'tags' should be an array (repeated field)"


def test_repeated_field_reports_first_bad_element(greeter_proto):
    result = validate_payload({"tags": ["a", 2, 3]}, "HelloRequest", greeter_proto)
    assert len(result.errors) == 1
    assert result.errors[0].field_path == "tags[1]"


def test_nested_message_errors(greeter_proto):
    result = validate_payload({"address": {"city": 1, "zip": "x"}}, "HelloRequest", greeter_proto)

    assert len(result.errors) == 1
    error = result.errors[0]
    assert error.field_path == "address"
    assert error.message == "Invalid nested message: Expected string, got number"
    assert [n.field_path for n in error.nested] == ["address.city", "address.zip"]


def test_nested_message_must_be_object(greeter_proto):
    result = validate_payload({"address": "Paris"}, "HelloRequest", greeter_proto)
    assert result.errors[0].message == "Expected object (message type), got string"


def test_unknown_declared_type():
    result = validate_payload({"f": 1}, "M", "message M { Foo f = 1; }")
    assert result.errors[0].message == "Unknown type 'Foo'"


def test_recursion_is_bounded():
    text = "message Node { Node next = 1; }"
    payload = {"next": {"next": {"next": {"next": {}}}}}

    result = validate_payload(payload, "Node", text, max_depth=2)

    assert result.valid is False
    assert "Maximum nesting depth 2 exceeded" in result.errors[0].message


def test_strict_tags():
    text = "message M { string a = 1; string b = 1; }"
    assert validate_payload({}, "M", text).valid
    result = validate_payload({}, "M", text, strict_tags=True)
    assert result.errors[0].kind is ValidationErrorKind.INVALID_VALUE
    assert result.errors[0].message == "Field number 1 is used more than once in 'M'"


def test_format_validation_errors():
    assert format_validation_errors([]) == ""
    result = validate_payload({"name": 5, "extra": 1}, "Person", PERSON)
    lines = format_validation_errors(result.errors).split("\n")
    assert lines[0] == f"{_MARKERS[ValidationErrorKind.TYPE_MISMATCH]} Expected string, got number"
    assert lines[1] == f"{_MARKERS[ValidationErrorKind.UNKNOWN_FIELD]} Unknown field 'extra'"
