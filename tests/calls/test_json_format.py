import pytest

from application.utils.json_format import (
    format_json,
    minify_json,
    parse_json_text,
    parse_optional_json,
)
from domain.common.exceptions import InvalidJsonException
from shared.codes import BusinessCode


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_input_is_returned_unchanged(text):
    result = format_json(text)
    assert result.success is True
    assert result.formatted == text
    assert result.error is None


def test_pretty_print():
    result = format_json('{"a":1,"b":[1,2]}')
    assert result.success is True
    assert result.formatted == '{\n  "a": 1,\n  "b": [\n    1,\n    2\n  ]\n}'


def test_non_ascii_is_kept():
    assert format_json('{"name":"张三"}').formatted == '{\n  "name": "张三"\n}'


def test_invalid_input_is_echoed_with_error():
    result = format_json("{bad")
    assert result.success is False
    assert result.formatted == "{bad"
    assert result.error


def test_minify():
    assert minify_json('{\n  "a": 1,\n  "b": [1, 2]\n}').formatted == '{"a":1,"b":[1,2]}'


def test_parse_optional_json():
    assert parse_optional_json(None, field="x") is None
    assert parse_optional_json("", field="x") is None
    assert parse_optional_json('{"a": 1}', field="x") == {"a": 1}


def test_parse_json_text_raises_business_exception():
    with pytest.raises(InvalidJsonException) as excinfo:
        parse_json_text("{", field="request_data")
    assert excinfo.value.code == BusinessCode.INVALID_JSON
    assert excinfo.value.field == "request_data"


@pytest.mark.parametrize("text", ["NaN", '{"a": NaN}', "[Infinity]", "-Infinity"])
def test_non_finite_constants_are_rejected(text):
    assert format_json(text).success is False
    assert minify_json(text).success is False


def test_parse_json_text_rejects_infinity():
    with pytest.raises(InvalidJsonException):
        parse_json_text("Infinity", field="request_data")
