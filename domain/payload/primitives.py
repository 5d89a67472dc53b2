"""Scalar type keywords recognised by the sample generator and validator."""
from __future__ import annotations

STRING_TYPES = frozenset({"string"})
BOOL_TYPES = frozenset({"bool"})
FLOAT_TYPES = frozenset({"double", "float"})
INTEGER_TYPES = frozenset({
    "int32", "int64",
    "uint32", "uint64",
    "sint32", "sint64",
    "fixed32", "fixed64",
    "sfixed32", "sfixed64",
})
BYTES_TYPES = frozenset({"bytes"})

# base64 of "sample"
SAMPLE_BYTES = "c2FtcGxl"
SAMPLE_STRING = "sample"
PLACEHOLDER_SAMPLE = {"sample_field": "sample_value"}

# Bound for recursion into nested message types.
DEFAULT_MAX_DEPTH = 32


def normalize(type_name: str) -> str:
    # keyword matching is case-insensitive
    return type_name.lower()
