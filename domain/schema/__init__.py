"""Structural model of .proto text: services, methods and message fields."""
from .entities import (
    CallShape,
    FieldSchema,
    MessageSchema,
    MethodDescriptor,
    ServiceDescriptor,
)
from .extractor import (
    extract_message,
    extract_package,
    extract_services,
    type_name_is_message,
)

__all__ = [
    "CallShape",
    "FieldSchema",
    "MessageSchema",
    "MethodDescriptor",
    "ServiceDescriptor",
    "extract_message",
    "extract_package",
    "extract_services",
    "type_name_is_message",
]
