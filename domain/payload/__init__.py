"""Sample generation and validation of JSON payloads against message schemas."""
from .sample import generate_sample, generate_sample_for_method
from .validator import (
    ValidationError,
    ValidationErrorKind,
    ValidationResult,
    format_validation_errors,
    validate_payload,
)

__all__ = [
    "generate_sample",
    "generate_sample_for_method",
    "ValidationError",
    "ValidationErrorKind",
    "ValidationResult",
    "format_validation_errors",
    "validate_payload",
]
