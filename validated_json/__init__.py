from __future__ import annotations

from validated_json.deserializer import ValidatingDeserializer, read_and_validate_json, read_and_validate_json_list
from validated_json.errors import (
    AmbiguousSchemaError,
    DocumentReadError,
    JsonException,
    JsonProcessingError,
    MalformedDocumentError,
    MaterializationError,
    SchemaLoadError,
    SchemaNotFoundError,
    ValidationFailure,
)
from validated_json.models import Shape, ValidatedElement, ValidationReport, Violation


__all__ = [
    "AmbiguousSchemaError",
    "DocumentReadError",
    "JsonException",
    "JsonProcessingError",
    "MalformedDocumentError",
    "MaterializationError",
    "SchemaLoadError",
    "SchemaNotFoundError",
    "Shape",
    "ValidatedElement",
    "ValidatingDeserializer",
    "ValidationFailure",
    "ValidationReport",
    "Violation",
    "read_and_validate_json",
    "read_and_validate_json_list",
]
