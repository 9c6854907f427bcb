from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from validated_json.models import ValidationReport, Violation


class JsonProcessingError(Exception):
    """Base for the failures raised inside a single read-and-validate call."""


class DocumentReadError(JsonProcessingError):
    def __init__(self, source_id: str, cause: BaseException | None = None):
        super().__init__(f"Could not find requested file: {source_id}")
        self.source_id = source_id
        self.cause = cause


class MalformedDocumentError(JsonProcessingError):
    def __init__(self, source_id: str, cause: BaseException):
        super().__init__(f"{source_id} is not valid JSON: {cause}")
        self.source_id = source_id
        self.cause = cause


class SchemaNotFoundError(JsonProcessingError):
    def __init__(self, resource_name: str, detail: str | None = None):
        msg = f"Could not find json schema for '{resource_name}'!"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)
        self.resource_name = resource_name


class AmbiguousSchemaError(SchemaNotFoundError):
    def __init__(self, resource_name: str, matches: Sequence[str]):
        super().__init__(resource_name, "multiple matches: " + ", ".join(matches))
        self.matches = list(matches)


class SchemaLoadError(JsonProcessingError):
    def __init__(self, resource: Any, cause: BaseException):
        super().__init__(f"Problem loading json schema {resource}: {cause}")
        self.resource = resource
        self.cause = cause


class ValidationFailure(JsonProcessingError):
    def __init__(self, source_id: str, report: "ValidationReport"):
        super().__init__(f"{source_id} contained validation errors!")
        self.source_id = source_id
        self.report = report


class MaterializationError(JsonProcessingError):
    """Schema-valid document that still could not be mapped onto the target type."""

    def __init__(self, source_id: str, cause: BaseException):
        super().__init__(f"{source_id} could not be read into the requested type: {cause}")
        self.source_id = source_id
        self.cause = cause


class JsonException(Exception):
    """Single error kind surfaced to callers; the inner failure is kept as __cause__."""

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    @property
    def violations(self) -> list["Violation"]:
        if isinstance(self.__cause__, ValidationFailure):
            return list(self.__cause__.report.violations)
        return []
