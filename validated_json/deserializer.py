from __future__ import annotations

import json
import logging
from typing import Any, TypeVar

from validated_json.config import Settings
from validated_json.document_reader import Document, DocumentReader, Source
from validated_json.errors import JsonException, JsonProcessingError, ValidationFailure
from validated_json.models import ValidationReport, Violation, schema_name_for
from validated_json.schema_locator import SchemaLocator
from validated_json.schema_validator import SchemaValidator


log = logging.getLogger("validated_json.deserializer")

T = TypeVar("T")


class ValidatingDeserializer:
    """Reads json documents into typed values, refusing anything the shape's schema rejects.

    Every call is independent: the document is read, the schema located and
    loaded, and the report built from scratch. Inner failures surface as
    ``JsonException`` with the original error attached as ``__cause__``.
    """

    def __init__(
        self,
        locator: SchemaLocator | None = None,
        *,
        reader: DocumentReader | None = None,
        validator: SchemaValidator | None = None,
    ):
        self.locator = locator or SchemaLocator()
        self.reader = reader or DocumentReader()
        self.validator = validator or SchemaValidator(self.locator)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ValidatingDeserializer":
        locator = SchemaLocator.from_settings(settings)
        return cls(locator, reader=DocumentReader(settings.document_encoding))

    def read_and_validate(self, source: Source, shape_type: type[T], *, source_id: str | None = None) -> T:
        schema_name = schema_name_for(shape_type)
        ident = self.reader.source_identifier(source, source_id)
        try:
            document = self.reader.load(source, source_id=ident)
            resource = self.locator.locate(schema_name)
            report = self.validator.validate(document.tree, resource)
            self._ensure_valid(document, report, schema_name)
            return document.materialize(shape_type)
        except JsonProcessingError as e:
            raise JsonException(f"Problem reading json file: {ident}") from e

    def read_and_validate_list(
        self, source: Source, element_type: type[T], *, source_id: str | None = None
    ) -> list[T]:
        """List form: every element is checked against the element shape's schema.

        The schema is resolved once, from the element shape, and reused for all
        elements. An empty array is returned as-is without resolving anything.
        """
        schema_name = schema_name_for(element_type)
        ident = self.reader.source_identifier(source, source_id)
        try:
            document = self.reader.load(source, source_id=ident)
            if not isinstance(document.tree, list):
                report = ValidationReport(
                    violations=[Violation(message="document is not a json array", keyword="type")]
                )
                self._ensure_valid(document, report, schema_name)
            if not document.tree:
                log.debug("%s is an empty list; nothing to validate", ident)
                return []
            resource = self.locator.locate(schema_name)
            report = self.validator.validate_each(document.tree, resource)
            self._ensure_valid(document, report, schema_name)
            return document.materialize(list[element_type])  # type: ignore[valid-type]
        except JsonProcessingError as e:
            raise JsonException(f"Problem reading json file: {ident}") from e

    def _ensure_valid(self, document: Document, report: ValidationReport, schema_name: str) -> None:
        if report.success:
            return
        for violation in report.violations:
            log.error(
                "%s contains the following error:\n\t%s",
                document.source_id,
                violation,
                extra={"source_id": document.source_id, "schema": schema_name, "pointer": violation.pointer},
            )
        if log.isEnabledFor(logging.DEBUG):
            log.debug(json.dumps(document.tree, ensure_ascii=False, default=str))
        raise ValidationFailure(document.source_id, report)


def read_and_validate_json(source: Source, shape_type: type[T], *, source_id: str | None = None) -> T:
    return ValidatingDeserializer.from_settings(Settings.load()).read_and_validate(
        source, shape_type, source_id=source_id
    )


def read_and_validate_json_list(source: Source, element_type: type[T], *, source_id: str | None = None) -> list[T]:
    return ValidatingDeserializer.from_settings(Settings.load()).read_and_validate_list(
        source, element_type, source_id=source_id
    )
