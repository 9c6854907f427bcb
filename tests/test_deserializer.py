from __future__ import annotations

import io
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from pydantic import Field

from validated_json.deserializer import ValidatingDeserializer, read_and_validate_json, read_and_validate_json_list
from validated_json.errors import (
    DocumentReadError,
    JsonException,
    MalformedDocumentError,
    MaterializationError,
    SchemaLoadError,
    SchemaNotFoundError,
    ValidationFailure,
)
from validated_json.models import ValidatedElement
from validated_json.schema_locator import SchemaLocator
from validated_json.schema_validator import SchemaValidator


def _fixtures() -> Path:
    return Path(__file__).resolve().parent / "fixtures"


def _schemas() -> Path:
    return _fixtures() / "schemas"


def _doc(name: str) -> Path:
    return _fixtures() / "documents" / name


class Widget(ValidatedElement):
    SCHEMA_FILE_NAME = "widget-schema.json"

    name: str
    count: int


class CappedWidget(ValidatedElement):
    SCHEMA_FILE_NAME = "widget-schema.json"

    name: str
    count: int = Field(le=10)


class Phantom(ValidatedElement):
    SCHEMA_FILE_NAME = "phantom-schema.json"

    name: str


class BrokenShape(ValidatedElement):
    SCHEMA_FILE_NAME = "broken-schema.json"


class PlainWidget:
    """Satisfies the Shape protocol without being a pydantic model."""

    @classmethod
    def schema_file_name(cls) -> str:
        return "widget-schema.json"


def _deserializer() -> ValidatingDeserializer:
    return ValidatingDeserializer(SchemaLocator([_schemas()]))


class ReadAndValidateTests(unittest.TestCase):
    def test_valid_document_returns_typed_value_without_logging_errors(self) -> None:
        with self.assertNoLogs("validated_json.deserializer", level="ERROR"):
            widget = _deserializer().read_and_validate(_doc("widget.json"), Widget)
        self.assertIsInstance(widget, Widget)
        self.assertEqual(widget.name, "widget")
        self.assertEqual(widget.count, 3)

    def test_typed_value_reserializes_to_schema_valid_tree(self) -> None:
        locator = SchemaLocator([_schemas()])
        widget = ValidatingDeserializer(locator).read_and_validate(_doc("widget.json"), Widget)
        report = SchemaValidator(locator).validate(widget.model_dump(mode="json"), locator.locate(Widget))
        self.assertTrue(report.success)

    def test_missing_count_raises_with_single_violation_at_count(self) -> None:
        with self.assertLogs("validated_json.deserializer", level="ERROR") as logs:
            with self.assertRaises(JsonException) as ctx:
                _deserializer().read_and_validate(_doc("widget-missing-count.json"), Widget)

        err = ctx.exception
        self.assertIsInstance(err.cause, ValidationFailure)
        self.assertEqual(len(err.violations), 1)
        self.assertEqual(err.violations[0].pointer, "/count")
        self.assertEqual(err.violations[0].keyword, "required")
        self.assertIn("widget-missing-count.json", str(err))
        self.assertEqual(len(logs.records), 1)
        self.assertEqual(
            logs.records[0].getMessage(),
            "widget-missing-count.json contains the following error:\n\t/count: 'count' is a required property",
        )

    def test_every_violation_is_reported_and_logged(self) -> None:
        source = io.BytesIO(b'{"name": 5}')
        with self.assertLogs("validated_json.deserializer", level="ERROR") as logs:
            with self.assertRaises(JsonException) as ctx:
                _deserializer().read_and_validate(source, Widget, source_id="inline.json")

        pointers = [v.pointer for v in ctx.exception.violations]
        self.assertEqual(pointers, ["/name", "/count"])
        self.assertEqual(len(logs.records), 2)
        self.assertTrue(all(r.getMessage().startswith("inline.json contains the following error:\n\t") for r in logs.records))
        self.assertEqual(logs.records[0].pointer, "/name")  # type: ignore[attr-defined]
        self.assertEqual(logs.records[0].schema, "widget-schema.json")  # type: ignore[attr-defined]

    def test_parsable_but_invalid_document_never_returns_value(self) -> None:
        # "3" would coerce to an int in a lax typed parse; the schema still rejects it.
        source = io.StringIO('{"name": "widget", "count": "3"}')
        with self.assertLogs("validated_json.deserializer", level="ERROR"):
            with self.assertRaises(JsonException) as ctx:
                _deserializer().read_and_validate(source, Widget)
        self.assertEqual([v.pointer for v in ctx.exception.violations], ["/count"])

    def test_malformed_document_fails_before_schema_lookup(self) -> None:
        with self.assertRaises(JsonException) as ctx:
            _deserializer().read_and_validate(_doc("truncated.json"), Phantom)
        self.assertIsInstance(ctx.exception.cause, MalformedDocumentError)
        self.assertEqual(ctx.exception.violations, [])

    def test_unresolvable_schema_is_distinct_from_validation_failure(self) -> None:
        with self.assertRaises(JsonException) as ctx:
            _deserializer().read_and_validate(io.BytesIO(b'{"name": "x"}'), Phantom)
        self.assertIsInstance(ctx.exception.cause, SchemaNotFoundError)
        self.assertNotIsInstance(ctx.exception.cause, ValidationFailure)

    def test_corrupt_schema_surfaces_as_schema_load_error(self) -> None:
        with self.assertRaises(JsonException) as ctx:
            _deserializer().read_and_validate(io.BytesIO(b"{}"), BrokenShape)
        self.assertIsInstance(ctx.exception.cause, SchemaLoadError)

    def test_missing_file_is_wrapped(self) -> None:
        with self.assertRaises(JsonException) as ctx:
            _deserializer().read_and_validate(_doc("does-not-exist.json"), Widget)
        self.assertIsInstance(ctx.exception.cause, DocumentReadError)
        self.assertIn("does-not-exist.json", str(ctx.exception))

    def test_model_stricter_than_schema_raises_materialization_error(self) -> None:
        with self.assertRaises(JsonException) as ctx:
            _deserializer().read_and_validate(io.BytesIO(b'{"name": "big", "count": 50}'), CappedWidget)
        self.assertIsInstance(ctx.exception.cause, MaterializationError)

    def test_unknown_fields_are_accepted(self) -> None:
        widget = _deserializer().read_and_validate(
            io.BytesIO(b'{"name": "w", "count": 1, "colour": "teal"}'), Widget
        )
        self.assertEqual(widget.count, 1)
        self.assertFalse(hasattr(widget, "colour"))

    def test_shape_without_schema_name_is_a_type_error(self) -> None:
        with self.assertRaises(TypeError):
            _deserializer().read_and_validate(io.BytesIO(b"{}"), dict)  # type: ignore[arg-type]

    def test_undecodable_text_stream_is_wrapped(self) -> None:
        stream = io.TextIOWrapper(io.BytesIO(b'{"name": "\xff", "count": 1}'), encoding="utf-8")
        with self.assertRaises(JsonException) as ctx:
            _deserializer().read_and_validate(stream, Widget, source_id="latin.json")
        self.assertIsInstance(ctx.exception.cause, MalformedDocumentError)
        self.assertIn("latin.json", str(ctx.exception))

    def test_pathologically_nested_document_is_wrapped(self) -> None:
        depth = 100_000
        with self.assertRaises(JsonException) as ctx:
            _deserializer().read_and_validate(io.BytesIO(b"[" * depth + b"]" * depth), Widget)
        self.assertIsInstance(ctx.exception.cause, MalformedDocumentError)

    def test_non_pydantic_shape_is_wrapped(self) -> None:
        with self.assertRaises(JsonException) as ctx:
            _deserializer().read_and_validate(io.BytesIO(b'{"name": "w", "count": 1}'), PlainWidget)
        self.assertIsInstance(ctx.exception.cause, MaterializationError)

    def test_schema_added_between_calls_is_picked_up(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            deserializer = ValidatingDeserializer(SchemaLocator([Path(td)]))
            with self.assertRaises(JsonException):
                deserializer.read_and_validate(io.BytesIO(b'{"name": "x"}'), Phantom)

            (Path(td) / "phantom-schema.json").write_text(
                '{"type": "object", "required": ["name"]}', encoding="utf-8"
            )
            phantom = deserializer.read_and_validate(io.BytesIO(b'{"name": "x"}'), Phantom)
            self.assertEqual(phantom.name, "x")


class ReadAndValidateListTests(unittest.TestCase):
    def test_valid_list_returns_typed_values_in_order(self) -> None:
        widgets = _deserializer().read_and_validate_list(_doc("widget-list.json"), Widget)
        self.assertEqual([w.name for w in widgets], ["first", "second"])
        self.assertTrue(all(isinstance(w, Widget) for w in widgets))

    def test_empty_list_skips_schema_resolution(self) -> None:
        # Phantom's schema does not exist; an empty array must not try to find it.
        self.assertEqual(_deserializer().read_and_validate_list(io.BytesIO(b"[]"), Phantom), [])

    def test_each_element_is_validated(self) -> None:
        source = io.BytesIO(b'[{"name": "ok", "count": 1}, {"name": "bad"}]')
        with self.assertLogs("validated_json.deserializer", level="ERROR"):
            with self.assertRaises(JsonException) as ctx:
                _deserializer().read_and_validate_list(source, Widget, source_id="list.json")
        self.assertEqual([v.pointer for v in ctx.exception.violations], ["/1/count"])

    def test_non_array_document_is_a_validation_failure(self) -> None:
        with self.assertLogs("validated_json.deserializer", level="ERROR"):
            with self.assertRaises(JsonException) as ctx:
                _deserializer().read_and_validate_list(_doc("widget.json"), Widget)
        self.assertIsInstance(ctx.exception.cause, ValidationFailure)
        self.assertEqual(ctx.exception.violations[0].pointer, "")

    def test_malformed_list_document(self) -> None:
        with self.assertRaises(JsonException) as ctx:
            _deserializer().read_and_validate_list(io.BytesIO(b"[{]"), Widget)
        self.assertIsInstance(ctx.exception.cause, MalformedDocumentError)


class ModuleFunctionTests(unittest.TestCase):
    def test_search_path_comes_from_environment(self) -> None:
        with patch.dict(os.environ, {"SCHEMA_PATH": str(_schemas())}, clear=False):
            widget = read_and_validate_json(_doc("widget.json"), Widget)
            widgets = read_and_validate_json_list(_doc("widget-list.json"), Widget)
        self.assertEqual(widget.count, 3)
        self.assertEqual(len(widgets), 2)

    def test_unconfigured_search_path_fails_closed(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with patch.dict(os.environ, {"SCHEMA_PATH": td}, clear=False):
                with self.assertRaises(JsonException) as ctx:
                    read_and_validate_json(_doc("widget.json"), Widget)
        self.assertIsInstance(ctx.exception.cause, SchemaNotFoundError)


if __name__ == "__main__":
    unittest.main()
