from __future__ import annotations

import json
import logging
from typing import Any, Iterable

from jsonschema import Draft4Validator
from jsonschema.exceptions import SchemaError
from jsonschema.exceptions import ValidationError as SchemaViolation
from jsonschema.validators import validator_for
from referencing import Registry, Resource
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT4

from validated_json.errors import SchemaLoadError
from validated_json.models import ValidationReport, Violation, to_pointer
from validated_json.schema_locator import SchemaLocator, SchemaResource


log = logging.getLogger("validated_json.schema_validator")


def _missing_property(error: SchemaViolation) -> str | None:
    # jsonschema reports one "'<name>' is a required property" error per missing member.
    required = error.validator_value if isinstance(error.validator_value, list) else []
    instance = error.instance if isinstance(error.instance, dict) else {}
    for name in required:
        if name not in instance and error.message.startswith(repr(name)):
            return str(name)
    return None


def to_violation(error: SchemaViolation, prefix: str = "") -> Violation:
    parts = list(error.absolute_path)
    if error.validator == "required":
        missing = _missing_property(error)
        if missing is not None:
            parts.append(missing)
    return Violation(
        pointer=prefix + to_pointer(parts),
        message=error.message,
        keyword=str(error.validator) if error.validator is not None else None,
        schema_path=to_pointer(error.absolute_schema_path),
    )


class SchemaValidator:
    """Evaluates structural trees against json schemas, collecting every violation.

    Schemas without a ``$schema`` declaration are read as Draft 4. Relative
    ``$ref`` targets (``"part-schema.json#/definitions/x"``) are looked up
    through the same locator that found the root schema.
    """

    def __init__(self, locator: SchemaLocator | None = None, *, encoding: str = "utf-8"):
        self.locator = locator
        self.encoding = encoding

    def load(self, resource: SchemaResource) -> Any:
        try:
            return json.loads(resource.read_text(encoding=self.encoding))
        except (OSError, ValueError) as e:
            raise SchemaLoadError(resource, e) from e

    def _retrieve(self, uri: str) -> Resource:
        if self.locator is None or ":" in uri:
            raise LookupError(f"Refusing to retrieve non-local schema reference: {uri}")
        resource = self.locator.locate(uri)
        return Resource.from_contents(self.load(resource), default_specification=DRAFT4)

    def build(self, schema: Any, resource: SchemaResource):
        cls = validator_for(schema, default=Draft4Validator)
        try:
            cls.check_schema(schema)
        except SchemaError as e:
            raise SchemaLoadError(resource, e) from e
        registry: Registry = Registry(retrieve=self._retrieve)
        return cls(schema, registry=registry, format_checker=cls.FORMAT_CHECKER)

    def _collect(self, validator, instance: Any, prefix: str, resource: SchemaResource) -> list[Violation]:
        try:
            return [to_violation(error, prefix) for error in validator.iter_errors(instance)]
        except Unresolvable as e:
            raise SchemaLoadError(resource, e) from e

    def validate(self, tree: Any, resource: SchemaResource) -> ValidationReport:
        validator = self.build(self.load(resource), resource)
        violations = self._collect(validator, tree, "", resource)
        log.debug("Validated document against %s: %d violation(s)", resource.name, len(violations))
        return ValidationReport(violations=violations)

    def validate_each(self, items: Iterable[Any], resource: SchemaResource) -> ValidationReport:
        validator = self.build(self.load(resource), resource)
        violations: list[Violation] = []
        for index, item in enumerate(items):
            violations.extend(self._collect(validator, item, f"/{index}", resource))
        log.debug("Validated list elements against %s: %d violation(s)", resource.name, len(violations))
        return ValidationReport(violations=violations)
