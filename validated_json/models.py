from __future__ import annotations

from typing import ClassVar, Iterable, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


@runtime_checkable
class Shape(Protocol):
    """Anything that can name the schema file describing it."""

    @classmethod
    def schema_file_name(cls) -> str: ...


class ValidatedElement(BaseModel):
    """Base for pydantic models validated against a bundled json schema.

    Subclasses set SCHEMA_FILE_NAME (e.g. "widget-schema.json"); the name is
    resolved on the schema search path at read time, never at import time.
    Unknown fields are ignored, matching the lenient default of the typed parse.
    """

    SCHEMA_FILE_NAME: ClassVar[str] = ""

    @classmethod
    def schema_file_name(cls) -> str:
        return cls.SCHEMA_FILE_NAME


def schema_name_for(shape_type: object) -> str:
    getter = getattr(shape_type, "schema_file_name", None)
    if not callable(getter):
        raise TypeError(f"{shape_type!r} does not provide schema_file_name()")
    return str(getter() or "")


def escape_pointer_token(token: object) -> str:
    return str(token).replace("~", "~0").replace("/", "~1")


def to_pointer(parts: Iterable[object]) -> str:
    return "".join("/" + escape_pointer_token(p) for p in parts)


class Violation(BaseModel):
    model_config = ConfigDict(frozen=True)

    pointer: str = Field(default="", description="RFC 6901 pointer into the document; empty for the root")
    message: str
    keyword: str | None = Field(default=None, description="Schema keyword that failed (type/required/enum/...)")
    schema_path: str = ""

    @property
    def location(self) -> str:
        return self.pointer or "<root>"

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"


class ValidationReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    violations: list[Violation] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.violations
