from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from pydantic import PydanticUserError, TypeAdapter, ValidationError

from validated_json.errors import DocumentReadError, MalformedDocumentError, MaterializationError


Source = Union[str, os.PathLike, bytes, bytearray, Any]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


@dataclass(frozen=True)
class Document:
    """A source read once: the buffered text and the structural tree parsed from it.

    The tree is only handed to the schema validator; typed values are built
    from the text, so the two never share mutable state.
    """

    source_id: str
    text: str
    tree: Any

    def materialize(self, target_type: Any) -> Any:
        try:
            return TypeAdapter(target_type).validate_json(self.text)
        except (ValidationError, PydanticUserError) as e:
            # PydanticUserError: target_type is not something pydantic can build.
            raise MaterializationError(self.source_id, e) from e


class DocumentReader:
    def __init__(self, encoding: str = "utf-8-sig"):
        self.encoding = encoding

    def source_identifier(self, source: Source, source_id: str | None = None) -> str:
        if source_id:
            return source_id
        if isinstance(source, (str, os.PathLike)):
            return Path(source).name
        name = getattr(source, "name", None)
        if isinstance(name, str) and name:
            return Path(name).name
        return "<stream>"

    def _buffer(self, source: Source, source_id: str) -> str:
        if isinstance(source, (str, os.PathLike)):
            try:
                raw: Any = Path(source).read_bytes()
            except OSError as e:
                raise DocumentReadError(source_id, e) from e
        elif isinstance(source, (bytes, bytearray)):
            raw = bytes(source)
        elif hasattr(source, "read"):
            try:
                raw = source.read()
            except UnicodeDecodeError as e:
                # text-mode streams decode while reading
                raise MalformedDocumentError(source_id, e) from e
            except OSError as e:
                raise DocumentReadError(source_id, e) from e
        else:
            raise TypeError(f"Unsupported document source: {type(source)!r}")

        if isinstance(raw, str):
            return raw
        try:
            return raw.decode(self.encoding)
        except UnicodeDecodeError as e:
            raise MalformedDocumentError(source_id, e) from e

    def load(self, source: Source, *, source_id: str | None = None) -> Document:
        ident = self.source_identifier(source, source_id)
        text = self._buffer(source, ident)
        try:
            tree = json.loads(text, parse_constant=_reject_constant)
        except (ValueError, RecursionError) as e:
            # JSONDecodeError is a ValueError; so is the constant rejection above.
            # RecursionError: nesting deeper than the interpreter stack allows.
            raise MalformedDocumentError(ident, e) from e
        return Document(source_id=ident, text=text, tree=tree)

    def read(self, source: Source, target_type: Any, *, source_id: str | None = None) -> tuple[Any, Any]:
        document = self.load(source, source_id=source_id)
        return document.materialize(target_type), document.tree
