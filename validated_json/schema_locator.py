from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path, PurePosixPath
from typing import Iterator, Sequence

from validated_json.config import Settings
from validated_json.errors import AmbiguousSchemaError, SchemaNotFoundError
from validated_json.models import schema_name_for


log = logging.getLogger("validated_json.schema_locator")


@dataclass(frozen=True)
class SchemaResource:
    name: str
    location: Path | Traversable
    origin: str  # "dir:<path>" | "package:<name>"

    def read_text(self, encoding: str = "utf-8") -> str:
        return self.location.read_text(encoding=encoding)

    def __str__(self) -> str:
        return f"{self.name} ({self.location})"


def _name_parts(resource_name: str) -> list[str]:
    if not resource_name or not resource_name.strip():
        raise SchemaNotFoundError(resource_name, "empty schema name")
    pure = PurePosixPath(resource_name.replace("\\", "/"))
    if pure.is_absolute() or ".." in pure.parts:
        raise SchemaNotFoundError(resource_name, "schema name must stay inside the search path")
    return list(pure.parts)


class SchemaLocator:
    """Resolves schema file names against an ordered search path.

    The search path is a list of directories followed by a list of importable
    packages whose bundled data files are searched (the classpath analogue).
    Nothing is cached: every call walks the path again, so schemas added or
    removed between calls are seen immediately.
    """

    def __init__(self, search_path: Sequence[str | Path] = (), packages: Sequence[str] = ()):
        self.search_path = [Path(p) for p in search_path]
        self.packages = list(packages)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SchemaLocator":
        return cls(settings.schema_path, settings.schema_packages)

    def _package_roots(self) -> Iterator[tuple[str, Traversable]]:
        for package in self.packages:
            try:
                yield package, resources.files(package)
            except ModuleNotFoundError:
                log.warning("Schema package is not importable: %s", package)

    def candidates(self, resource_name: str) -> list[SchemaResource]:
        parts = _name_parts(resource_name)
        found: list[SchemaResource] = []
        seen: set[str] = set()

        for directory in self.search_path:
            candidate = directory.joinpath(*parts)
            if not candidate.is_file():
                continue
            key = str(candidate.resolve())
            if key in seen:
                continue
            seen.add(key)
            found.append(SchemaResource(resource_name, candidate, f"dir:{directory}"))

        for package, root in self._package_roots():
            node: Traversable = root
            for part in parts:
                node = node.joinpath(part)
            if not node.is_file():
                continue
            key = str(Path(str(node)).resolve()) if isinstance(node, Path) else str(node)
            if key in seen:
                continue
            seen.add(key)
            found.append(SchemaResource(resource_name, node, f"package:{package}"))

        return found

    def locate(self, shape_or_name: object) -> SchemaResource:
        resource_name = shape_or_name if isinstance(shape_or_name, str) else schema_name_for(shape_or_name)
        found = self.candidates(resource_name)
        if not found:
            raise SchemaNotFoundError(resource_name)
        if len(found) > 1:
            raise AmbiguousSchemaError(resource_name, [str(r.location) for r in found])
        log.debug("Resolved schema %s from %s", resource_name, found[0].origin)
        return found[0]
