from __future__ import annotations

import importlib.metadata
import json
import os
import sys
from dataclasses import dataclass
from importlib import resources
from pathlib import Path

from jsonschema import Draft4Validator
from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for

from validated_json.config import Settings


REQUIRED_DISTRIBUTIONS = ("pydantic", "jsonschema", "referencing", "python-dotenv")
SCHEMA_GLOB = "*-schema.json"


@dataclass(frozen=True)
class CheckResult:
    status: str  # OK | WARN | FAIL
    title: str
    detail: str


def _is_readable_dir(path: Path) -> bool:
    return path.exists() and path.is_dir() and os.access(path, os.R_OK)


def check_schema_file(path: Path) -> CheckResult:
    try:
        schema = json.loads(path.read_text(encoding="utf-8"))
        validator_for(schema, default=Draft4Validator).check_schema(schema)
    except (OSError, ValueError) as e:
        return CheckResult("FAIL", f"Schema {path.name}", f"unreadable: {e}")
    except SchemaError as e:
        return CheckResult("FAIL", f"Schema {path.name}", f"not a valid schema: {e.message}")
    return CheckResult("OK", f"Schema {path.name}", str(path))


def run_doctor_checks(settings: Settings) -> list[CheckResult]:
    out: list[CheckResult] = []

    if sys.version_info >= (3, 11):
        out.append(CheckResult("OK", "Python", f"{sys.version.split()[0]}"))
    else:
        out.append(CheckResult("FAIL", "Python", f"{sys.version.split()[0]} (need >= 3.11)"))

    missing: list[str] = []
    for dist in REQUIRED_DISTRIBUTIONS:
        try:
            importlib.metadata.version(dist)
        except importlib.metadata.PackageNotFoundError:
            missing.append(dist)
    if missing:
        out.append(CheckResult("FAIL", "Requirements", "Missing packages: " + ", ".join(missing)))
    else:
        out.append(CheckResult("OK", "Requirements", f"Installed: {len(REQUIRED_DISTRIBUTIONS)}"))

    if not settings.schema_path and not settings.schema_packages:
        out.append(CheckResult("FAIL", "Schema search path", "SCHEMA_PATH and SCHEMA_PACKAGES are both empty"))

    schema_files: list[Path] = []
    for directory in settings.schema_path:
        if not _is_readable_dir(directory):
            out.append(CheckResult("WARN", "Schema dir", f"Not readable: {directory}"))
            continue
        found = sorted(directory.rglob(SCHEMA_GLOB))
        schema_files.extend(found)
        out.append(CheckResult("OK", "Schema dir", f"{directory} ({len(found)} schemas)"))

    for package in settings.schema_packages:
        try:
            root = resources.files(package)
        except ModuleNotFoundError:
            out.append(CheckResult("FAIL", "Schema package", f"Not importable: {package}"))
            continue
        out.append(CheckResult("OK", "Schema package", f"{package}"))
        if isinstance(root, Path):
            schema_files.extend(sorted(root.rglob(SCHEMA_GLOB)))

    for path in schema_files:
        out.append(check_schema_file(path))

    return out
