from __future__ import annotations

import os
import tempfile
import unittest
from dataclasses import replace
from pathlib import Path
from unittest.mock import patch

from validated_json.config import Settings
from validated_json.health import run_doctor_checks


def _settings(schema_dirs: list[Path], packages: list[str] | None = None) -> Settings:
    with patch.dict(os.environ, {}, clear=True):
        base = Settings.load()
    return replace(base, schema_path=schema_dirs, schema_packages=packages or [])


def _by_title(checks, prefix: str):
    return [c for c in checks if c.title.startswith(prefix)]


class DoctorTests(unittest.TestCase):
    def test_reports_each_schema(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "good-schema.json").write_text('{"type": "object"}', encoding="utf-8")
            (root / "meta-schema.json").write_text('{"type": 12}', encoding="utf-8")
            (root / "nested").mkdir()
            (root / "nested" / "torn-schema.json").write_text("{", encoding="utf-8")
            (root / "notes.json").write_text("{", encoding="utf-8")

            checks = run_doctor_checks(_settings([root]))

        statuses = {c.title: c.status for c in checks if c.title.endswith(".json")}
        self.assertEqual(
            statuses,
            {
                "Schema good-schema.json": "OK",
                "Schema meta-schema.json": "FAIL",
                "Schema torn-schema.json": "FAIL",
            },
        )
        self.assertEqual(_by_title(checks, "Schema dir")[0].status, "OK")

    def test_missing_directory_and_package(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            missing = Path(td) / "absent"
            checks = run_doctor_checks(_settings([missing], ["no_such_schema_package_xyz"]))
        self.assertEqual(_by_title(checks, "Schema dir")[0].status, "WARN")
        self.assertEqual(_by_title(checks, "Schema package")[0].status, "FAIL")

    def test_empty_search_path_fails(self) -> None:
        checks = run_doctor_checks(_settings([]))
        self.assertEqual(_by_title(checks, "Schema search path")[0].status, "FAIL")

    def test_python_and_requirements_are_checked(self) -> None:
        checks = run_doctor_checks(_settings([]))
        titles = [c.title for c in checks]
        self.assertIn("Python", titles)
        self.assertIn("Requirements", titles)


if __name__ == "__main__":
    unittest.main()
