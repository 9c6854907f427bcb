from __future__ import annotations

import argparse
import importlib
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import TypeAdapter

from validated_json.config import Settings
from validated_json.deserializer import ValidatingDeserializer
from validated_json.errors import JsonException, SchemaNotFoundError
from validated_json.health import run_doctor_checks
from validated_json.logging_utils import setup_logging
from validated_json.schema_locator import SchemaLocator


def _settings_with_dirs(settings: Settings, schema_dirs: list[str] | None) -> Settings:
    if not schema_dirs:
        return settings
    extra = [Path(d).expanduser().resolve() for d in schema_dirs]
    return replace(settings, schema_path=[*extra, *settings.schema_path])


def _import_shape(reference: str, app_dir: str = ".") -> Any:
    if ":" not in reference:
        raise ValueError(f"--model must look like 'package.module:ClassName', got '{reference}'")
    module_name, attr = reference.split(":", 1)
    app_path = str(Path(app_dir).resolve())
    if app_path not in sys.path:
        sys.path.insert(0, app_path)
    obj: Any = importlib.import_module(module_name)
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


def cmd_validate(args: argparse.Namespace) -> int:
    settings = _settings_with_dirs(Settings.load(), args.schema_dir)
    try:
        shape = _import_shape(args.model, args.app_dir)
    except (ValueError, ImportError, AttributeError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    deserializer = ValidatingDeserializer.from_settings(settings)
    try:
        if args.list:
            value: Any = deserializer.read_and_validate_list(args.path, shape)
            dumped = TypeAdapter(list[shape]).dump_python(value, mode="json")  # type: ignore[valid-type]
        else:
            value = deserializer.read_and_validate(args.path, shape)
            dumped = TypeAdapter(shape).dump_python(value, mode="json")
    except JsonException as e:
        print(f"ERROR: {e}: {e.cause}", file=sys.stderr)
        return 1

    print(json.dumps(dumped, ensure_ascii=False, indent=2))
    return 0


def cmd_locate(args: argparse.Namespace) -> int:
    settings = _settings_with_dirs(Settings.load(), args.schema_dir)
    locator = SchemaLocator.from_settings(settings)
    try:
        resource = locator.locate(args.name)
    except SchemaNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    print(json.dumps({"name": resource.name, "location": str(resource.location), "origin": resource.origin}))
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    settings = _settings_with_dirs(Settings.load(), args.schema_dir)
    checks = run_doctor_checks(settings)
    has_fail = False
    for check in checks:
        if check.status == "FAIL":
            has_fail = True
        print(f"[{check.status}] {check.title}: {check.detail}")
    return 1 if has_fail else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="validated-json")
    sub = parser.add_subparsers(dest="cmd", required=True)

    def _schema_dir_arg(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--schema-dir",
            action="append",
            default=None,
            help="Extra schema directory searched before SCHEMA_PATH (repeatable)",
        )

    p_validate = sub.add_parser("validate", help="Validate a json file and print the typed value")
    p_validate.add_argument("path")
    p_validate.add_argument("--model", required=True, help="Shape type as package.module:ClassName")
    p_validate.add_argument("--list", action="store_true", help="Document is a json array of the shape")
    p_validate.add_argument("--app-dir", default=".", help="Directory added to sys.path before importing --model")
    _schema_dir_arg(p_validate)
    p_validate.set_defaults(func=cmd_validate)

    p_locate = sub.add_parser("locate", help="Print where a schema name resolves on the search path")
    p_locate.add_argument("name")
    _schema_dir_arg(p_locate)
    p_locate.set_defaults(func=cmd_locate)

    p_doctor = sub.add_parser("doctor", help="Check the environment and every schema on the search path")
    _schema_dir_arg(p_doctor)
    p_doctor.set_defaults(func=cmd_doctor)

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    settings = Settings.load()
    setup_logging(settings.log_level, json_output=settings.log_json)

    args = build_parser().parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
