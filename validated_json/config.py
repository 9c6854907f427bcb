from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_optional_int(name: str) -> int | None:
    v = (os.getenv(name) or "").strip()
    if not v:
        return None
    try:
        return int(v)
    except ValueError:
        return None


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return v if v is not None and v != "" else default


def _env_csv(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    out: list[str] = []
    for item in raw.split(","):
        item = item.strip()
        if item and item not in out:
            out.append(item)
    return out


def _env_paths(name: str, default: str) -> list[Path]:
    raw = _env_str(name, default)
    out: list[Path] = []
    for part in raw.split(os.pathsep):
        part = part.strip()
        if not part:
            continue
        out.append(Path(part).expanduser().resolve())
    return out


@dataclass(frozen=True)
class Settings:
    schema_path: list[Path]
    schema_packages: list[str]
    document_encoding: str

    shell_timeout_sec: int
    shell_idle_timeout_sec: int | None
    shell_env_allowlist: list[str]
    shell_clear_env: bool
    max_shell_output_chars: int
    sensitive_env_vars: list[str]

    log_level: str
    log_json: bool

    @staticmethod
    def load() -> "Settings":
        # Order matters: the schema search path is walked front to back.
        schema_path = _env_paths("SCHEMA_PATH", "schemas")
        schema_packages = _env_csv("SCHEMA_PACKAGES", "")
        document_encoding = _env_str("DOCUMENT_ENCODING", "utf-8-sig")

        shell_timeout_sec = max(1, _env_int("SHELL_TIMEOUT_SEC", 300))
        shell_idle_timeout_sec = _env_optional_int("SHELL_IDLE_TIMEOUT_SEC")
        shell_env_allowlist = _env_csv("SHELL_ENV_ALLOWLIST", "PATH,HOME,TMPDIR")
        shell_clear_env = _env_bool("SHELL_CLEAR_ENV", False)
        max_shell_output_chars = max(0, _env_int("MAX_SHELL_OUTPUT_CHARS", 200000))
        sensitive_env_vars = _env_csv("SENSITIVE_ENV_VARS", "")

        log_level = _env_str("LOG_LEVEL", "INFO")
        log_json = _env_bool("LOG_JSON", False)

        return Settings(
            schema_path=schema_path,
            schema_packages=schema_packages,
            document_encoding=document_encoding,
            shell_timeout_sec=shell_timeout_sec,
            shell_idle_timeout_sec=shell_idle_timeout_sec,
            shell_env_allowlist=shell_env_allowlist,
            shell_clear_env=shell_clear_env,
            max_shell_output_chars=max_shell_output_chars,
            sensitive_env_vars=sensitive_env_vars,
            log_level=log_level,
            log_json=log_json,
        )
