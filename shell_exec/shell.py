from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Mapping, Sequence

from validated_json.config import Settings
from shell_exec.executor import ShellExecutionException, ShellExecutionOutput, run_command
from shell_exec.log_sanitizer import redact


log = logging.getLogger("shell_exec.shell")


class ShellExecutor:
    """Synchronous front for run_command that turns every failure into ShellExecutionException."""

    def __init__(
        self,
        working_dir: str | Path = ".",
        *,
        timeout_sec: int = 300,
        idle_timeout_sec: int | None = None,
        env_allowlist: Sequence[str] = ("PATH", "HOME", "TMPDIR"),
        clear_env: bool = False,
        max_output_chars: int | None = None,
        sensitive_env_vars: Sequence[str] | None = None,
    ):
        self.working_dir = Path(working_dir)
        self.timeout_sec = timeout_sec
        self.idle_timeout_sec = idle_timeout_sec
        self.env_allowlist = list(env_allowlist)
        self.clear_env = clear_env
        self.max_output_chars = max_output_chars
        self.sensitive_env_vars = list(sensitive_env_vars) if sensitive_env_vars is not None else None

    @classmethod
    def from_settings(cls, settings: Settings, working_dir: str | Path = ".") -> "ShellExecutor":
        return cls(
            working_dir,
            timeout_sec=settings.shell_timeout_sec,
            idle_timeout_sec=settings.shell_idle_timeout_sec,
            env_allowlist=settings.shell_env_allowlist,
            clear_env=settings.shell_clear_env,
            max_output_chars=settings.max_shell_output_chars,
            sensitive_env_vars=settings.sensitive_env_vars,
        )

    def _redact(self, text: str) -> str:
        return redact(text, sensitive_env_vars=self.sensitive_env_vars)

    def describe(self, command: str, args: Sequence[str]) -> str:
        return self._redact(" ".join([command, *args]))

    async def execute_async(
        self, command: str, args: Sequence[str] = (), env: Mapping[str, str] | None = None
    ) -> ShellExecutionOutput:
        described = self.describe(command, args)
        if not self.working_dir.is_dir():
            raise ShellExecutionException(f"Working directory does not exist: {self.working_dir}")
        try:
            output = await run_command(
                [command, *args],
                cwd=self.working_dir,
                env=env,
                env_allowlist=self.env_allowlist,
                clear_env=self.clear_env,
                timeout_sec=self.timeout_sec,
                idle_timeout_sec=self.idle_timeout_sec,
                max_output_chars=self.max_output_chars,
            )
        except OSError as e:
            raise ShellExecutionException(f"Unable to execute '{described}': {e}") from e

        if output.timed_out:
            raise ShellExecutionException(f"'{described}' timed out after {self.timeout_sec}s")
        if output.killed_by_watchdog:
            raise ShellExecutionException(f"'{described}' produced no output for {self.idle_timeout_sec}s")
        if output.exit_code != 0:
            stderr = self._redact(output.stderr).strip()
            msg = f"'{described}' failed with exit code {output.exit_code}"
            if stderr:
                msg = f"{msg}: {stderr}"
            raise ShellExecutionException(msg)
        return output

    def execute(
        self, command: str, args: Sequence[str] = (), env: Mapping[str, str] | None = None
    ) -> ShellExecutionOutput:
        """Blocking form of execute_async; must not be called from a running event loop."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.execute_async(command, args, env))
        raise ShellExecutionException(
            f"Cannot run '{self.describe(command, args)}' synchronously inside an event loop; await execute_async instead"
        )

    def execute_and_log_output(
        self, command: str, args: Sequence[str] = (), env: Mapping[str, str] | None = None
    ) -> str:
        output = self.execute(command, args, env)
        described = self.describe(command, args)
        for line in output.stdout.splitlines():
            log.info("%s", self._redact(line), extra={"command": described})
        for line in output.stderr.splitlines():
            log.warning("%s", self._redact(line), extra={"command": described})
        return output.stdout
