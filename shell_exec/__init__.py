from __future__ import annotations

from shell_exec.executor import ShellExecutionException, ShellExecutionOutput, run_command
from shell_exec.shell import ShellExecutor


__all__ = ["ShellExecutionException", "ShellExecutionOutput", "ShellExecutor", "run_command"]
