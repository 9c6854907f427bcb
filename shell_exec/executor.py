from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence


log = logging.getLogger("shell_exec")

# Always inherited from the parent process, on top of the allowlist.
BASE_ENV_KEYS = ("PATH", "HOME", "TMPDIR")
CLEARED_BASE_ENV_KEYS = ("PATH",)
TERMINATE_GRACE_SEC = 2

_warned_missing: set[str] = set()


class ShellExecutionException(RuntimeError):
    """Raised for anything that kept a command from completing successfully."""


@dataclass(frozen=True)
class ShellExecutionOutput:
    stdout: str
    stderr: str
    exit_code: int = 0
    duration_ms: int = 0
    killed_by_watchdog: bool = False
    timed_out: bool = False
    stdout_truncated: bool = False
    stderr_truncated: bool = False


class _Capture:
    """Collects decoded lines from one pipe, up to an optional character cap."""

    def __init__(self, limit: int | None):
        self.limit = limit or None
        self.chunks: list[str] = []
        self.kept = 0
        self.truncated = False
        self.last_activity = time.monotonic()

    def feed(self, text: str) -> None:
        self.last_activity = time.monotonic()
        if self.limit is not None:
            room = max(self.limit - self.kept, 0)
            if len(text) > room:
                self.truncated = True
                text = text[:room]
        if text:
            self.chunks.append(text)
            self.kept += len(text)

    async def drain(self, stream: asyncio.StreamReader) -> None:
        async for line in stream:
            self.feed(line.decode(errors="replace"))

    def value(self) -> str:
        body = "".join(self.chunks)
        if self.truncated:
            body += f"\n[truncated: output exceeded {self.limit} chars]\n"
        return body


def _signal_group(proc: asyncio.subprocess.Process, sig: int) -> None:
    try:
        os.killpg(proc.pid, sig)
    except (ProcessLookupError, PermissionError, OSError):
        with contextlib.suppress(ProcessLookupError):
            proc.send_signal(sig)


async def stop_process(proc: asyncio.subprocess.Process, *, grace_sec: float = TERMINATE_GRACE_SEC) -> None:
    """SIGTERM the command's process group, then SIGKILL whatever survives the grace period."""
    if proc.returncode is not None:
        return
    _signal_group(proc, signal.SIGTERM)
    try:
        await asyncio.wait_for(proc.wait(), timeout=grace_sec)
    except asyncio.TimeoutError:
        _signal_group(proc, signal.SIGKILL)
        with contextlib.suppress(ProcessLookupError):
            await proc.wait()


def build_child_env(
    env: Mapping[str, str] | None,
    env_allowlist: Sequence[str] | None,
    *,
    clear_env: bool = False,
) -> dict[str, str]:
    allowed = {key for key in (env_allowlist or ()) if key}
    inherited = (CLEARED_BASE_ENV_KEYS if clear_env else BASE_ENV_KEYS) + tuple(sorted(allowed))

    child: dict[str, str] = {}
    for key in inherited:
        if key in os.environ:
            child[key] = os.environ[key]
        elif key in allowed and key not in _warned_missing:
            _warned_missing.add(key)
            log.warning("Allowlisted variable %s is not set in this process", key)

    for key, value in (env or {}).items():
        if key in allowed:
            child[key] = value
        else:
            log.warning("Dropping env override %s: not in the allowlist", key)
    return child


async def run_command(
    cmd: Sequence[str],
    *,
    cwd: str | Path,
    env: Mapping[str, str] | None,
    env_allowlist: Sequence[str] | None,
    clear_env: bool = False,
    timeout_sec: int,
    idle_timeout_sec: int | None = None,
    max_output_chars: int | None = None,
) -> ShellExecutionOutput:
    """Run ``cmd`` (an argv list, never a shell string) and capture both pipes.

    The whole run is bounded by ``timeout_sec``. With ``idle_timeout_sec`` set,
    a watchdog also stops the command once neither pipe has produced a line
    for that long. ``max_output_chars`` caps each pipe separately.
    """
    started = time.monotonic()
    child_env = build_child_env(env, env_allowlist, clear_env=clear_env)
    log.debug("Starting %s with env keys %s", cmd[0] if cmd else "", ",".join(sorted(child_env)))

    proc = await asyncio.create_subprocess_exec(
        *cmd,
        cwd=str(cwd),
        env=child_env,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        start_new_session=True,
    )
    out = _Capture(max_output_chars)
    err = _Capture(max_output_chars)
    readers = [
        asyncio.create_task(out.drain(proc.stdout)),  # type: ignore[arg-type]
        asyncio.create_task(err.drain(proc.stderr)),  # type: ignore[arg-type]
    ]

    idle_kill = False

    async def watchdog() -> None:
        nonlocal idle_kill
        while proc.returncode is None:
            await asyncio.sleep(1)
            quiet_for = time.monotonic() - max(out.last_activity, err.last_activity)
            if quiet_for > idle_timeout_sec:  # type: ignore[operator]
                idle_kill = True
                await stop_process(proc)
                return

    guard = asyncio.create_task(watchdog()) if idle_timeout_sec is not None else None

    timed_out = False
    try:
        await asyncio.wait_for(proc.wait(), timeout=timeout_sec)
    except asyncio.TimeoutError:
        timed_out = True
        await stop_process(proc)

    await asyncio.gather(*readers)
    if guard is not None:
        guard.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await guard

    return ShellExecutionOutput(
        stdout=out.value(),
        stderr=err.value(),
        exit_code=-1 if proc.returncode is None else int(proc.returncode),
        duration_ms=int((time.monotonic() - started) * 1000),
        killed_by_watchdog=idle_kill,
        timed_out=timed_out,
        stdout_truncated=out.truncated,
        stderr_truncated=err.truncated,
    )
