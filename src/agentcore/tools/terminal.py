"""TerminalRegistry: owns the shell processes started by command tools."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path

from agentcore.core.cancellation import CancellationToken

logger = logging.getLogger(__name__)

_MAX_OUTPUT_CHARS = 30_000


@dataclass(frozen=True, slots=True)
class TerminalResult:
    output: str
    exit_code: int | None
    timed_out: bool = False
    cancelled: bool = False


def _truncate(output: str) -> str:
    if len(output) > _MAX_OUTPUT_CHARS:
        truncated = len(output) - _MAX_OUTPUT_CHARS
        return output[:_MAX_OUTPUT_CHARS] + f"\n[...{truncated} characters truncated]"
    return output


async def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
        await proc.wait()
    except ProcessLookupError:
        pass


class TerminalRegistry:
    """Runs shell commands and remembers which task started them.

    When a task aborts the loop calls :meth:`release_all`; processes still
    running for that task are killed.
    """

    def __init__(self) -> None:
        self._running: dict[str, set[asyncio.subprocess.Process]] = defaultdict(set)

    def running(self, task_id: str) -> int:
        return len(self._running.get(task_id, ()))

    async def run(
        self,
        task_id: str,
        command: str,
        cwd: Path,
        *,
        timeout_sec: float,
        cancel: CancellationToken | None = None,
    ) -> TerminalResult:
        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=str(cwd),
        )
        self._running[task_id].add(proc)
        logger.debug("Started pid %s for task %s: %s", proc.pid, task_id, command)

        communicate = asyncio.ensure_future(proc.communicate())
        waiters: set[asyncio.Future] = {communicate}
        watcher: asyncio.Future | None = None
        if cancel is not None:
            watcher = asyncio.ensure_future(cancel.wait())
            waiters.add(watcher)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout_sec, return_when=asyncio.FIRST_COMPLETED,
            )
            if communicate not in done:
                communicate.cancel()
                await _kill(proc)
                if watcher is not None and watcher in done:
                    return TerminalResult(output="", exit_code=None, cancelled=True)
                return TerminalResult(output="", exit_code=None, timed_out=True)

            stdout_bytes, _ = communicate.result()
            output = stdout_bytes.decode("utf-8", errors="replace") if stdout_bytes else ""
            return TerminalResult(output=_truncate(output), exit_code=proc.returncode)
        finally:
            if watcher is not None:
                watcher.cancel()
            if proc.returncode is None:
                communicate.cancel()
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
            self._running[task_id].discard(proc)
            if not self._running[task_id]:
                self._running.pop(task_id, None)

    async def release_all(self, task_id: str) -> int:
        """Kill every process still running for *task_id*. Returns how many."""
        procs = self._running.pop(task_id, set())
        for proc in procs:
            if proc.returncode is None:
                logger.info("Killing pid %s for aborted task %s", proc.pid, task_id)
                await _kill(proc)
        return len(procs)
