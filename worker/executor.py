# ============================================================================
# WORKER EXECUTOR
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core - External command execution
# PURPOSE: Run resolved command lines with timeout and guaranteed cleanup
# CREATED: 18 OCT 2026
# ============================================================================
"""
Worker Executor

Runs one fully resolved command line through the shell and waits for it.

Guarantees:
- The child runs in its own process group
- On every exit path (success, timeout, cancellation of the run, error)
  a still-running child group is sent SIGTERM, then SIGKILL after a grace
  period, and reaped
- Output is captured; only the tail of stderr is kept for failure messages
"""

import asyncio
import logging
import os
import signal
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, Optional

logger = logging.getLogger(__name__)


# ============================================================================
# RESULT
# ============================================================================

@dataclass
class CommandResult:
    """Outcome of one external command."""
    command: str
    exit_code: Optional[int]
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    def stderr_tail(self, chars: int = 1000) -> str:
        text = self.stderr.strip()
        return text[-chars:] if len(text) > chars else text


# ============================================================================
# EXECUTOR
# ============================================================================

class CommandExecutor:
    """
    Executes shell command lines as child processes.

    One instance is shared by all worker slots of a run.
    """

    def __init__(
        self,
        shell: str = "/bin/sh",
        kill_grace_seconds: float = 5.0,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize executor.

        Args:
            shell: Shell binary; commands run as `shell -c command`
            kill_grace_seconds: Delay between SIGTERM and SIGKILL
            cwd: Working directory for children (default: inherited)
            env: Environment for children (default: inherited)
        """
        self.shell = shell
        self.kill_grace_seconds = kill_grace_seconds
        self.cwd = cwd
        self.env = env

    @asynccontextmanager
    async def spawn(self, command: str) -> AsyncIterator[asyncio.subprocess.Process]:
        """
        Start a child for command and stop it on exit if still running.

        Example:
            async with executor.spawn("sleep 10") as proc:
                await proc.wait()
        """
        proc = await asyncio.create_subprocess_exec(
            self.shell, "-c", command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.cwd,
            env=self.env,
            start_new_session=True,
        )
        try:
            yield proc
        finally:
            if proc.returncode is None:
                await self._terminate(proc)

    async def run(self, command: str, timeout: Optional[float] = None) -> CommandResult:
        """
        Run command to completion.

        Args:
            command: Fully resolved command line
            timeout: Seconds before the child is stopped (None = no limit)

        Returns:
            CommandResult; a timeout is reported, not raised
        """
        start = time.monotonic()
        async with self.spawn(command) as proc:
            logger.debug(f"Started pid {proc.pid}: {command}")
            try:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Command timed out after {timeout}s (pid {proc.pid})")
                return CommandResult(
                    command=command,
                    exit_code=None,
                    duration_seconds=time.monotonic() - start,
                    timed_out=True,
                )

        return CommandResult(
            command=command,
            exit_code=proc.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
            duration_seconds=time.monotonic() - start,
        )

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        """SIGTERM the child's group, SIGKILL after the grace period, reap."""
        logger.info(f"Stopping pid {proc.pid}")
        self._signal_group(proc, signal.SIGTERM)
        try:
            await asyncio.wait_for(proc.wait(), timeout=self.kill_grace_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"pid {proc.pid} ignored SIGTERM, killing")
            self._signal_group(proc, signal.SIGKILL)
            await proc.wait()

    @staticmethod
    def _signal_group(proc: asyncio.subprocess.Process, sig: int) -> None:
        try:
            os.killpg(proc.pid, sig)
        except ProcessLookupError:
            pass


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "CommandResult",
    "CommandExecutor",
]
