"""
JSON-lines command bridge to an external automation process.

The bridge process reads one JSON command per line on stdin and answers each
with one JSON object per line on stdout.
"""

import asyncio
import contextlib
import json
from typing import Any, Dict, List, Optional

from liteqa.core.interfaces import CommandBridge
from liteqa.error_handling.exceptions import (
    LiteQAError,
    StepExecutionError,
    TimeoutError,
)
from liteqa.monitoring.logger import get_logger


STOP_GRACE_SECONDS = 5.0


class SubprocessBridge(CommandBridge):
    """CommandBridge speaking JSON lines over a child process's stdio."""

    def __init__(self, command: List[str], name: str = "bridge") -> None:
        """
        Initialize the bridge.

        Args:
            command: Program and arguments of the bridge process
            name: Short name used in log messages
        """
        if not command:
            raise ValueError("Bridge command cannot be empty")

        self.command = list(command)
        self.name = name
        self.logger = get_logger(f"bridges.{name}")
        self._process: Optional[asyncio.subprocess.Process] = None
        self._stderr_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        """Spawn the bridge process."""
        if self.running:
            return

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise LiteQAError(
                f"Failed to start {self.name} process: {e}",
                details={"command": self.command},
                cause=e,
            ) from e

        self._stderr_task = asyncio.create_task(self._drain_stderr())
        self.logger.debug(
            f"{self.name} process started",
            extra={"command": self.command, "pid": self._process.pid},
        )

    async def send(self, command: Dict[str, Any], timeout_ms: int) -> Dict[str, Any]:
        """
        Send one command and wait for its JSON reply.

        Raises:
            StepExecutionError: If the bridge is not running or replied with garbage
            TimeoutError: If no reply arrived within timeout_ms
        """
        if not self.running:
            raise StepExecutionError(
                f"{self.name} process not initialized", action=command.get("action")
            )

        line = json.dumps(command) + "\n"
        self._process.stdin.write(line.encode("utf-8"))
        await self._process.stdin.drain()

        try:
            raw = await asyncio.wait_for(
                self._process.stdout.readline(), timeout=timeout_ms / 1000
            )
        except asyncio.TimeoutError as e:
            # A late reply would be read as the answer to the next command
            self.logger.warning(
                f"{self.name} did not answer {command.get('action')} in time, closing it"
            )
            await self.stop(kill=True)
            raise TimeoutError(
                f"{self.name} command timeout after {timeout_ms}ms",
                operation=str(command.get("action")),
                timeout_ms=timeout_ms,
            ) from e

        if not raw:
            raise StepExecutionError(
                f"{self.name} process exited unexpectedly", action=command.get("action")
            )

        text = raw.decode("utf-8").strip()
        try:
            reply = json.loads(text)
        except json.JSONDecodeError as e:
            raise StepExecutionError(
                f"Invalid response: {text}", action=command.get("action"), cause=e
            ) from e

        if not isinstance(reply, dict):
            raise StepExecutionError(
                f"Invalid response: {text}", action=command.get("action")
            )
        return reply

    async def stop(self, kill: bool = False) -> None:
        """
        Close stdin and wait for the process, killing it if it lingers.

        Args:
            kill: Kill the process right away instead of waiting for it to exit
        """
        process = self._process
        self._process = None
        if process is None:
            return

        if process.returncode is None:
            if process.stdin and not process.stdin.is_closing():
                process.stdin.close()
            if kill:
                process.kill()
                await process.wait()
            else:
                try:
                    await asyncio.wait_for(process.wait(), timeout=STOP_GRACE_SECONDS)
                except asyncio.TimeoutError:
                    process.kill()
                    await process.wait()

        stderr_task = self._stderr_task
        self._stderr_task = None
        if stderr_task:
            stderr_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await stderr_task

        self.logger.debug(f"{self.name} process closed")

    async def _drain_stderr(self) -> None:
        process = self._process
        if process is None or process.stderr is None:
            return
        while True:
            raw = await process.stderr.readline()
            if not raw:
                break
            self.logger.debug(f"{self.name} stderr: {raw.decode('utf-8', 'replace').rstrip()}")
