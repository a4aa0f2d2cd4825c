"""Thin async wrapper around the ``gh`` CLI."""

import asyncio
import logging
import shutil
from dataclasses import dataclass
from typing import List, Protocol

logger = logging.getLogger("hooksync")

DEFAULT_TIMEOUT = 30.0


@dataclass
class CommandResult:
    """Trimmed output of one gh invocation (stderr on failure)."""
    text: str
    success: bool


class RemoteClient(Protocol):
    """Executes remote GitHub operations expressed as gh argument lists."""

    async def call(self, args: List[str]) -> CommandResult: ...

    async def check_auth(self) -> bool: ...


class GhClient:
    """
    Runs ``gh`` with an argument list, never through a shell, so secrets and
    URLs are passed verbatim.
    """

    def __init__(self, binary: str = "gh", timeout: float = DEFAULT_TIMEOUT):
        self.binary = binary
        self.timeout = timeout

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    async def call(self, args: List[str]) -> CommandResult:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return CommandResult(text=str(e), success=False)

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"gh {args[0] if args else ''} timed out after {self.timeout}s")
            return CommandResult(text=f"Timed out after {self.timeout}s", success=False)
        finally:
            # Covers timeout and cancellation; the child never outlives the call.
            if proc.returncode is None:
                _kill(proc)
                await proc.wait()

        out = stdout.decode("utf-8", errors="replace").strip()
        err = stderr.decode("utf-8", errors="replace").strip()
        if proc.returncode == 0:
            return CommandResult(text=out, success=True)
        return CommandResult(text=err or out, success=False)

    async def check_auth(self) -> bool:
        result = await self.call(["auth", "status"])
        return result.success


def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        # Exited between the timeout and the kill
        pass
