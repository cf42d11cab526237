"""External migration and seed commands, run as black-box subprocesses."""

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: Optional[int] = None

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


class Runnable(Protocol):
    def run(self) -> CommandResult: ...


class CommandRunner:
    """Run one command to completion and capture its output.

    Never raises for a failing command: timeouts and missing executables
    come back as an unsuccessful CommandResult.
    """

    def __init__(self, cmd: list[str] | str, timeout: int = 600, cwd: Optional[Path] = None):
        self.cmd = shlex.split(cmd) if isinstance(cmd, str) else list(cmd)
        self.timeout = timeout
        self.cwd = cwd

    def run(self) -> CommandResult:
        logger.info("Running: %s", shlex.join(self.cmd))
        try:
            result = subprocess.run(
                self.cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                cwd=str(self.cwd) if self.cwd else None,
            )
        except FileNotFoundError:
            return CommandResult(success=False, stderr=f"Command not found: {self.cmd[0]}")
        except subprocess.TimeoutExpired:
            return CommandResult(success=False, stderr=f"Timed out after {self.timeout}s")

        if result.returncode != 0:
            logger.warning("%s exited with code %d", self.cmd[0], result.returncode)
        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )


class MigrationRunner(CommandRunner):
    """Apply schema migrations (``alembic upgrade head`` by default)."""


class Seeder(CommandRunner):
    """Load initial data into a migrated database."""
