"""Subprocess execution for git and git-lfs commands."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Type, Union

from loguru import logger

from .exceptions import LFSMigrationError

# Exit codes reported when the process could not run to completion
COMMAND_NOT_FOUND = 127
COMMAND_TIMED_OUT = 124


@dataclass
class CommandResult:
    """Result of a single external command."""

    cmd: List[str]
    returncode: int
    stdout: str = ''
    stderr: str = ''

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def lines(self) -> List[str]:
        """Non-empty stdout lines."""
        return [line for line in self.stdout.splitlines() if line.strip()]


class GitRunner:
    """Runs commands inside a repository, one process at a time."""

    def __init__(self, work_dir: Union[str, Path], timeout: Optional[int] = None):
        """Initialize runner.

        Args:
            work_dir: Directory every command runs in
            timeout: Optional per-command timeout in seconds
        """
        self.work_dir = Path(work_dir)
        self.timeout = timeout
        self.logger = logger.bind(component='GitRunner')

    async def run(self, cmd: List[str], input: Optional[str] = None) -> CommandResult:
        """Run a command and capture its exit status and output.

        Args:
            cmd: Command as list
            input: Optional text fed to stdin

        Returns:
            Command result
        """
        self.logger.debug(f'Running: {" ".join(cmd)}')
        result = await self._execute(list(cmd), input)

        if not result.success:
            self.logger.debug(
                f'Command exited with {result.returncode}: {" ".join(cmd)} - '
                f'{result.stderr.strip()}'
            )
        return result

    async def check(
        self,
        cmd: List[str],
        error: Type[LFSMigrationError] = LFSMigrationError,
        message: Optional[str] = None,
        hint: Optional[str] = None,
        input: Optional[str] = None,
    ) -> CommandResult:
        """Run a command and raise if it fails.

        Args:
            cmd: Command as list
            error: Exception class raised on failure
            message: Error message (defaults to the command line)
            hint: Suggested next step attached to the error
            input: Optional text fed to stdin

        Returns:
            Command result

        Raises:
            LFSMigrationError: If the command exits non-zero
        """
        result = await self.run(cmd, input=input)
        if result.success:
            return result

        detail = result.stderr.strip() or result.stdout.strip() or 'no output'
        raise error(
            f'{message or "Command failed: " + " ".join(cmd)} ({detail})',
            command=result.cmd,
            returncode=result.returncode,
            stderr=result.stderr,
            hint=hint,
        )

    async def _execute(self, cmd: List[str], input: Optional[str]) -> CommandResult:
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=(
                    asyncio.subprocess.PIPE
                    if input is not None
                    else asyncio.subprocess.DEVNULL
                ),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.work_dir),
            )
        except FileNotFoundError as e:
            return CommandResult(cmd=cmd, returncode=COMMAND_NOT_FOUND, stderr=str(e))

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(input.encode() if input is not None else None),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            self.logger.error(
                f'Command timed out after {self.timeout} seconds: {" ".join(cmd)}'
            )
            return CommandResult(
                cmd=cmd,
                returncode=COMMAND_TIMED_OUT,
                stderr=f'timed out after {self.timeout} seconds',
            )

        return CommandResult(
            cmd=cmd,
            returncode=process.returncode,
            stdout=stdout.decode(errors='replace') if stdout else '',
            stderr=stderr.decode(errors='replace') if stderr else '',
        )
