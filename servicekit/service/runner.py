"""Subprocess execution for init-system commands."""

import subprocess
from dataclasses import dataclass

from loguru import logger

from servicekit.service.base import CommandError


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    output: str  # stdout and stderr combined


class CommandRunner:
    """Runs external commands and captures their combined output."""

    def run_with_output(self, command: str, *args: str) -> CommandResult:
        """Run a command and return its exit code and output.

        Non-zero exits are returned. Raises CommandError only when the
        command could not be executed at all.
        """
        cmd = [command, *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            raise CommandError(cmd, -1, str(e)) from e

        if result.returncode != 0:
            logger.debug(f"{command} exited with {result.returncode}: {result.stdout.strip()}")
        return CommandResult(exit_code=result.returncode, output=result.stdout)

    def run(self, command: str, *args: str) -> None:
        """Run a command, raising CommandError unless it exits 0."""
        result = self.run_with_output(command, *args)
        if result.exit_code != 0:
            raise CommandError([command, *args], result.exit_code, result.output)
