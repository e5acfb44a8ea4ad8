"""Interface that hosts the configured executable as a child process."""

import os
import subprocess

from loguru import logger

from servicekit.service.base import CommandError, Interface, Service
from servicekit.service.resolve import resolve_executable


class ProgramInterface(Interface):
    """Launches ``config.executable`` with its arguments on start, terminates it on stop."""

    def __init__(self, stop_timeout: float = 10.0):
        self.stop_timeout = stop_timeout
        self.process: subprocess.Popen | None = None

    def start(self, service: Service) -> None:
        config = service.config
        cmd = [resolve_executable(config.executable), *config.arguments]
        env = {**os.environ, **config.env_vars}
        try:
            self.process = subprocess.Popen(
                cmd,
                cwd=config.working_directory or None,
                env=env,
            )
        except OSError as e:
            raise CommandError(cmd, -1, str(e)) from e
        logger.info(f"Started {service} (PID {self.process.pid})")

    def stop(self, service: Service) -> None:
        if self.process is None:
            return
        proc, self.process = self.process, None
        if proc.poll() is not None:
            logger.info(f"{service} already exited with {proc.returncode}")
            return

        proc.terminate()
        try:
            proc.wait(timeout=self.stop_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"{service} did not exit within {self.stop_timeout}s, killing")
            proc.kill()
            proc.wait()
        logger.info(f"Stopped {service}")
