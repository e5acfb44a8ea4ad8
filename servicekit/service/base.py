"""Abstract service controller interface and shared types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from servicekit.config.schema import ServiceConfig
    from servicekit.service.logger import ServiceLogger


class ServiceStatus(Enum):
    UNKNOWN = "unknown"
    RUNNING = "running"
    STOPPED = "stopped"


class ServiceError(Exception):
    """Raised when a service operation fails."""


class AlreadyInstalledError(ServiceError):
    """Raised when the unit file already exists at install time."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Init already exists: {path}")


class NotInstalledError(ServiceError):
    """Raised when the unit is absent or not recognised by the init system."""

    def __init__(self, unit: str):
        self.unit = unit
        super().__init__(f"Service {unit} is not installed")


class ServiceFailedError(ServiceError):
    """Raised when the init system reports the unit in failed state."""

    def __init__(self, unit: str):
        self.unit = unit
        super().__init__(f"service in failed state: {unit}")


class CommandError(ServiceError):
    """An external command exited non-zero or could not be executed.

    ``exit_code`` is -1 when the command never ran.
    """

    def __init__(self, command: list[str], exit_code: int, output: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.output = output
        msg = f"{' '.join(command)} failed with exit code {exit_code}"
        if output.strip():
            msg += f": {output.strip()}"
        super().__init__(msg)


class TemplateError(ServiceError):
    """Raised for malformed unit templates or render failures."""


class FilesystemError(ServiceError):
    """Wraps an OSError raised while touching a service path."""

    def __init__(self, path: Path | str, cause: OSError | str):
        self.path = Path(path)
        reason = cause.strerror if isinstance(cause, OSError) and cause.strerror else cause
        super().__init__(f"{path}: {reason}")


class ConfigError(ServiceError):
    """Raised when a config file cannot be loaded as a ServiceConfig."""

    def __init__(self, path: Path | str, detail: str):
        self.path = Path(path)
        super().__init__(f"Invalid service config {path}: {detail}")


class Interface(ABC):
    """Start/stop hooks supplied by the program being hosted by ``Service.run``."""

    @abstractmethod
    def start(self, service: Service) -> None:
        """Begin the program's work. Must not block."""

    @abstractmethod
    def stop(self, service: Service) -> None:
        """Stop the program's work. Must not block for long."""


class Service(ABC):
    """Abstract base for platform-specific service controllers."""

    def __init__(self, interface: Interface, platform: str, config: ServiceConfig):
        self._interface = interface
        self._platform = platform
        self._config = config

    @property
    def config(self) -> ServiceConfig:
        return self._config

    @property
    def platform(self) -> str:
        return self._platform

    def __str__(self) -> str:
        return self._config.display_name or self._config.name

    @abstractmethod
    def install(self) -> None:
        """Write the service definition and register it with the init system."""

    @abstractmethod
    def uninstall(self) -> None:
        """Unregister the service and remove its definition."""

    @abstractmethod
    def start(self) -> None:
        """Start the installed service."""

    @abstractmethod
    def stop(self) -> None:
        """Stop the running service."""

    @abstractmethod
    def restart(self) -> None:
        """Stop and start the service."""

    @abstractmethod
    def status(self) -> ServiceStatus:
        """Query the init system for the current status."""

    @abstractmethod
    def run(self) -> None:
        """Host the program: start hook, wait for shutdown, stop hook."""

    @abstractmethod
    def is_installed(self) -> bool:
        """Check whether the service definition file exists."""

    @abstractmethod
    def logger(self, errs: Callable[[Exception], None] | None = None) -> ServiceLogger:
        """Console logger when interactive, system logger otherwise."""

    @abstractmethod
    def system_logger(self, errs: Callable[[Exception], None] | None = None) -> ServiceLogger:
        """Logger that writes to the system log."""
