"""Service management: factory and re-exports."""

from servicekit.config.schema import ServiceConfig, SystemdOptions
from servicekit.service.base import (
    AlreadyInstalledError,
    CommandError,
    ConfigError,
    FilesystemError,
    Interface,
    NotInstalledError,
    Service,
    ServiceError,
    ServiceFailedError,
    ServiceStatus,
    TemplateError,
)
from servicekit.service.resolve import UnsupportedPlatformError, detect_platform

__all__ = [
    "AlreadyInstalledError",
    "CommandError",
    "ConfigError",
    "FilesystemError",
    "Interface",
    "NotInstalledError",
    "Service",
    "ServiceConfig",
    "ServiceError",
    "ServiceFailedError",
    "ServiceStatus",
    "SystemdOptions",
    "TemplateError",
    "UnsupportedPlatformError",
    "new_service",
]


def new_service(interface: Interface, config: ServiceConfig) -> Service:
    """Return the controller for this host's init system."""
    platform = detect_platform()
    from servicekit.service.systemd import SystemdService
    return SystemdService(interface, config, platform=platform)
