"""Linux systemd service controller."""

import re
from pathlib import Path
from typing import Callable

from loguru import logger

from servicekit.config.schema import ServiceConfig
from servicekit.service.base import (
    AlreadyInstalledError,
    CommandError,
    FilesystemError,
    Interface,
    NotInstalledError,
    Service,
    ServiceFailedError,
    ServiceStatus,
)
from servicekit.service.logger import ConsoleLogger, ServiceLogger, SystemLogger, is_interactive
from servicekit.service.resolve import PLATFORM_SYSTEMD, resolve_executable
from servicekit.service.runner import CommandResult, CommandRunner
from servicekit.service.signals import once, wait_for_signal
from servicekit.service.templates import build_unit_fields, get_template

SYSTEM_UNIT_DIR = Path("/etc/systemd/system")
USER_UNIT_SUBDIR = Path(".config") / "systemd" / "user"

# First release supporting StandardOutput=file:
MIN_OUTPUT_FILE_VERSION = 236

_VERSION_RE = re.compile(r"systemd ([0-9]+)")


def unit_path(name: str, user_service: bool, home: Path) -> Path:
    """Where the unit file for *name* lives. Pure; no filesystem access."""
    unit = f"{name}.service"
    if not user_service:
        return SYSTEM_UNIT_DIR / unit
    return home / USER_UNIT_SUBDIR / unit


def parse_systemd_version(output: str) -> int:
    """Extract N from ``systemd N`` in ``systemctl --version`` output, or -1."""
    match = _VERSION_RE.search(output)
    if not match:
        return -1
    return int(match.group(1))


def _listed(unit: str, listing: str) -> bool:
    """True if *unit* is the first column of some ``list-unit-files`` row."""
    return any(line.split()[:1] == [unit] for line in listing.splitlines())


def interpret_status(active_output: str, list_units: Callable[[], str], name: str) -> ServiceStatus:
    """Map ``systemctl is-active`` output to a ServiceStatus.

    ``inactive`` is ambiguous (stopped or not installed), so *list_units* is
    called to look the unit up in ``list-unit-files``. Raising means the
    status is unknown.
    """
    unit = f"{name}.service"
    if active_output.startswith("activating") or active_output.startswith("active"):
        return ServiceStatus.RUNNING
    if active_output.startswith("inactive"):
        if _listed(unit, list_units()):
            return ServiceStatus.STOPPED
        raise NotInstalledError(unit)
    if active_output.startswith("failed"):
        raise ServiceFailedError(unit)
    raise NotInstalledError(unit)


class SystemdService(Service):
    """Installs and controls a service as a systemd unit."""

    def __init__(
        self,
        interface: Interface,
        config: ServiceConfig,
        platform: str = PLATFORM_SYSTEMD,
        runner: CommandRunner | None = None,
    ):
        super().__init__(interface, platform, config)
        self._runner = runner or CommandRunner()
        self._template = get_template(config.options.systemd_script)
        self._system_logger: SystemLogger | None = None

    @property
    def unit_name(self) -> str:
        return f"{self._config.name}.service"

    @property
    def is_user_service(self) -> bool:
        return self._config.options.user_service

    def config_path(self) -> Path:
        """Resolve the unit file path, creating the user unit dir if needed."""
        path = unit_path(self._config.name, self.is_user_service, Path.home())
        if self.is_user_service:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FilesystemError(path.parent, e) from e
        return path

    def is_installed(self) -> bool:
        return unit_path(self._config.name, self.is_user_service, Path.home()).exists()

    # ------------------------------------------------------------------
    # Capability probing
    # ------------------------------------------------------------------

    def systemd_version(self) -> int:
        try:
            result = self._query("--version")
        except CommandError as e:
            logger.debug(f"systemd version probe failed: {e}")
            return -1
        if result.exit_code != 0:
            return -1
        return parse_systemd_version(result.output)

    def has_output_file_support(self) -> bool:
        """Whether StandardOutput=file: can be used.

        Assumes support when the version cannot be determined.
        """
        version = self.systemd_version()
        if version == -1:
            return True
        return version >= MIN_OUTPUT_FILE_VERSION

    # ------------------------------------------------------------------
    # Install / Uninstall
    # ------------------------------------------------------------------

    def render(self) -> str:
        """Render the unit file for this service."""
        fields = build_unit_fields(
            self._config,
            resolve_executable(self._config.executable),
            self.has_output_file_support(),
        )
        return self._template.render(fields)

    def install(self) -> None:
        path = self.config_path()
        if path.exists():
            raise AlreadyInstalledError(path)

        # A unit file written before a failing enable is left in place.
        try:
            with open(path, "x", encoding="utf-8") as f:
                f.write(self.render())
        except FileExistsError as e:
            raise AlreadyInstalledError(path) from e
        except OSError as e:
            raise FilesystemError(path, e) from e
        logger.info(f"Wrote unit file {path}")

        self._action("enable")
        self._ctl("daemon-reload")
        logger.info(f"Installed {self.unit_name}")

    def uninstall(self) -> None:
        self._action("disable")
        path = self.config_path()
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise NotInstalledError(self.unit_name) from e
        except OSError as e:
            raise FilesystemError(path, e) from e
        self._ctl("daemon-reload")
        logger.info(f"Uninstalled {self.unit_name}")

    # ------------------------------------------------------------------
    # Start / Stop
    # ------------------------------------------------------------------

    def start(self) -> None:
        self._action("start")

    def stop(self) -> None:
        self._action("stop")

    def restart(self) -> None:
        self._action("restart")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> ServiceStatus:
        result = self._query("is-active", self.unit_name)
        return interpret_status(
            result.output,
            lambda: self._query("list-unit-files", "-t", "service", self.unit_name).output,
            self._config.name,
        )

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> None:
        self._interface.start(self)
        wait = once(self._config.options.run_wait or wait_for_signal)
        wait()
        self._interface.stop(self)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def logger(self, errs: Callable[[Exception], None] | None = None) -> ServiceLogger:
        if is_interactive():
            return ConsoleLogger(self._config.name)
        return self.system_logger(errs)

    def system_logger(self, errs: Callable[[Exception], None] | None = None) -> ServiceLogger:
        """Return this service's syslog logger, opening it on first use.

        The open logger is shared by later calls until it is closed, so *errs*
        only applies when a new one is opened.
        """
        if self._system_logger is None or self._system_logger.closed:
            self._system_logger = SystemLogger(self._config.name, errs)
        return self._system_logger

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _query(self, *args: str) -> CommandResult:
        """``systemctl <args> [--user]``, returning output even on non-zero exit."""
        if self.is_user_service:
            args = (*args, "--user")
        return self._runner.run_with_output("systemctl", *args)

    def _ctl(self, action: str, *args: str) -> None:
        """``systemctl <action> [--user] <args>``, raising on failure."""
        if self.is_user_service:
            self._runner.run("systemctl", action, "--user", *args)
        else:
            self._runner.run("systemctl", action, *args)

    def _action(self, action: str) -> None:
        logger.debug(f"systemctl {action} {self.unit_name}")
        self._ctl(action, self.unit_name)
