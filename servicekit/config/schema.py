"""Configuration schema using Pydantic."""

import re
from types import MappingProxyType
from typing import Callable, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

UNIT_NAME_RE = re.compile(r"^[A-Za-z0-9:_.@\-]+$")


class SystemdOptions(BaseModel):
    """systemd-specific tuning knobs with documented defaults."""
    model_config = ConfigDict(frozen=True)

    user_service: bool = False  # Install under ~/.config/systemd/user and pass --user
    systemd_script: str = ""  # Override unit template (str.format syntax)
    reload_signal: str = "SIGHUP"
    pid_file: str | None = None  # None -> /var/run/<name>.pid, "" -> no PIDFile
    limit_nofile: int = -1  # -1 leaves LimitNOFILE unset
    restart: str = "always"
    success_exit_status: str = "0"
    log_output: bool = False
    log_directory: str = "/var/log"
    restart_sec: str = "5s"
    kill_mode: str = "control-group"
    kill_signal: str = "SIGTERM"
    timeout_stop_sec: str = "30s"
    run_wait: Callable[[], None] | None = Field(default=None, exclude=True)


class ServiceConfig(BaseModel):
    """Platform-neutral description of the service to manage."""
    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str = ""
    description: str = ""
    executable: str = ""  # Empty means the current interpreter
    arguments: tuple[str, ...] = ()
    working_directory: str = ""
    chroot: str = ""
    user_name: str = ""
    dependencies: tuple[str, ...] = ()  # Raw unit directives, e.g. "After=network.target"
    env_vars: Mapping[str, str] = Field(default_factory=dict, validate_default=True)
    options: SystemdOptions = Field(default_factory=SystemdOptions)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not value:
            raise ValueError("service name must not be empty")
        if not UNIT_NAME_RE.match(value):
            raise ValueError(f"service name {value!r} is not a valid unit name")
        return value

    @field_validator("env_vars")
    @classmethod
    def _freeze_env(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer("env_vars")
    def _dump_env(self, value: Mapping[str, str]) -> dict[str, str]:
        return dict(value)

    @property
    def pid_file(self) -> str:
        """PID file path with the per-name default applied."""
        if self.options.pid_file is None:
            return f"/var/run/{self.name}.pid"
        return self.options.pid_file
