"""systemd unit templates and rendering."""

import re
from string import Formatter
from typing import Any, Iterable, Mapping

from servicekit.config.schema import ServiceConfig
from servicekit.service.base import TemplateError

SYSTEMD_UNIT = """\
[Unit]
Description={description}
ConditionFileIsExecutable={path}
{dependency_lines}
[Service]
StartLimitInterval=5
StartLimitBurst=10
ExecStart={exec_start}
{service_lines}{environment_lines}
[Install]
WantedBy={wanted_by}
"""

# Names a template may reference. Override templates can use the raw values
# or the pre-rendered *_lines blocks.
UNIT_FIELDS = frozenset({
    "name",
    "display_name",
    "description",
    "path",
    "exec_start",
    "arguments",
    "working_directory",
    "chroot",
    "user_name",
    "pid_file",
    "reload_signal",
    "restart",
    "success_exit_status",
    "restart_sec",
    "kill_mode",
    "kill_signal",
    "timeout_stop_sec",
    "limit_nofile",
    "log_output",
    "log_directory",
    "has_output_file_support",
    "wanted_by",
    "dependency_lines",
    "service_lines",
    "environment_lines",
})

_NEEDS_QUOTING = (" ", "\t", '"', "\\")


def cmd_quote(value: str) -> str:
    """Quote *value* for a unit file command line if it needs protection."""
    if not any(ch in value for ch in _NEEDS_QUOTING):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class UnitTemplate:
    """A validated ``str.format`` unit template."""

    def __init__(self, source: str):
        self.source = source
        self.fields = self._validate(source)

    @staticmethod
    def _validate(source: str) -> frozenset[str]:
        try:
            parsed = list(Formatter().parse(source))
        except ValueError as e:
            raise TemplateError(f"Malformed unit template: {e}") from e

        names = set()
        for _, field_name, _, _ in parsed:
            if field_name is None:
                continue
            if field_name == "" or field_name.isdigit():
                raise TemplateError("Unit template fields must be named, e.g. {name}")
            root = re.split(r"[.\[]", field_name, maxsplit=1)[0]
            if root not in UNIT_FIELDS:
                raise TemplateError(
                    f"Unknown field '{root}' in unit template. "
                    f"Available: {', '.join(sorted(UNIT_FIELDS))}"
                )
            names.add(root)
        return frozenset(names)

    def render(self, fields: Mapping[str, Any]) -> str:
        try:
            return self.source.format_map(fields)
        except (KeyError, IndexError, ValueError, AttributeError, TypeError) as e:
            raise TemplateError(f"Failed to render unit template: {e}") from e


DEFAULT_TEMPLATE = UnitTemplate(SYSTEMD_UNIT)


def get_template(script: str = "") -> UnitTemplate:
    """Return the override template when given, else the built-in one."""
    if script:
        return UnitTemplate(script)
    return DEFAULT_TEMPLATE


def build_unit_fields(
    config: ServiceConfig,
    path: str,
    has_output_file_support: bool,
) -> dict[str, Any]:
    """Compute every template field for *config* running *path*."""
    opts = config.options
    name = config.name

    exec_start = cmd_quote(path) + "".join(f" {cmd_quote(arg)}" for arg in config.arguments)

    service: list[str] = []
    if config.chroot:
        service.append(f"RootDirectory={cmd_quote(config.chroot)}")
    if config.working_directory:
        service.append(f"WorkingDirectory={cmd_quote(config.working_directory)}")
    if config.user_name:
        service.append(f"User={config.user_name}")
    if opts.reload_signal:
        service.append(f'ExecReload=/bin/kill -{opts.reload_signal} "$MAINPID"')
    if config.pid_file:
        service.append(f"PIDFile={cmd_quote(config.pid_file)}")
    if opts.log_output and has_output_file_support:
        service.append(f"StandardOutput=file:{opts.log_directory}/{name}.out")
        service.append(f"StandardError=file:{opts.log_directory}/{name}.err")
    if opts.limit_nofile >= 0:
        service.append(f"LimitNOFILE={opts.limit_nofile}")
    if opts.restart:
        service.append(f"Restart={opts.restart}")
    if opts.success_exit_status:
        service.append(f"SuccessExitStatus={opts.success_exit_status}")
    if opts.restart_sec:
        service.append(f"RestartSec={opts.restart_sec}")
    service.append(f"EnvironmentFile=-/etc/sysconfig/{name}")
    if opts.kill_mode:
        service.append(f"KillMode={opts.kill_mode}")
    if opts.kill_signal:
        service.append(f"KillSignal={opts.kill_signal}")
    if opts.timeout_stop_sec:
        service.append(f"TimeoutStopSec={opts.timeout_stop_sec}")

    # Quoting covers the whole NAME=value assignment.
    environment = [
        "Environment=" + cmd_quote(f"{key}={config.env_vars[key]}") for key in sorted(config.env_vars)
    ]

    return {
        "name": name,
        "display_name": config.display_name,
        "description": config.description,
        "path": cmd_quote(path),
        "exec_start": exec_start,
        "arguments": " ".join(cmd_quote(arg) for arg in config.arguments),
        "working_directory": cmd_quote(config.working_directory),
        "chroot": cmd_quote(config.chroot),
        "user_name": config.user_name,
        "pid_file": cmd_quote(config.pid_file),
        "reload_signal": opts.reload_signal,
        "restart": opts.restart,
        "success_exit_status": opts.success_exit_status,
        "restart_sec": opts.restart_sec,
        "kill_mode": opts.kill_mode,
        "kill_signal": opts.kill_signal,
        "timeout_stop_sec": opts.timeout_stop_sec,
        "limit_nofile": opts.limit_nofile,
        "log_output": opts.log_output,
        "log_directory": opts.log_directory,
        "has_output_file_support": has_output_file_support,
        "wanted_by": "default.target" if opts.user_service else "multi-user.target",
        "dependency_lines": _lines(config.dependencies),
        "service_lines": _lines(service),
        "environment_lines": _lines(environment),
    }


def _lines(items: Iterable[str]) -> str:
    return "".join(f"{item}\n" for item in items)


def parse_unit(text: str) -> dict[str, dict[str, list[str]]]:
    """Parse unit file text into ``{section: {key: [values]}}``."""
    sections: dict[str, dict[str, list[str]]] = {}
    current: dict[str, list[str]] | None = None
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith(("#", ";")):
            continue
        if line.startswith("[") and line.endswith("]"):
            current = sections.setdefault(line[1:-1], {})
            continue
        if current is None or "=" not in line:
            raise ValueError(f"Unexpected line in unit file: {raw!r}")
        key, value = line.split("=", 1)
        current.setdefault(key.strip(), []).append(value.strip())
    return sections
