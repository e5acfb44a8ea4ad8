"""Shared fixtures: an in-memory systemctl and a temporary unit directory."""

from unittest.mock import patch

import pytest

from servicekit.config.schema import ServiceConfig
from servicekit.service.systemd import SystemdService

from fakes import FakeSystemctl, RecordingInterface


@pytest.fixture
def unit_dir(tmp_path):
    path = tmp_path / "etc" / "systemd" / "system"
    path.mkdir(parents=True)
    with patch("servicekit.service.systemd.SYSTEM_UNIT_DIR", path):
        yield path


@pytest.fixture
def systemctl(unit_dir):
    return FakeSystemctl(unit_dir)


@pytest.fixture
def demo_config():
    return ServiceConfig(
        name="demo",
        display_name="Demo Service",
        description="Demo service",
        executable="/usr/bin/demo",
        arguments=["--port", "8080"],
    )


@pytest.fixture
def demo_service(demo_config, systemctl):
    return SystemdService(RecordingInterface(), demo_config, runner=systemctl)
