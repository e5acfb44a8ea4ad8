"""Tests for Service.run coordination and shutdown signals."""

import os
import signal
import sys
import threading
import time

import pytest

from servicekit.config.schema import ServiceConfig, SystemdOptions
from servicekit.service.base import CommandError, ServiceError
from servicekit.service.program import ProgramInterface
from servicekit.service.signals import ShutdownSignal, once, wait_for_signal
from servicekit.service.systemd import SystemdService

from fakes import RecordingInterface


def make_service(interface, systemctl, **options):
    config = ServiceConfig(name="demo", options=SystemdOptions(**options))
    return SystemdService(interface, config, runner=systemctl)


class TestRun:
    def test_start_wait_stop(self, systemctl):
        interface = RecordingInterface()
        waited = []

        def run_wait():
            waited.append(list(interface.events))

        make_service(interface, systemctl, run_wait=run_wait).run()

        assert interface.events == ["start", "stop"]
        assert waited == [["start"]]

    def test_start_failure_skips_wait_and_stop(self, systemctl):
        interface = RecordingInterface(start_error=ServiceError("cannot bind"))
        waited = []

        with pytest.raises(ServiceError, match="cannot bind"):
            make_service(interface, systemctl, run_wait=lambda: waited.append(True)).run()

        assert interface.events == ["start"]
        assert waited == []

    def test_stop_error_propagates(self, systemctl):
        class FailingStop(RecordingInterface):
            def stop(self, service):
                super().stop(service)
                raise ServiceError("stop failed")

        interface = FailingStop()
        with pytest.raises(ServiceError, match="stop failed"):
            make_service(interface, systemctl, run_wait=lambda: None).run()
        assert interface.events == ["start", "stop"]

    def test_run_twice_waits_each_time(self, systemctl):
        interface = RecordingInterface()
        waits = []
        service = make_service(interface, systemctl, run_wait=lambda: waits.append(True))
        service.run()
        service.run()
        assert len(waits) == 2

    def test_default_wait_returns_on_sigterm(self, systemctl):
        interface = RecordingInterface()
        service = make_service(interface, systemctl)
        previous = signal.getsignal(signal.SIGTERM)

        def send_sigterm():
            deadline = time.monotonic() + 5
            while time.monotonic() < deadline:
                handler = signal.getsignal(signal.SIGTERM)
                if isinstance(getattr(handler, "__self__", None), ShutdownSignal):
                    os.kill(os.getpid(), signal.SIGTERM)
                    return
                time.sleep(0.01)

        sender = threading.Thread(target=send_sigterm)
        sender.start()
        service.run()
        sender.join()

        assert interface.events == ["start", "stop"]
        assert signal.getsignal(signal.SIGTERM) == previous


class TestShutdownSignal:
    def test_notify_from_thread(self):
        shutdown = ShutdownSignal()
        threading.Timer(0.05, shutdown.notify, args=(signal.SIGINT,)).start()
        assert shutdown.wait(timeout=5) is True
        assert shutdown.received == signal.SIGINT

    def test_first_notification_wins(self):
        shutdown = ShutdownSignal()
        shutdown.notify(signal.SIGTERM)
        shutdown.notify(signal.SIGINT)
        assert shutdown.received == signal.SIGTERM
        assert shutdown.is_set

    def test_wait_timeout(self):
        assert ShutdownSignal().wait(timeout=0.01) is False

    def test_handlers_restored(self):
        shutdown = ShutdownSignal()
        before = signal.getsignal(signal.SIGINT)
        shutdown.install_handlers()
        assert signal.getsignal(signal.SIGINT) == shutdown._signal_handler
        shutdown.restore_handlers()
        assert signal.getsignal(signal.SIGINT) == before

    def test_wait_for_signal_with_prenotified_signal(self):
        shutdown = ShutdownSignal()
        shutdown.notify()
        wait_for_signal(shutdown)
        assert shutdown.is_set


class TestOnce:
    def test_runs_only_once(self):
        calls = []
        wrapped = once(lambda: calls.append(1))
        wrapped()
        wrapped()
        assert calls == [1]


class TestProgramInterface:
    def test_start_and_terminate(self, systemctl):
        config = ServiceConfig(
            name="sleeper",
            executable=sys.executable,
            arguments=["-c", "import time; time.sleep(30)"],
        )
        interface = ProgramInterface(stop_timeout=5)
        service = SystemdService(interface, config, runner=systemctl)

        interface.start(service)
        proc = interface.process
        assert proc is not None and proc.poll() is None

        interface.stop(service)
        assert proc.poll() is not None
        assert interface.process is None

    def test_env_and_working_directory(self, systemctl, tmp_path):
        script = "import os, sys; sys.exit(0 if os.environ['DEMO'] == '1' and os.path.realpath(os.getcwd()) == os.path.realpath(sys.argv[1]) else 3)"
        config = ServiceConfig(
            name="envcheck",
            executable=sys.executable,
            arguments=["-c", script, str(tmp_path)],
            working_directory=str(tmp_path),
            env_vars={"DEMO": "1"},
        )
        interface = ProgramInterface()
        service = SystemdService(interface, config, runner=systemctl)
        interface.start(service)
        assert interface.process.wait(timeout=10) == 0
        interface.stop(service)

    def test_missing_executable(self, systemctl, tmp_path):
        config = ServiceConfig(name="missing", executable=str(tmp_path / "nope"))
        interface = ProgramInterface()
        with pytest.raises(CommandError) as exc_info:
            interface.start(SystemdService(interface, config, runner=systemctl))
        assert exc_info.value.exit_code == -1

    def test_stop_without_start(self, systemctl):
        interface = ProgramInterface()
        interface.stop(SystemdService(interface, ServiceConfig(name="idle"), runner=systemctl))
