import os
import shutil
import subprocess
import tempfile
import unittest
from unittest import mock

import pytest

from nomadboot.core._private.errors import SupervisorControlError, BootstrapIOError
from nomadboot.core._private.request import BootstrapRequest, EnvironmentVariable
from nomadboot.core._private.supervisor import generate_supervisor_unit, render_supervisor_unit, \
    format_environment, write_supervisor_unit, SupervisorControl


def make_request(use_elevated_privileges=False, environment=()):
    return BootstrapRequest(
        is_server=True,
        is_client=False,
        expected_server_count=3,
        config_dir="/opt/nomad/config",
        data_dir="/opt/nomad/data",
        bin_dir="/opt/nomad/bin",
        log_dir="/opt/nomad/log",
        run_as_user="nomad",
        use_elevated_privileges=use_elevated_privileges,
        environment=tuple(environment))


class TestSupervisorUnit(unittest.TestCase):
    def test_generate(self):
        unit = generate_supervisor_unit(make_request())
        assert unit.program_name == "nomad"
        assert unit.command == (
            "/opt/nomad/bin/nomad agent -config /opt/nomad/config "
            "-data-dir /opt/nomad/data")
        assert unit.stdout_logfile == "/opt/nomad/log/nomad-stdout.log"
        assert unit.stderr_logfile == "/opt/nomad/log/nomad-error.log"
        assert unit.numprocs == 1
        assert unit.autostart
        assert unit.autorestart
        assert unit.stopsignal == "INT"
        assert unit.user == "nomad"

    def test_elevated_user(self):
        unit = generate_supervisor_unit(
            make_request(use_elevated_privileges=True))
        assert unit.user == "root"

    def test_render(self):
        environment = [
            EnvironmentVariable("A", "1"),
            EnvironmentVariable("B", "2"),
        ]
        unit = generate_supervisor_unit(make_request(environment=environment))
        expected = (
            "[program:nomad]\n"
            "command=/opt/nomad/bin/nomad agent -config /opt/nomad/config "
            "-data-dir /opt/nomad/data\n"
            "stdout_logfile=/opt/nomad/log/nomad-stdout.log\n"
            "stderr_logfile=/opt/nomad/log/nomad-error.log\n"
            "numprocs=1\n"
            "autostart=true\n"
            "autorestart=true\n"
            "stopsignal=INT\n"
            "user=nomad\n"
            'environment=A="1",B="2"\n'
        )
        assert render_supervisor_unit(unit) == expected

    def test_render_without_environment(self):
        unit = generate_supervisor_unit(make_request())
        assert "environment=" not in render_supervisor_unit(unit)

    def test_format_environment(self):
        environment = [
            EnvironmentVariable("Z", "last"),
            EnvironmentVariable("A", "x=y,z"),
            EnvironmentVariable("Z", 'say "100%"'),
            EnvironmentVariable("EMPTY", ""),
        ]
        assert format_environment(environment) == (
            'Z="last",A="x=y,z",Z="say \\"100%%\\"",EMPTY=""')


class TestWriteSupervisorUnit(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_write(self):
        path = os.path.join(self.tmpdir, "run-nomad.conf")
        with open(path, "w") as f:
            f.write("[program:old]\n")
        unit = generate_supervisor_unit(make_request())
        write_supervisor_unit(unit, path)
        with open(path) as f:
            assert f.read() == render_supervisor_unit(unit)

    def test_write_to_missing_dir(self):
        path = os.path.join(self.tmpdir, "missing", "run-nomad.conf")
        unit = generate_supervisor_unit(make_request())
        with pytest.raises(BootstrapIOError):
            write_supervisor_unit(unit, path)


class TestSupervisorControl(unittest.TestCase):
    def test_reread_and_update(self):
        completed = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="nomad: changed\n")
        with mock.patch("subprocess.run", return_value=completed) as run:
            control = SupervisorControl(timeout=10)
            assert control.reread() == "nomad: changed"
            control.update()
        calls = [c[0][0] for c in run.call_args_list]
        assert calls == [["supervisorctl", "reread"],
                         ["supervisorctl", "update"]]
        assert run.call_args_list[0][1]["timeout"] == 10

    def test_failure(self):
        completed = subprocess.CompletedProcess(
            args=[], returncode=2, stdout="error: no such file\n")
        with mock.patch("subprocess.run", return_value=completed):
            with pytest.raises(SupervisorControlError, match="no such file"):
                SupervisorControl().update()

    def test_missing_command(self):
        control = SupervisorControl(
            supervisorctl="/nonexistent/supervisorctl")
        with pytest.raises(SupervisorControlError):
            control.reread()

    def test_timeout(self):
        with mock.patch(
                "subprocess.run",
                side_effect=subprocess.TimeoutExpired(
                    cmd="supervisorctl", timeout=1)):
            with pytest.raises(SupervisorControlError):
                SupervisorControl(timeout=1).reread()


if __name__ == "__main__":
    import sys

    sys.exit(pytest.main(["-v", __file__]))
