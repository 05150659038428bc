import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Tuple

from nomadboot.core._private.constants import NOMAD_BINARY_NAME, NOMAD_PROGRAM_NAME, \
    NOMAD_STDOUT_LOG_NAME, NOMAD_STDERR_LOG_NAME, SUPERVISOR_ROOT_USER, SUPERVISORCTL_COMMAND, \
    NOMADBOOT_DEFAULT_SUPERVISOR_TIMEOUT_S
from nomadboot.core._private.core_utils import write_file_atomically
from nomadboot.core._private.errors import BootstrapIOError, SupervisorControlError
from nomadboot.core._private.request import BootstrapRequest, EnvironmentVariable

logger = logging.getLogger(__name__)

SUPERVISOR_STOP_SIGNAL = "INT"


@dataclass(frozen=True)
class SupervisorUnit:
    program_name: str
    command: str
    stdout_logfile: str
    stderr_logfile: str
    user: str
    environment: Tuple[EnvironmentVariable, ...] = ()
    numprocs: int = 1
    autostart: bool = True
    autorestart: bool = True
    stopsignal: str = SUPERVISOR_STOP_SIGNAL


def generate_supervisor_unit(request: BootstrapRequest) -> SupervisorUnit:
    nomad_binary = os.path.join(request.bin_dir, NOMAD_BINARY_NAME)
    command = "{} agent -config {} -data-dir {}".format(
        nomad_binary, request.config_dir, request.data_dir)

    # elevation only applies to the process, not the config file owner
    if request.use_elevated_privileges:
        user = SUPERVISOR_ROOT_USER
    else:
        user = request.run_as_user

    return SupervisorUnit(
        program_name=NOMAD_PROGRAM_NAME,
        command=command,
        stdout_logfile=os.path.join(request.log_dir, NOMAD_STDOUT_LOG_NAME),
        stderr_logfile=os.path.join(request.log_dir, NOMAD_STDERR_LOG_NAME),
        user=user,
        environment=tuple(request.environment))


def _escape_environment_value(value):
    # supervisord expands %(name)s and splits quoted values shell style
    value = value.replace("%", "%%")
    value = value.replace("\\", "\\\\").replace('"', '\\"')
    return '"{}"'.format(value)


def format_environment(environment) -> str:
    return ",".join(
        "{}={}".format(
            variable.key, _escape_environment_value(variable.value)
        ) for variable in environment)


def _bool_value(value):
    return "true" if value else "false"


def render_supervisor_unit(unit: SupervisorUnit) -> str:
    lines = [
        "[program:{}]".format(unit.program_name),
        "command={}".format(unit.command),
        "stdout_logfile={}".format(unit.stdout_logfile),
        "stderr_logfile={}".format(unit.stderr_logfile),
        "numprocs={}".format(unit.numprocs),
        "autostart={}".format(_bool_value(unit.autostart)),
        "autorestart={}".format(_bool_value(unit.autorestart)),
        "stopsignal={}".format(unit.stopsignal),
        "user={}".format(unit.user),
    ]
    if unit.environment:
        lines.append("environment={}".format(
            format_environment(unit.environment)))
    return "\n".join(lines) + "\n"


def write_supervisor_unit(unit: SupervisorUnit, path: str):
    try:
        write_file_atomically(path, render_supervisor_unit(unit))
    except OSError as e:
        raise BootstrapIOError(path, str(e)) from e
    logger.info("Supervisor config file generated: {}".format(path))


class SupervisorControl:
    """Drive supervisord through supervisorctl."""

    def __init__(self,
                 supervisorctl=SUPERVISORCTL_COMMAND,
                 timeout=NOMADBOOT_DEFAULT_SUPERVISOR_TIMEOUT_S):
        self.supervisorctl = supervisorctl
        self.timeout = timeout

    def _run(self, action):
        cmd = [self.supervisorctl, action]
        logger.debug("Running: {}".format(" ".join(cmd)))
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                universal_newlines=True,
                timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise SupervisorControlError(
                "Failed to run {}: {}".format(" ".join(cmd), e)) from e

        output = (result.stdout or "").strip()
        if result.returncode != 0:
            raise SupervisorControlError(
                "{} exited with {}: {}".format(
                    " ".join(cmd), result.returncode, output))
        if output:
            logger.debug(output)
        return output

    def reread(self):
        """Reread the supervisor configuration without applying it."""
        return self._run("reread")

    def update(self):
        """Apply the configuration changes, (re)starting the changed programs."""
        return self._run("update")
