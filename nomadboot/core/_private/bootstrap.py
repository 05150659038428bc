import logging
from dataclasses import dataclass
from typing import Optional

from filelock import FileLock, Timeout

from nomadboot.core._private.core_utils import find_missing_commands
from nomadboot.core._private.errors import PreconditionError, BootstrapIOError
from nomadboot.core._private.parameter import BootstrapSettings
from nomadboot.core._private.request import BootstrapRequest, InstanceFacts
from nomadboot.core._private.supervisor import SupervisorControl, generate_supervisor_unit, \
    write_supervisor_unit, SupervisorUnit
from nomadboot.providers._private.aws.metadata import InstanceMetadataClient, discover_instance_facts
from nomadboot.runtime.nomad.config import AgentConfig, synthesize_agent_config, write_agent_config

logger = logging.getLogger(__name__)


@dataclass
class BootstrapResult:
    facts: Optional[InstanceFacts] = None
    agent_config: Optional[AgentConfig] = None
    supervisor_unit: Optional[SupervisorUnit] = None
    supervisor_conf: Optional[str] = None


class NodeBootstrapper:
    """Run the bootstrap steps of a node in order.

    Any failure aborts the run. Artifacts written by the steps before
    the failure are left in place.
    """

    def __init__(self,
                 settings: BootstrapSettings,
                 metadata_client: Optional[InstanceMetadataClient] = None,
                 supervisor_control: Optional[SupervisorControl] = None):
        self.settings = settings
        if metadata_client is None:
            metadata_client = InstanceMetadataClient(
                endpoint=settings.metadata_endpoint,
                timeout=settings.metadata_timeout,
                token_ttl=settings.metadata_token_ttl)
        self.metadata_client = metadata_client
        if supervisor_control is None:
            supervisor_control = SupervisorControl(
                timeout=settings.supervisor_timeout)
        self.supervisor_control = supervisor_control

    def check_preconditions(self):
        missing = find_missing_commands(self.settings.required_commands)
        if missing:
            raise PreconditionError(
                "The command {} is required but not found on the PATH.".format(
                    missing[0]))

    def _lock(self):
        return FileLock(self.settings.lock_file, timeout=0)

    def bootstrap(self, request: BootstrapRequest) -> BootstrapResult:
        self.check_preconditions()

        lock = self._lock()
        try:
            lock.acquire()
        except Timeout as e:
            raise PreconditionError(
                "Another bootstrap is running (lock {} is held).".format(
                    self.settings.lock_file)) from e
        except OSError as e:
            raise BootstrapIOError(self.settings.lock_file, str(e)) from e

        try:
            return self._bootstrap(request)
        finally:
            lock.release()

    def _bootstrap(self, request: BootstrapRequest) -> BootstrapResult:
        result = BootstrapResult()
        if request.skip_config_generation:
            logger.info(
                "Skipping the Nomad config generation. "
                "Config files in {} are used as is.".format(request.config_dir))
        else:
            result.facts = discover_instance_facts(self.metadata_client)
            result.agent_config = synthesize_agent_config(
                request, result.facts,
                service_discovery_address=self.settings.consul_address)
            write_agent_config(result.agent_config, request.run_as_user)

        result.supervisor_unit = generate_supervisor_unit(request)
        result.supervisor_conf = self.settings.supervisor_conf
        write_supervisor_unit(
            result.supervisor_unit, self.settings.supervisor_conf)

        self.supervisor_control.reread()
        self.supervisor_control.update()
        logger.info(
            "Nomad agent is handed off to supervisor as program {}.".format(
                result.supervisor_unit.program_name))
        return result
