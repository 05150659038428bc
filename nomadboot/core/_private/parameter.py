import logging
import os

import nomadboot.core._private.constants as constants

logger = logging.getLogger(__name__)


class BootstrapSettings:
    """A class used to store the settings of a bootstrap run.

    The settings are populated once at startup and passed down to the
    components which need them.

    Attributes:
        install_dir (str): The bin directory of the Nomad installation. The
            default config, data, bin and log directories are its siblings.
        metadata_endpoint (str): The base url of the instance metadata
            service.
        metadata_timeout (float): Timeout in seconds of a single request to
            the instance metadata service.
        metadata_token_ttl (int): The TTL in seconds requested for the
            metadata session token.
        supervisor_conf (str): The path of the supervisor program definition
            to generate.
        supervisor_timeout (float): Timeout in seconds of a supervisorctl call.
        lock_file (str): The lock file guarding against concurrent runs.
        consul_address (str): The address of the local Consul agent which
            Nomad uses for service discovery.
        required_commands (list): Commands which must be executable on the
            PATH before a run starts.
    """

    def __init__(self,
                 install_dir=constants.NOMADBOOT_DEFAULT_INSTALL_DIR,
                 metadata_endpoint=constants.NOMADBOOT_DEFAULT_METADATA_ENDPOINT,
                 metadata_timeout=constants.NOMADBOOT_DEFAULT_METADATA_TIMEOUT_S,
                 metadata_token_ttl=constants.NOMADBOOT_DEFAULT_METADATA_TOKEN_TTL_S,
                 supervisor_conf=constants.NOMADBOOT_DEFAULT_SUPERVISOR_CONF,
                 supervisor_timeout=constants.NOMADBOOT_DEFAULT_SUPERVISOR_TIMEOUT_S,
                 lock_file=constants.NOMADBOOT_DEFAULT_LOCK_FILE,
                 consul_address=constants.NOMADBOOT_DEFAULT_CONSUL_ADDRESS,
                 required_commands=None):
        self.install_dir = os.path.abspath(install_dir)
        self.metadata_endpoint = metadata_endpoint.rstrip("/")
        self.metadata_timeout = metadata_timeout
        self.metadata_token_ttl = metadata_token_ttl
        self.supervisor_conf = supervisor_conf
        self.supervisor_timeout = supervisor_timeout
        self.lock_file = lock_file
        self.consul_address = consul_address
        if required_commands is None:
            required_commands = list(
                constants.NOMADBOOT_DEFAULT_REQUIRED_COMMANDS)
        self.required_commands = required_commands
        self._check_usage()

    @classmethod
    def from_environment(cls):
        return cls(
            install_dir=constants.env_string(
                constants.NOMADBOOT_INSTALL_DIR_ENV,
                constants.NOMADBOOT_DEFAULT_INSTALL_DIR),
            metadata_endpoint=constants.env_string(
                constants.NOMADBOOT_METADATA_ENDPOINT_ENV,
                constants.NOMADBOOT_DEFAULT_METADATA_ENDPOINT),
            metadata_timeout=constants.env_integer(
                constants.NOMADBOOT_METADATA_TIMEOUT_S_ENV,
                constants.NOMADBOOT_DEFAULT_METADATA_TIMEOUT_S),
            metadata_token_ttl=constants.env_integer(
                constants.NOMADBOOT_METADATA_TOKEN_TTL_S_ENV,
                constants.NOMADBOOT_DEFAULT_METADATA_TOKEN_TTL_S),
            supervisor_conf=constants.env_string(
                constants.NOMADBOOT_SUPERVISOR_CONF_ENV,
                constants.NOMADBOOT_DEFAULT_SUPERVISOR_CONF),
            supervisor_timeout=constants.env_integer(
                constants.NOMADBOOT_SUPERVISOR_TIMEOUT_S_ENV,
                constants.NOMADBOOT_DEFAULT_SUPERVISOR_TIMEOUT_S),
            lock_file=constants.env_string(
                constants.NOMADBOOT_LOCK_FILE_ENV,
                constants.NOMADBOOT_DEFAULT_LOCK_FILE),
            consul_address=constants.env_string(
                constants.NOMADBOOT_CONSUL_ADDRESS_ENV,
                constants.NOMADBOOT_DEFAULT_CONSUL_ADDRESS),
            required_commands=constants.env_list(
                constants.NOMADBOOT_REQUIRED_COMMANDS_ENV,
                constants.NOMADBOOT_DEFAULT_REQUIRED_COMMANDS),
        )

    def default_dir(self, name):
        return os.path.normpath(
            os.path.join(self.install_dir, os.pardir, name))

    def update(self, **kwargs):
        """Update the settings according to the keyword arguments.

        Args:
            kwargs: The keyword arguments to set corresponding fields.
        """
        for arg in kwargs:
            if hasattr(self, arg):
                setattr(self, arg, kwargs[arg])
            else:
                raise ValueError(
                    f"Invalid BootstrapSettings parameter in update: {arg}")

        self._check_usage()

    def _check_usage(self):
        if self.metadata_timeout is not None and self.metadata_timeout <= 0:
            raise ValueError("metadata_timeout must be positive.")
        if self.metadata_token_ttl is not None and self.metadata_token_ttl <= 0:
            raise ValueError("metadata_token_ttl must be positive.")
        if self.supervisor_timeout is not None and self.supervisor_timeout <= 0:
            raise ValueError("supervisor_timeout must be positive.")
        if not self.consul_address:
            raise ValueError("consul_address must not be empty.")
