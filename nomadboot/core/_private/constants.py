import os


def env_integer(key, default):
    if key in os.environ:
        val = os.environ[key]
        try:
            return int(val)
        except ValueError:
            raise ValueError(
                "{} must be an integer, got '{}'.".format(key, val)) from None
    return default


def env_string(key, default):
    val = os.environ.get(key)
    if not val:
        return default
    return val


def env_list(key, default):
    val = os.environ.get(key)
    if not val:
        return list(default)
    return [item.strip() for item in val.split(",") if item.strip()]


LOGGER_FORMAT = (
    "%(asctime)s\t%(levelname)s %(filename)s:%(lineno)s -- %(message)s")
LOGGER_FORMAT_HELP = f"The logging format. default='{LOGGER_FORMAT}'"
LOGGER_LEVEL_INFO = "info"
LOGGER_LEVEL_CHOICES = ["debug", "info", "warning", "error", "critical"]
LOGGER_LEVEL_HELP = ("The logging level threshold, choices=['debug', 'info',"
                     " 'warning', 'error', 'critical'], default='info'")

# Environment variables to override the bootstrap settings
NOMADBOOT_INSTALL_DIR_ENV = "NOMADBOOT_INSTALL_DIR"
NOMADBOOT_METADATA_ENDPOINT_ENV = "NOMADBOOT_METADATA_ENDPOINT"
NOMADBOOT_METADATA_TIMEOUT_S_ENV = "NOMADBOOT_METADATA_TIMEOUT_S"
NOMADBOOT_METADATA_TOKEN_TTL_S_ENV = "NOMADBOOT_METADATA_TOKEN_TTL_S"
NOMADBOOT_SUPERVISOR_CONF_ENV = "NOMADBOOT_SUPERVISOR_CONF"
NOMADBOOT_SUPERVISOR_TIMEOUT_S_ENV = "NOMADBOOT_SUPERVISOR_TIMEOUT_S"
NOMADBOOT_LOCK_FILE_ENV = "NOMADBOOT_LOCK_FILE"
NOMADBOOT_CONSUL_ADDRESS_ENV = "NOMADBOOT_CONSUL_ADDRESS"
NOMADBOOT_REQUIRED_COMMANDS_ENV = "NOMADBOOT_REQUIRED_COMMANDS"

# The bin directory of the Nomad installation. The config, data and log
# directories default to its siblings.
NOMADBOOT_DEFAULT_INSTALL_DIR = "/opt/nomad/bin"

NOMADBOOT_DEFAULT_METADATA_ENDPOINT = "http://169.254.169.254"
NOMADBOOT_DEFAULT_METADATA_TIMEOUT_S = 5
# Same as the maximum allowed by the metadata service
NOMADBOOT_DEFAULT_METADATA_TOKEN_TTL_S = 21600

NOMADBOOT_DEFAULT_SUPERVISOR_CONF = "/etc/supervisor/conf.d/run-nomad.conf"
NOMADBOOT_DEFAULT_SUPERVISOR_TIMEOUT_S = 60
NOMADBOOT_DEFAULT_LOCK_FILE = "/var/lock/nomadboot.lock"

# The Consul agent co-located on every node
NOMADBOOT_DEFAULT_CONSUL_ADDRESS = "127.0.0.1:8500"

# Utilities the node image must provide before the agent can be handed off
NOMADBOOT_DEFAULT_REQUIRED_COMMANDS = ["supervisorctl", "aws", "curl", "jq"]

NOMAD_BINARY_NAME = "nomad"
NOMAD_CONFIG_FILE_NAME = "default.hcl"
NOMAD_PROGRAM_NAME = "nomad"
NOMAD_STDOUT_LOG_NAME = "nomad-stdout.log"
NOMAD_STDERR_LOG_NAME = "nomad-error.log"

NOMAD_BIND_ADDRESS = "0.0.0.0"

SUPERVISORCTL_COMMAND = "supervisorctl"
SUPERVISOR_ROOT_USER = "root"
