import logging
import os
from typing import Optional, Sequence

from nomadboot.core._private.core_utils import get_path_owner
from nomadboot.core._private.errors import ValidationError
from nomadboot.core._private.parameter import BootstrapSettings
from nomadboot.core._private.request import BootstrapRequest, EnvironmentVariable

logger = logging.getLogger(__name__)

# The flag overriding each path and the name of its default directory
PATH_FLAGS = [
    ("config_dir", "--config-dir", "config"),
    ("data_dir", "--data-dir", "data"),
    ("bin_dir", "--bin-dir", "bin"),
    ("log_dir", "--log-dir", "log"),
]


def resolve_request(
        settings: BootstrapSettings,
        server: bool = False,
        client: bool = False,
        num_servers: Optional[int] = None,
        config_dir: Optional[str] = None,
        data_dir: Optional[str] = None,
        bin_dir: Optional[str] = None,
        log_dir: Optional[str] = None,
        user: Optional[str] = None,
        use_sudo: Optional[bool] = None,
        environment: Sequence[str] = (),
        skip_nomad_config: bool = False) -> BootstrapRequest:
    """Validate the parsed flags and fill in the defaults.

    The checks are applied in a fixed order and the first failing one
    raises a ValidationError naming the flag to fix.
    """
    if server:
        if num_servers is None:
            raise ValidationError(
                "--num-servers is required when --server is set.",
                flag="--num-servers")
        if num_servers < 1:
            raise ValidationError(
                "--num-servers must be a positive number.",
                flag="--num-servers")
    elif num_servers is not None:
        logger.warning(
            "--num-servers is ignored because --server is not set.")
        num_servers = None

    if not server and not client:
        raise ValidationError(
            "At least one role required: --server, --client or both.",
            flag="--server")

    use_elevated_privileges = _resolve_elevated_privileges(
        client, use_sudo)

    paths = _resolve_paths(
        settings,
        config_dir=config_dir, data_dir=data_dir,
        bin_dir=bin_dir, log_dir=log_dir)

    if not user:
        user = _get_config_dir_owner(paths["config_dir"])

    environment_variables = _parse_environment(environment)

    return BootstrapRequest(
        is_server=bool(server),
        is_client=bool(client),
        expected_server_count=num_servers,
        config_dir=paths["config_dir"],
        data_dir=paths["data_dir"],
        bin_dir=paths["bin_dir"],
        log_dir=paths["log_dir"],
        run_as_user=user,
        use_elevated_privileges=use_elevated_privileges,
        skip_config_generation=bool(skip_nomad_config),
        environment=environment_variables,
    )


def _resolve_elevated_privileges(client, use_sudo):
    if use_sudo is not None:
        return bool(use_sudo)
    # clients need broader host access such as privileged networking
    return bool(client)


def _resolve_paths(settings: BootstrapSettings, **overrides):
    paths = {}
    for name, flag, default_name in PATH_FLAGS:
        path = overrides.get(name)
        if path:
            paths[name] = os.path.abspath(path)
            continue

        path = settings.default_dir(default_name)
        if not os.path.isdir(path):
            raise ValidationError(
                "The default directory {} does not exist. "
                "Use {} to specify one.".format(path, flag),
                flag=flag)
        paths[name] = path
    return paths


def _get_config_dir_owner(config_dir):
    try:
        return get_path_owner(config_dir)
    except OSError as e:
        raise ValidationError(
            "Failed to get the owner of {}: {}. "
            "Use --user to specify one.".format(config_dir, e),
            flag="--user") from e
    except KeyError as e:
        raise ValidationError(
            "The owner of {} is not a known user. "
            "Use --user to specify one.".format(config_dir),
            flag="--user") from e


def _parse_environment(environment: Sequence[str]):
    environment_variables = []
    for entry in environment or ():
        try:
            environment_variables.append(EnvironmentVariable.parse(entry))
        except ValueError as e:
            raise ValidationError(
                "Invalid --environment value: {}".format(e),
                flag="--environment") from e
    return tuple(environment_variables)
