import logging

import click

from nomadboot import __version__
from nomadboot.core._private import constants
from nomadboot.core._private import logging_utils
from nomadboot.core._private.bootstrap import NodeBootstrapper
from nomadboot.core._private.errors import BootstrapError, ValidationError
from nomadboot.core._private.parameter import BootstrapSettings
from nomadboot.core._private.resolver import resolve_request

logger = logging.getLogger(__name__)


@click.command(context_settings=dict(help_option_names=["--help"]))
@click.option(
    "--server",
    is_flag=True,
    default=False,
    help="Run the Nomad agent in server mode.")
@click.option(
    "--client",
    is_flag=True,
    default=False,
    help="Run the Nomad agent in client mode. "
         "Can be used together with --server.")
@click.option(
    "--num-servers",
    required=False,
    type=int,
    help="The number of servers to expect in the cluster. "
         "Required if --server is set.")
@click.option(
    "--config-dir",
    required=False,
    type=str,
    help="The path to the Nomad config folder. "
         "Default is the config folder next to the Nomad install folder.")
@click.option(
    "--data-dir",
    required=False,
    type=str,
    help="The path to the Nomad data folder. "
         "Default is the data folder next to the Nomad install folder.")
@click.option(
    "--bin-dir",
    required=False,
    type=str,
    help="The path to the folder with the Nomad binary. "
         "Default is the bin folder of the Nomad install folder.")
@click.option(
    "--log-dir",
    required=False,
    type=str,
    help="The path to the Nomad log folder. "
         "Default is the log folder next to the Nomad install folder.")
@click.option(
    "--user",
    required=False,
    type=str,
    help="The user to run Nomad as. "
         "Default is the owner of the config folder.")
@click.option(
    "--use-sudo",
    is_flag=True,
    default=False,
    help="Run the Nomad agent as root. Default for client nodes.")
@click.option(
    "--environment",
    multiple=True,
    type=str,
    help="A KEY=VALUE environment variable for the Nomad agent. "
         "Can be specified multiple times.")
@click.option(
    "--skip-nomad-config",
    is_flag=True,
    default=False,
    help="Do not generate the Nomad config file. "
         "Use this if the config folder is populated in another way.")
@click.option(
    "--logging-level",
    required=False,
    default=constants.LOGGER_LEVEL_INFO,
    type=click.Choice(constants.LOGGER_LEVEL_CHOICES, case_sensitive=False),
    help=constants.LOGGER_LEVEL_HELP)
@click.option(
    "--logging-format",
    required=False,
    default=constants.LOGGER_FORMAT,
    type=str,
    help=constants.LOGGER_FORMAT_HELP)
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, server, client, num_servers, config_dir, data_dir, bin_dir,
        log_dir, user, use_sudo, environment, skip_nomad_config,
        logging_level, logging_format):
    """Configure and run Nomad on an EC2 instance.

    Generates the Nomad config file and the supervisor program for the
    Nomad agent, then asks supervisor to (re)start it.
    """
    logging_utils.setup_logger(logging_level, logging_format)
    try:
        settings = BootstrapSettings.from_environment()
    except ValueError as e:
        logger.error("Invalid bootstrap settings: {}".format(e))
        ctx.exit(1)

    try:
        request = resolve_request(
            settings,
            server=server,
            client=client,
            num_servers=num_servers,
            config_dir=config_dir,
            data_dir=data_dir,
            bin_dir=bin_dir,
            log_dir=log_dir,
            user=user,
            use_sudo=True if use_sudo else None,
            environment=environment,
            skip_nomad_config=skip_nomad_config)
    except ValidationError as e:
        logger.error(str(e))
        raise click.UsageError(str(e), ctx=ctx)

    try:
        NodeBootstrapper(settings).bootstrap(request)
    except BootstrapError as e:
        logger.error(str(e))
        ctx.exit(1)


def run(args=None) -> int:
    """Run a bootstrap with the command line arguments and return the
    exit status instead of exiting the process."""
    try:
        status = cli.main(
            args=args, prog_name="nomadboot", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except click.Abort:
        return 1
    if isinstance(status, int):
        return status
    return 0


def main():
    return cli()


if __name__ == "__main__":
    main()
