"""prov-comp CLI - Command-line interface for provider compensation modeling."""

import logging
import os

import click

from provcomp import __version__

from .optimize_commands import imputed, optimize, sweep
from .compare_commands import compare
from .targets_commands import targets
from .match_commands import match
from .settings_commands import settings as settings_group

LOG_FORMAT = "%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s"


@click.group()
@click.version_option(version=__version__, prog_name="prov-comp")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose):
    """prov-comp - Conversion factor and productivity target modeling.

    Compares providers against market benchmarks by specialty and
    recommends wRVU conversion factors that align pay with productivity.

    Configuration is loaded from (in order):

    \b
    1. --settings PATH on the command
    2. settings.json 'profile' key (if set)
    3. PROV_COMP_CONFIG_PATH or ~/.config/prov-comp/profile.yaml

    Run 'prov-comp settings init' to create a profile with defaults.
    """
    level = logging.DEBUG if verbose else os.environ.get("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)


cli.add_command(optimize)
cli.add_command(sweep)
cli.add_command(imputed)
cli.add_command(targets)
cli.add_command(match)
cli.add_command(compare)
cli.add_command(settings_group)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
