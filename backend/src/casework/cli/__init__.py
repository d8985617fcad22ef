"""CLI entry points for Casework.

Provides command-line tools for inspecting case snapshots:
- Today's agenda and expired actions
- Team completeness alerts
- Status and CEAS statistics
- Field notebooks
"""

import click

from ..logging import setup_logging
from .cases import case_group


@click.group()
@click.version_option(version="0.1.0", prog_name="casework")
@click.option("--verbose", "-v", is_flag=True, help="Enable logging output")
def main(verbose: bool):
    """Casework - social-services case management core.

    Command-line tools for reading case snapshots and
    computing the caseworker dashboard.
    """
    if verbose:
        setup_logging()


main.add_command(case_group, name="case")
