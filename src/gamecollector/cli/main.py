"""GameCollector CLI -- list the games your launchers and package managers know.

Entry point for the ``gamecollector`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    scan       -- Discover games on one or more platforms.
    platforms  -- List supported platforms and where their data was found.

Usage::

    gamecollector scan                          # Every platform
    gamecollector scan steam egs                # Selected platforms
    gamecollector scan steam --override /mnt/games/Steam
    gamecollector scan --format json --installed-only -v
    gamecollector platforms
"""

from __future__ import annotations

import click

from gamecollector import __version__
from gamecollector.cli.output import configure_logging
from gamecollector.cli.platforms_cmd import platforms_command
from gamecollector.cli.scan import scan_command


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log debug output.")
def cli(verbose: bool) -> None:
    """GameCollector: discover games across launchers and package managers.

    Locates each platform's data, reads its native manifests, databases and
    CLI listings, and reports one normalized record per game. Broken
    entries are reported as errors without stopping the scan.
    """
    configure_logging(verbose)


cli.add_command(scan_command)
cli.add_command(platforms_command)
