"""
vaultdav CLI -- keep a vault file on WebDAV from the command line.

The main Click group is defined here and the command groups are
registered via register functions.

Entry point: vaultdav.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import VAULTDAV_HOME, __version__


@click.group()
@click.version_option(version=__version__, prog_name="vaultdav")
@click.option("--home", default=VAULTDAV_HOME, type=click.Path(), help="Config directory.")
@click.option("--verbose", "-v", is_flag=True, help="Log every HTTP request.")
@click.pass_context
def main(ctx, home, verbose):
    """vaultdav -- your vault file, on your WebDAV server.

    Pull it, edit it, push it back. Never clobber someone else's save.
    """
    ctx.ensure_object(dict)
    ctx.obj["HOME"] = home
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )


from .vault_cmd import register_vault_commands

register_vault_commands(main)
