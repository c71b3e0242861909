"""CLI command group for minimal file-based catalogs.

This module exposes the root Click command group `fbc` which aggregates
subcommands implemented in sibling modules.

Example usage:

        fbc build --bundle-dir ./bundle
        fbc render quay.io/rashmigottipati/api-operator:1.0.1
        fbc validate testdata/testFBC
"""

from __future__ import annotations

from pathlib import Path

import click
import dotenv

from .. import __version__
from ..log import configure_logging
from .build import build_cmd
from .render import render_cmd
from .validate import validate_cmd


@click.group()
@click.version_option(__version__, prog_name="fbc")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (default: FBC_LOG_LEVEL or WARNING).",
)
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path(".env"),
    show_default=True,
    help="Dotenv file with FBC_* overrides (ignored when missing).",
)
def fbc(log_level: str | None, env_file: Path):
    """Build and validate minimal file-based catalogs."""
    if env_file.is_file():
        dotenv.load_dotenv(dotenv_path=env_file)
    configure_logging(log_level)


# Register subcommands
fbc.add_command(build_cmd)
fbc.add_command(render_cmd)
fbc.add_command(validate_cmd)

__all__ = ["fbc"]
