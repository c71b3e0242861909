"""Render command: print the bundle documents of a bundle reference."""

from __future__ import annotations

import io
from pathlib import Path

import click

from ..exceptions import FBCError
from ..pipeline import default_renderer
from ..render import render_bundle
from ..storage.writer import WRITERS


@click.command("render")
@click.argument("ref", type=str)
@click.option(
    "--bundle-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Unpacked content of REF (skips the registry pull).",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(sorted(WRITERS), case_sensitive=False),
    default="json",
    show_default=True,
)
def render_cmd(ref: str, bundle_dir: Path | None, output_format: str):
    """Render REF (image reference or bundle directory) to catalog documents."""
    renderer = default_renderer({ref: bundle_dir} if bundle_dir is not None else None)
    try:
        cfg = render_bundle(ref, renderer)
    except FBCError as e:
        click.echo(f"Render failed: {e}", err=True)
        raise SystemExit(1)
    finally:
        renderer.client.close()
    buf = io.StringIO()
    WRITERS[output_format.lower()](cfg, buf)
    click.echo(buf.getvalue(), nl=False)


__all__ = ["render_cmd"]
