"""Build command: assemble, write and validate a minimal catalog."""

from __future__ import annotations

from pathlib import Path

import click
from pydantic import ValidationError

from ..context import CatalogContext, default_context
from ..exceptions import FBCError, FBCValidationError
from ..pipeline import default_renderer, run


@click.command("build")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML file with context fields (default: built-in literal context).",
)
@click.option("--image", default=None, help="Bundle image reference to render.")
@click.option(
    "--bundle-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Unpacked content of the bundle image (skips the registry pull).",
)
@click.option("--output", "output_dir", default=None, help="Output directory.")
@click.option("--filename", default=None, help="Output file name.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "yaml"], case_sensitive=False),
    default=None,
    help="Output format (default: json).",
)
@click.option("--description", default=None, help="Package description, or @FILE.")
@click.option(
    "--icon",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Package icon image.",
)
@click.option("--validate/--no-validate", default=True, help="Validate the written catalog.")
def build_cmd(
    config_path: Path | None,
    image: str | None,
    bundle_dir: Path | None,
    output_dir: str | None,
    filename: str | None,
    output_format: str | None,
    description: str | None,
    icon: Path | None,
    validate: bool,
):
    """Render the bundle, add package and channel documents, then write and validate."""
    overrides = {
        "bundle_image": image,
        "fbc_dir_context": output_dir,
        "fbc_filename": filename,
        "output_format": output_format.lower() if output_format else None,
        "description": description,
        "icon": icon,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    try:
        if config_path is not None:
            ctx = CatalogContext.from_yaml(config_path)
        else:
            ctx = default_context()
        ctx = ctx.with_env()
        if overrides:
            ctx = ctx.replace(**overrides)
    except (ValidationError, ValueError, OSError) as e:
        click.echo(f"Invalid catalog context: {e}", err=True)
        raise SystemExit(2)

    sources = {ctx.bundle_image: bundle_dir} if bundle_dir is not None else None
    renderer = default_renderer(sources)
    try:
        path = run(ctx, renderer, validate=validate)
    except FBCValidationError as e:
        click.echo("Validation FAILED:")
        for issue in e.issues:
            click.echo(f" - {issue}")
        raise SystemExit(1)
    except (FBCError, OSError) as e:
        click.echo(f"Build failed: {e}", err=True)
        raise SystemExit(1)
    finally:
        renderer.client.close()
    suffix = " (validated)" if validate else ""
    click.echo(f"Wrote catalog for package {ctx.package} -> {path}{suffix}")


__all__ = ["build_cmd"]
