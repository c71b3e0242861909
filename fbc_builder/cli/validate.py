"""Validate command: load a catalog file or directory and check it."""

from __future__ import annotations

from pathlib import Path

import click

from ..exceptions import LoadError
from ..storage.loader import load_fbc
from ..validation import run_model_checks


@click.command("validate")
@click.argument("path", type=click.Path(exists=True, path_type=Path))
def validate_cmd(path: Path):
    """Validate the catalog at PATH (file or directory tree)."""
    try:
        cfg = load_fbc(path)
    except LoadError as e:
        click.echo(f"Failed to load catalog: {e}")
        raise SystemExit(1)
    if cfg.is_empty():
        click.echo(f"Validation FAILED: no catalog documents found in {path}")
        raise SystemExit(1)
    issues = run_model_checks(cfg)
    if issues:
        click.echo("Validation FAILED:")
        for issue in issues:
            click.echo(f" - {issue}")
        raise SystemExit(1)
    click.echo(
        f"Validation PASSED ({len(cfg.packages)} package(s), "
        f"{len(cfg.channels)} channel(s), {len(cfg.bundles)} bundle(s))."
    )


__all__ = ["validate_cmd"]
