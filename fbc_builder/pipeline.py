"""Assemble, write and validate a minimal file-based catalog.

The pipeline is strictly sequential: render the bundle, initialise the
package, build the channel, merge by assignment. The first failing step is
logged and its error propagates unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from .context import CatalogContext
from .exceptions import CatalogAssemblyError
from .initializer import init_package
from .models import Bundle, Channel, ChannelEntry, DeclarativeConfig
from .registry import RegistryBundleRenderer, RegistryClient, RegistryConfig
from .render import BundleRenderer, DirectoryBundleRenderer, render_bundle
from .storage.writer import write_fbc
from .validation import validate_fbc

logger = logging.getLogger(__name__)

__all__ = [
    "build_channel",
    "check_one_of_each",
    "create_minimal_fbc",
    "default_renderer",
    "run",
]


def default_renderer(
    bundle_dirs: Mapping[str, str | Path] | None = None,
    registry_config: RegistryConfig | None = None,
) -> RegistryBundleRenderer:
    """Renderer that prefers local bundle directories and pulls the rest."""
    return RegistryBundleRenderer(
        RegistryClient(registry_config), DirectoryBundleRenderer(bundle_dirs)
    )


def build_channel(
    ctx: CatalogContext,
    bundle: Bundle | None = None,
    hints: Mapping[str, ChannelEntry] | None = None,
) -> Channel:
    """Build the channel document from the context.

    Without explicit entries the channel holds the rendered bundle, using the
    upgrade edges its CSV declared when the renderer recorded them.
    """
    entries = list(ctx.channel_entries)
    if not entries and bundle is not None:
        hint = (hints or {}).get(bundle.name)
        entries = [hint if hint is not None else ChannelEntry(name=bundle.name)]
    return Channel(
        schema=ctx.channel_schema,
        name=ctx.channel_name,
        package=ctx.package,
        entries=entries,
    )


def check_one_of_each(cfg: DeclarativeConfig) -> None:
    counts = {
        "bundle": len(cfg.bundles),
        "package": len(cfg.packages),
        "channel": len(cfg.channels),
    }
    wrong = {k: n for k, n in counts.items() if n != 1}
    if wrong:
        detail = ", ".join(f"{n} {k}(s)" for k, n in wrong.items())
        raise CatalogAssemblyError(f"expected exactly one bundle, package and channel; got {detail}")


def create_minimal_fbc(ctx: CatalogContext, renderer: BundleRenderer) -> DeclarativeConfig:
    """Render, initialise and merge the three catalog documents."""
    try:
        rendered = render_bundle(ctx.bundle_image, renderer)
    except Exception as e:
        logger.error("error in rendering the bundle image: %s", e)
        raise
    if len(rendered.bundles) != 1:
        msg = f"rendering {ctx.bundle_image!r} produced {len(rendered.bundles)} bundles"
        logger.error(msg)
        raise CatalogAssemblyError(msg)
    bundle = rendered.bundles[0]
    if bundle.package != ctx.package:
        logger.warning(
            "rendered bundle %s belongs to package %r, not %r",
            bundle.name,
            bundle.package,
            ctx.package,
        )

    try:
        package = init_package(
            ctx.package,
            ctx.default_channel,
            ctx.description_reader(),
            ctx.icon_reader(),
        )
    except Exception as e:
        logger.error("error initialising the package blob: %s", e)
        raise

    channel = build_channel(ctx, bundle, getattr(renderer, "channel_entries", None))

    cfg = DeclarativeConfig(
        bundles=rendered.bundles,
        packages=[package],
        channels=[channel],
        others=rendered.others,
    )
    check_one_of_each(cfg)
    logger.info(
        "Assembled catalog for package %s: bundle %s in channel %s",
        package.name,
        bundle.name,
        channel.name,
    )
    return cfg


def run(
    ctx: CatalogContext,
    renderer: BundleRenderer,
    validate: bool = True,
) -> Path:
    """Create the catalog, write it to ``ctx.output_file`` and validate it."""
    cfg = create_minimal_fbc(ctx, renderer)
    try:
        path = write_fbc(cfg, ctx.output_file, ctx.output_format)
    except OSError as e:
        logger.error("failed to write catalog to %s: %s", ctx.output_file, e)
        raise
    if validate:
        validate_fbc(cfg)
    return path
