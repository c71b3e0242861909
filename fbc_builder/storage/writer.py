"""Writers for persisting a declarative config."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TextIO

import yaml

from ..models import DeclarativeConfig

logger = logging.getLogger(__name__)

__all__ = ["write_json", "write_yaml", "write_fbc", "WRITERS"]


def _represent_literal_str(dumper, data):
    """Represent multiline strings using literal block scalar style (|)."""
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


class _CatalogDumper(yaml.SafeDumper):
    pass


_CatalogDumper.add_representer(str, _represent_literal_str)


def write_json(cfg: DeclarativeConfig, stream: TextIO) -> None:
    """Write each document as indented JSON, one after another."""
    for blob in cfg.blobs():
        json.dump(blob, stream, indent=4, ensure_ascii=False)
        stream.write("\n")


def write_yaml(cfg: DeclarativeConfig, stream: TextIO) -> None:
    """Write documents as a ``---`` separated YAML stream."""
    yaml.dump_all(
        cfg.blobs(),
        stream,
        Dumper=_CatalogDumper,
        explicit_start=True,
        sort_keys=False,
        allow_unicode=True,
        width=80,
    )


WRITERS = {"json": write_json, "yaml": write_yaml}


def write_fbc(cfg: DeclarativeConfig, path: Path | str, fmt: str = "json") -> Path:
    """Write ``cfg`` to ``path`` (overwriting), creating parent directories."""
    try:
        writer = WRITERS[fmt]
    except KeyError:
        raise ValueError(
            f"unknown output format {fmt!r}; expected one of {sorted(WRITERS)}"
        ) from None
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        writer(cfg, fh)
    logger.info("Wrote catalog (%s) to %s", fmt, path)
    return path
