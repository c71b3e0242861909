"""Load declarative configs from catalog files or directory trees."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..exceptions import LoadError
from ..models import Bundle, Channel, DeclarativeConfig, Meta, Package, document_from_blob

logger = logging.getLogger(__name__)

JSON_SUFFIXES = (".json",)
YAML_SUFFIXES = (".yaml", ".yml")

__all__ = ["load_fbc", "catalog_files", "iter_blobs"]


def catalog_files(root: Path) -> list[Path]:
    """Return catalog files under ``root`` (hidden entries skipped).

    Besides ``.json``, ``.yaml`` and ``.yml`` files, suffix-less files are
    collected too; the default catalog file name has no suffix.
    """
    if root.is_file():
        return [root]
    return sorted(
        p
        for p in root.rglob("*")
        if p.is_file()
        and (not p.suffix or p.suffix in JSON_SUFFIXES + YAML_SUFFIXES)
        and not any(part.startswith(".") for part in p.relative_to(root).parts)
    )


def iter_blobs(path: Path) -> Iterator[dict[str, Any]]:
    """Yield every document in one file.

    JSON files may hold a stream of concatenated objects; YAML files may hold
    several ``---`` separated documents. Any other file is parsed as JSON
    first and YAML second.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise LoadError(path, f"cannot read: {e}") from e
    if path.suffix in YAML_SUFFIXES:
        docs = _yaml_documents(path, text)
    elif path.suffix in JSON_SUFFIXES:
        docs = _json_documents(path, text)
    else:
        try:
            docs = _json_documents(path, text)
        except LoadError:
            docs = _yaml_documents(path, text)
    for doc in docs:
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise LoadError(path, f"expected an object, got {type(doc).__name__}")
        if not doc.get("schema"):
            raise LoadError(path, "document has no 'schema' field")
        yield doc


def _json_documents(path: Path, text: str) -> list[Any]:
    decoder = json.JSONDecoder()
    docs = []
    idx = 0
    while True:
        while idx < len(text) and text[idx].isspace():
            idx += 1
        if idx >= len(text):
            return docs
        try:
            obj, idx = decoder.raw_decode(text, idx)
        except json.JSONDecodeError as e:
            raise LoadError(path, f"invalid JSON: {e}") from e
        docs.append(obj)


def _yaml_documents(path: Path, text: str) -> list[Any]:
    try:
        return list(yaml.safe_load_all(text))
    except yaml.YAMLError as e:
        raise LoadError(path, f"invalid YAML: {e}") from e


def load_fbc(path: Path | str) -> DeclarativeConfig:
    """Load a catalog file, or every catalog file below a directory."""
    root = Path(path)
    if not root.exists():
        raise LoadError(root, "no such file or directory")
    packages: list[Package] = []
    channels: list[Channel] = []
    bundles: list[Bundle] = []
    others: list[Meta] = []
    files = catalog_files(root)
    for f in files:
        for blob in iter_blobs(f):
            try:
                doc = document_from_blob(blob)
            except ValidationError as e:
                raise LoadError(f, f"invalid {blob.get('schema')} document: {e}") from e
            if isinstance(doc, Package):
                packages.append(doc)
            elif isinstance(doc, Channel):
                channels.append(doc)
            elif isinstance(doc, Bundle):
                bundles.append(doc)
            else:
                others.append(doc)
    logger.debug("Loaded %d file(s) from %s", len(files), root)
    return DeclarativeConfig(
        packages=packages, channels=channels, bundles=bundles, others=others
    )
