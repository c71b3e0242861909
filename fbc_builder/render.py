"""Render bundle references into declarative config documents.

A bundle on disk (unpacked from its image, or checked out from source) has
the layout::

    <bundle>/
        manifests/   ClusterServiceVersion, CRDs and other objects (YAML/JSON)
        metadata/
            annotations.yaml   package + channel annotations
            properties.yaml    optional extra properties

Rendering produces exactly one ``olm.bundle`` document per reference.
"""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol

import yaml

from .exceptions import RenderError
from .models import (
    PROPERTY_BUNDLE_OBJECT,
    PROPERTY_GVK,
    PROPERTY_GVK_REQUIRED,
    PROPERTY_PACKAGE,
    Bundle,
    ChannelEntry,
    DeclarativeConfig,
    Property,
    RelatedImage,
)

logger = logging.getLogger(__name__)

MANIFESTS_DIR = "manifests"
METADATA_DIR = "metadata"
ANNOTATIONS_FILE = "annotations.yaml"
PROPERTIES_FILE = "properties.yaml"

ANNOTATION_PACKAGE = "operators.operatorframework.io.bundle.package.v1"
ANNOTATION_CHANNELS = "operators.operatorframework.io.bundle.channels.v1"
ANNOTATION_DEFAULT_CHANNEL = "operators.operatorframework.io.bundle.channel.default.v1"
ANNOTATION_SKIP_RANGE = "olm.skipRange"

KIND_CSV = "ClusterServiceVersion"
KIND_CRD = "CustomResourceDefinition"


class BundleRenderer(Protocol):
    """Anything that turns bundle references into a declarative config."""

    def render(self, refs: Iterable[str]) -> DeclarativeConfig: ...


def render_bundle(ref: str, renderer: BundleRenderer) -> DeclarativeConfig:
    """Render a single bundle reference."""
    return renderer.render([ref])


class DirectoryBundleRenderer:
    """Render unpacked bundle directories.

    ``sources`` maps image references to local directories holding their
    unpacked content; a mapped reference keeps the image in the rendered
    document. A reference that is itself a directory renders with no image.
    """

    def __init__(self, sources: Mapping[str, str | Path] | None = None):
        self.sources = {ref: Path(p) for ref, p in (sources or {}).items()}
        # Upgrade-edge hints from each rendered CSV, keyed by bundle name
        self.channel_entries: dict[str, ChannelEntry] = {}

    def can_render(self, ref: str) -> bool:
        return ref in self.sources or Path(ref).is_dir()

    def render(self, refs: Iterable[str]) -> DeclarativeConfig:
        bundles = []
        for ref in refs:
            if ref in self.sources:
                bundles.append(self.render_directory(self.sources[ref], image=ref, ref=ref))
            elif Path(ref).is_dir():
                bundles.append(self.render_directory(Path(ref), ref=ref))
            else:
                raise RenderError(ref, "no local bundle directory for reference")
        return DeclarativeConfig(bundles=bundles)

    def render_directory(self, root: Path, image: str = "", ref: str | None = None) -> Bundle:
        ref = ref or str(root)
        root = Path(root)
        manifests_dir = root / MANIFESTS_DIR
        if not manifests_dir.is_dir():
            raise RenderError(ref, f"missing {MANIFESTS_DIR}/ directory in {root}")

        annotations = _read_annotations(root / METADATA_DIR / ANNOTATIONS_FILE, ref)
        package = annotations.get(ANNOTATION_PACKAGE)
        if not package:
            raise RenderError(ref, f"annotation {ANNOTATION_PACKAGE!r} not set")

        objects = list(_read_manifests(manifests_dir, ref))
        csvs = [o for o in objects if o.get("kind") == KIND_CSV]
        if len(csvs) != 1:
            raise RenderError(
                ref, f"expected exactly one {KIND_CSV}, found {len(csvs)}"
            )
        csv = csvs[0]
        metadata = csv.get("metadata") or {}
        spec = csv.get("spec") or {}
        name = metadata.get("name")
        if not name:
            raise RenderError(ref, f"{KIND_CSV} has no metadata.name")
        version = str(spec.get("version") or "")

        properties = [
            Property(
                type=PROPERTY_PACKAGE,
                value={"packageName": package, "version": version},
            )
        ]
        properties.extend(_gvk_properties(objects, spec))
        properties.extend(_extra_properties(root / METADATA_DIR / PROPERTIES_FILE, ref))
        properties.extend(
            Property(type=PROPERTY_BUNDLE_OBJECT, value={"data": _encode_object(o)})
            for o in objects
            if o.get("kind") in (KIND_CSV, KIND_CRD)
        )

        related = [
            RelatedImage(name=ri.get("name", ""), image=ri["image"])
            for ri in spec.get("relatedImages") or []
            if ri.get("image")
        ]
        if image and all(r.image != image for r in related):
            related.insert(0, RelatedImage(name="", image=image))

        self.channel_entries[name] = ChannelEntry(
            name=name,
            replaces=spec.get("replaces") or None,
            skips=list(spec.get("skips") or []) or None,
            skip_range=(metadata.get("annotations") or {}).get(ANNOTATION_SKIP_RANGE),
        )
        logger.debug("Rendered bundle %s (package=%s) from %s", name, package, root)
        return Bundle(
            name=name,
            package=package,
            image=image,
            properties=properties,
            related_images=related or None,
        )


# Helpers ---------------------------------------------------------------------
def _read_annotations(path: Path, ref: str) -> dict[str, str]:
    if not path.is_file():
        raise RenderError(ref, f"missing {METADATA_DIR}/{ANNOTATIONS_FILE}")
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise RenderError(ref, f"malformed {path.name}: {e}") from e
    annotations = data.get("annotations") if isinstance(data, dict) else None
    if not isinstance(annotations, dict):
        raise RenderError(ref, f"{path.name} has no 'annotations' mapping")
    return {str(k): str(v) for k, v in annotations.items()}


def _read_manifests(directory: Path, ref: str) -> Iterable[dict[str, Any]]:
    for f in sorted(directory.iterdir()):
        if f.suffix not in (".yaml", ".yml", ".json") or not f.is_file():
            continue
        try:
            with open(f, encoding="utf-8") as fh:
                docs = list(yaml.safe_load_all(fh))
        except (yaml.YAMLError, UnicodeDecodeError) as e:
            raise RenderError(ref, f"malformed manifest {f.name}: {e}") from e
        except OSError as e:
            raise RenderError(ref, f"cannot read manifest {f.name}: {e}") from e
        for doc in docs:
            if isinstance(doc, dict) and doc.get("kind"):
                yield doc


def _gvk_properties(objects: list[dict[str, Any]], csv_spec: dict[str, Any]) -> list[Property]:
    provided: list[dict[str, str]] = []
    for crd in (o for o in objects if o.get("kind") == KIND_CRD):
        spec = crd.get("spec") or {}
        group = spec.get("group", "")
        kind = (spec.get("names") or {}).get("kind", "")
        versions = [v.get("name") for v in spec.get("versions") or [] if v.get("name")]
        if not versions and spec.get("version"):
            versions = [spec["version"]]
        provided.extend({"group": group, "kind": kind, "version": v} for v in versions)

    crds = csv_spec.get("customresourcedefinitions") or {}
    if not provided:
        provided = [_owned_gvk(o) for o in crds.get("owned") or []]
    required = [_owned_gvk(o) for o in crds.get("required") or []]

    out: list[Property] = []
    seen: set[tuple[str, str, str, str]] = set()
    for type_, gvks in ((PROPERTY_GVK, provided), (PROPERTY_GVK_REQUIRED, required)):
        for gvk in gvks:
            key = (type_, gvk["group"], gvk["kind"], gvk["version"])
            if key in seen:
                continue
            seen.add(key)
            out.append(Property(type=type_, value=gvk))
    return out


def _owned_gvk(desc: dict[str, Any]) -> dict[str, str]:
    # CSV descriptors name CRDs as '<plural>.<group>'
    _, _, group = str(desc.get("name", "")).partition(".")
    return {
        "group": group,
        "kind": str(desc.get("kind", "")),
        "version": str(desc.get("version", "")),
    }


def _extra_properties(path: Path, ref: str) -> list[Property]:
    if not path.is_file():
        return []
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise RenderError(ref, f"malformed {PROPERTIES_FILE}: {e}") from e
    except OSError as e:
        raise RenderError(ref, f"cannot read {PROPERTIES_FILE}: {e}") from e
    raw = data.get("properties", []) if isinstance(data, dict) else []
    try:
        return [Property.model_validate(p) for p in raw]
    except ValueError as e:
        raise RenderError(ref, f"invalid {PROPERTIES_FILE}: {e}") from e


def _encode_object(obj: dict[str, Any]) -> str:
    raw = json.dumps(obj, separators=(",", ":"), sort_keys=True, default=str)
    return base64.b64encode(raw.encode()).decode()


__all__ = [
    "BundleRenderer",
    "DirectoryBundleRenderer",
    "render_bundle",
]
