"""Pydantic models for file-based catalog (FBC) documents.

A declarative config is an aggregate of three ordered collections of
documents, each carrying a ``schema`` discriminator on the wire:

Example package document:
  {"schema": "olm.package", "name": "api-operator", "defaultChannel": "foo"}

Example channel document:
  {"schema": "olm.channel", "name": "foo", "package": "api-operator",
   "entries": [{"name": "api-operator.v1.0.1"}]}

Example bundle document:
  {"schema": "olm.bundle", "name": "api-operator.v1.0.1",
   "package": "api-operator", "image": "quay.io/...:1.0.1",
   "properties": [{"type": "olm.package",
                   "value": {"packageName": "api-operator", "version": "1.0.1"}}]}

Documents whose schema is none of the three are kept verbatim as `Meta`
so that a load/write cycle does not drop them.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .field_types import (
    BUNDLE_SCHEMA,
    CHANNEL_SCHEMA,
    PACKAGE_SCHEMA,
    BundleName,
    ChannelName,
    PackageName,
    SchemaId,
)

# Well-known property types
PROPERTY_PACKAGE = "olm.package"
PROPERTY_GVK = "olm.gvk"
PROPERTY_GVK_REQUIRED = "olm.gvk.required"
PROPERTY_BUNDLE_OBJECT = "olm.bundle.object"


class _Document(BaseModel):
    """Shared configuration: camelCase aliases on the wire, names in Python."""

    model_config = ConfigDict(populate_by_name=True)

    def to_blob(self) -> dict[str, Any]:
        """Return the JSON-ready wire representation."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Property(_Document):
    type: str = Field(min_length=1)
    value: Any = None


class RelatedImage(_Document):
    name: str = ""
    image: str


class Icon(_Document):
    base64data: str
    mediatype: str


class Package(_Document):
    schema_: Literal["olm.package"] = Field(PACKAGE_SCHEMA, alias="schema")
    name: PackageName
    default_channel: str = Field("", alias="defaultChannel")
    icon: Icon | None = None
    description: str | None = None


class ChannelEntry(_Document):
    """One bundle version within a channel.

    The upgrade graph fields are carried through untouched; nothing here
    resolves them beyond the single-head check in validation.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    name: BundleName
    replaces: str | None = None
    skips: list[str] | None = None
    skip_range: str | None = Field(None, alias="skipRange")


class Channel(_Document):
    schema_: Literal["olm.channel"] = Field(CHANNEL_SCHEMA, alias="schema")
    name: ChannelName
    package: PackageName
    entries: list[ChannelEntry] = Field(default_factory=list)


class Bundle(_Document):
    schema_: Literal["olm.bundle"] = Field(BUNDLE_SCHEMA, alias="schema")
    name: BundleName
    package: PackageName
    image: str = ""
    properties: list[Property] = Field(default_factory=list)
    related_images: list[RelatedImage] | None = Field(None, alias="relatedImages")

    def properties_of(self, type_: str) -> list[Property]:
        return [p for p in self.properties if p.type == type_]


class Meta(BaseModel):
    """A document with an unrecognised schema, kept as its raw blob."""

    schema_: SchemaId = Field(alias="schema")
    package: str = ""
    name: str = ""
    blob: dict[str, Any]

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_blob(cls, blob: dict[str, Any]) -> Meta:
        return cls(
            schema=blob["schema"],
            package=blob.get("package", "") or "",
            name=blob.get("name", "") or "",
            blob=blob,
        )

    def to_blob(self) -> dict[str, Any]:
        return dict(self.blob)


class DeclarativeConfig(BaseModel):
    """Aggregate of packages, channels and bundles (plus unknown documents)."""

    packages: list[Package] = Field(default_factory=list)
    channels: list[Channel] = Field(default_factory=list)
    bundles: list[Bundle] = Field(default_factory=list)
    others: list[Meta] = Field(default_factory=list)

    def merge(self, other: DeclarativeConfig) -> DeclarativeConfig:
        """Return a new config holding this config's documents then ``other``'s."""
        return DeclarativeConfig(
            packages=[*self.packages, *other.packages],
            channels=[*self.channels, *other.channels],
            bundles=[*self.bundles, *other.bundles],
            others=[*self.others, *other.others],
        )

    def is_empty(self) -> bool:
        return not (self.packages or self.channels or self.bundles or self.others)

    def blobs(self) -> Iterator[dict[str, Any]]:
        """Yield wire blobs in canonical order.

        Packages are visited by name; each contributes its package document,
        its channels sorted by name, its bundles sorted by name and then its
        other documents. Documents that name no package come last.
        """
        names = sorted(
            {p.name for p in self.packages}
            | {c.package for c in self.channels}
            | {b.package for b in self.bundles}
            | {o.package for o in self.others if o.package}
        )
        for name in names:
            for pkg in self.packages:
                if pkg.name == name:
                    yield pkg.to_blob()
            for ch in sorted(
                (c for c in self.channels if c.package == name), key=lambda c: c.name
            ):
                yield ch.to_blob()
            for b in sorted(
                (b for b in self.bundles if b.package == name), key=lambda b: b.name
            ):
                yield b.to_blob()
            for o in self.others:
                if o.package == name:
                    yield o.to_blob()
        for o in self.others:
            if not o.package:
                yield o.to_blob()


def document_from_blob(blob: dict[str, Any]) -> Package | Channel | Bundle | Meta:
    """Build the typed document matching ``blob['schema']``."""
    schema = blob.get("schema")
    if schema == PACKAGE_SCHEMA:
        return Package.model_validate(blob)
    if schema == CHANNEL_SCHEMA:
        return Channel.model_validate(blob)
    if schema == BUNDLE_SCHEMA:
        return Bundle.model_validate(blob)
    return Meta.from_blob(blob)


__all__ = [
    "Property",
    "RelatedImage",
    "Icon",
    "Package",
    "ChannelEntry",
    "Channel",
    "Bundle",
    "Meta",
    "DeclarativeConfig",
    "document_from_blob",
    "PROPERTY_PACKAGE",
    "PROPERTY_GVK",
    "PROPERTY_GVK_REQUIRED",
    "PROPERTY_BUNDLE_OBJECT",
]
