"""Reusable Annotated field type aliases for catalog documents.

Keeping the simple field-level constraints here lets the document models in
`models.py` and the run context in `context.py` share them without importing
each other.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------
SCHEMA_PATTERN = r"^[a-z][a-z0-9]*(\.[a-z0-9-]+)+$"
# Loose image reference: [registry[:port]/]path[:tag][@algo:digest], or a bundle path
IMAGE_PATTERN = r"^[A-Za-z0-9./][A-Za-z0-9._\-/:@]*$"

PACKAGE_SCHEMA = "olm.package"
CHANNEL_SCHEMA = "olm.channel"
BUNDLE_SCHEMA = "olm.bundle"

# ---------------------------------------------------------------------------
# Annotated aliases
# ---------------------------------------------------------------------------
SchemaId = Annotated[
    str,
    Field(
        description="Document schema identifier, e.g. 'olm.channel'.",
        pattern=SCHEMA_PATTERN,
        examples=[PACKAGE_SCHEMA, CHANNEL_SCHEMA, BUNDLE_SCHEMA],
    ),
]

PackageName = Annotated[
    str,
    Field(
        description="Name of the package the document belongs to.",
        min_length=1,
        examples=["api-operator"],
    ),
]

ChannelName = Annotated[
    str,
    Field(
        description="Name of an update channel within a package.",
        min_length=1,
        examples=["stable", "foo"],
    ),
]

BundleName = Annotated[
    str,
    Field(
        description="Bundle version identifier, usually '<package>.v<semver>'.",
        min_length=1,
        examples=["api-operator.v1.0.1"],
    ),
]

ImageRef = Annotated[
    str,
    Field(
        description="Container image reference of a bundle.",
        pattern=IMAGE_PATTERN,
        examples=["quay.io/rashmigottipati/api-operator:1.0.1"],
    ),
]

__all__ = [
    "SchemaId",
    "PackageName",
    "ChannelName",
    "BundleName",
    "ImageRef",
    "PACKAGE_SCHEMA",
    "CHANNEL_SCHEMA",
    "BUNDLE_SCHEMA",
]
