"""Initialise the ``olm.package`` document of a catalog."""

from __future__ import annotations

import base64
import logging
from typing import BinaryIO, TextIO

from .exceptions import InitError
from .models import Icon, Package

logger = logging.getLogger(__name__)

# Leading bytes -> media type
_ICON_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def detect_icon_mediatype(data: bytes) -> str:
    for signature, mediatype in _ICON_SIGNATURES:
        if data.startswith(signature):
            return mediatype
    head = data[:512].lstrip().lower()
    if head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head):
        return "image/svg+xml"
    raise InitError("unrecognised icon format (expected png, jpeg, gif or svg)")


def init_package(
    package: str,
    default_channel: str,
    description_reader: TextIO | None = None,
    icon_reader: BinaryIO | None = None,
) -> Package:
    """Build the package document.

    Args:
        package: Package name
        default_channel: Channel subscribers follow unless told otherwise
        description_reader: Stream holding the package description
        icon_reader: Stream holding the raw icon image

    Returns:
        Package document for the catalog
    """
    if not package:
        raise InitError("package name must be set")
    if not default_channel:
        raise InitError(f"package {package!r}: default channel must be set")

    description = None
    if description_reader is not None:
        description = description_reader.read()

    icon = None
    if icon_reader is not None:
        data = icon_reader.read()
        if data:
            icon = Icon(
                base64data=base64.b64encode(data).decode(),
                mediatype=detect_icon_mediatype(data),
            )

    logger.debug("Initialised package %s (default channel %s)", package, default_channel)
    return Package(
        name=package,
        default_channel=default_channel,
        description=description,
        icon=icon,
    )


__all__ = ["init_package", "detect_icon_mediatype"]
