"""Container image reference parsing.

Follows the familiar docker normalisation rules:

    busybox                      -> docker.io/library/busybox:latest
    quay.io/org/op:1.0.1         -> registry quay.io, repository org/op, tag 1.0.1
    localhost:5000/op@sha256:... -> registry localhost:5000, digest pinned
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DOCKER_HUB = "docker.io"
DOCKER_HUB_API = "registry-1.docker.io"
DEFAULT_TAG = "latest"

_REPOSITORY_RE = re.compile(r"^[a-z0-9]+([._-]+[a-z0-9]+)*(/[a-z0-9]+([._-]+[a-z0-9]+)*)*$")
_TAG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")
_DIGEST_RE = re.compile(r"^[a-z0-9]+([+._-][a-z0-9]+)*:[a-fA-F0-9]{32,}$")


@dataclass(frozen=True)
class ImageReference:
    registry: str
    repository: str
    tag: str | None = None
    digest: str | None = None

    @classmethod
    def parse(cls, ref: str) -> ImageReference:
        """Parse ``ref`` or raise ``ValueError`` describing the bad part."""
        raw = ref.strip()
        if not raw:
            raise ValueError("empty image reference")

        digest = None
        if "@" in raw:
            raw, digest = raw.split("@", 1)
            if not _DIGEST_RE.match(digest):
                raise ValueError(f"invalid digest {digest!r} in {ref!r}")

        tag = None
        slash = raw.rfind("/")
        colon = raw.rfind(":")
        if colon > slash:
            raw, tag = raw[:colon], raw[colon + 1 :]
            if not _TAG_RE.match(tag):
                raise ValueError(f"invalid tag {tag!r} in {ref!r}")

        first, _, rest = raw.partition("/")
        if rest and ("." in first or ":" in first or first == "localhost"):
            registry, repository = first, rest
        else:
            registry, repository = DOCKER_HUB, raw
            if "/" not in repository:
                repository = f"library/{repository}"

        if not _REPOSITORY_RE.match(repository):
            raise ValueError(f"invalid repository {repository!r} in {ref!r}")
        if tag is None and digest is None:
            tag = DEFAULT_TAG
        return cls(registry=registry, repository=repository, tag=tag, digest=digest)

    @property
    def api_host(self) -> str:
        return DOCKER_HUB_API if self.registry == DOCKER_HUB else self.registry

    @property
    def reference(self) -> str:
        """Manifest reference: the digest when pinned, otherwise the tag."""
        return self.digest or self.tag or DEFAULT_TAG

    def __str__(self) -> str:
        out = f"{self.registry}/{self.repository}"
        if self.tag:
            out += f":{self.tag}"
        if self.digest:
            out += f"@{self.digest}"
        return out


__all__ = ["ImageReference", "DOCKER_HUB"]
