"""Pull bundle images from an OCI registry and render them.

Only what rendering needs is implemented: manifest resolution (including
image indexes), the anonymous or basic-auth bearer token flow, and layer
extraction into a scratch directory.
"""

from __future__ import annotations

import hashlib
import io
import logging
import re
import shutil
import tarfile
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

import httpx

from .exceptions import RenderError
from .image import ImageReference
from .models import DeclarativeConfig
from .render import DirectoryBundleRenderer

logger = logging.getLogger(__name__)

MEDIA_OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
MEDIA_OCI_INDEX = "application/vnd.oci.image.index.v1+json"
MEDIA_DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"
MEDIA_DOCKER_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"
INDEX_MEDIA_TYPES = {MEDIA_OCI_INDEX, MEDIA_DOCKER_LIST}
ACCEPT = ", ".join(
    [MEDIA_OCI_MANIFEST, MEDIA_OCI_INDEX, MEDIA_DOCKER_MANIFEST, MEDIA_DOCKER_LIST]
)

WHITEOUT_PREFIX = ".wh."
OPAQUE_WHITEOUT = ".wh..wh..opq"

_CHALLENGE_RE = re.compile(r'(\w+)="([^"]*)"')


@dataclass(slots=True)
class RegistryConfig:
    """Configuration for registry access."""

    timeout: float = 60.0
    insecure_hosts: tuple[str, ...] = ("localhost", "127.0.0.1")
    username: str | None = None
    password: str | None = None
    platform: tuple[str, str] = ("linux", "amd64")
    headers: dict[str, str] = field(default_factory=dict)


class RegistryClient:
    """Minimal OCI distribution client built on httpx."""

    def __init__(
        self,
        config: RegistryConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ):
        self.config = config or RegistryConfig()
        self._client = httpx.Client(
            timeout=self.config.timeout,
            follow_redirects=True,
            headers=self.config.headers,
            transport=transport,
        )
        self._tokens: dict[str, str] = {}

    def close(self) -> None:
        """Release network resources."""
        self._client.close()

    def __enter__(self) -> RegistryClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # Public API ------------------------------------------------------------
    def pull(self, ref: ImageReference, dest: Path) -> Path:
        """Download and unpack every layer of ``ref`` into ``dest``."""
        manifest = self.manifest(ref)
        layers = manifest.get("layers") or []
        if not layers:
            raise RenderError(str(ref), "image manifest lists no layers")
        dest.mkdir(parents=True, exist_ok=True)
        for layer in layers:
            digest = layer.get("digest") if isinstance(layer, dict) else None
            if not digest:
                raise RenderError(str(ref), "image manifest has a layer without a digest")
            data = self.blob(ref, digest)
            _extract_layer(data, dest)
        logger.debug("Pulled %s (%d layer(s)) into %s", ref, len(layers), dest)
        return dest

    def manifest(self, ref: ImageReference) -> dict[str, Any]:
        """Return the image manifest, resolving an image index by platform."""
        doc = self._get_json(ref, f"manifests/{ref.reference}", {"Accept": ACCEPT})
        if doc.get("mediaType") in INDEX_MEDIA_TYPES or "manifests" in doc:
            digest = self._select_platform(ref, doc.get("manifests") or [])
            doc = self._get_json(ref, f"manifests/{digest}", {"Accept": ACCEPT})
        return doc

    def blob(self, ref: ImageReference, digest: str) -> bytes:
        resp = self._request(ref, f"blobs/{digest}")
        data = resp.content
        algo, _, expected = digest.partition(":")
        if algo == "sha256" and hashlib.sha256(data).hexdigest() != expected:
            raise RenderError(str(ref), f"digest mismatch for blob {digest}")
        return data

    # Internals -------------------------------------------------------------
    def _base_url(self, ref: ImageReference) -> str:
        host = ref.api_host
        scheme = "http" if host.split(":")[0] in self.config.insecure_hosts else "https"
        return f"{scheme}://{host}/v2/{ref.repository}/"

    def _get_json(self, ref: ImageReference, path: str, headers: dict[str, str]) -> dict[str, Any]:
        resp = self._request(ref, path, headers)
        try:
            doc = resp.json()
        except ValueError as e:
            raise RenderError(str(ref), f"malformed registry response for {path}") from e
        if not isinstance(doc, dict):
            raise RenderError(str(ref), f"malformed registry response for {path}")
        return doc

    def _request(
        self, ref: ImageReference, path: str, headers: dict[str, str] | None = None
    ) -> httpx.Response:
        url = self._base_url(ref) + path
        headers = dict(headers or {})
        token = self._tokens.get(ref.repository)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            resp = self._client.get(url, headers=headers)
            if resp.status_code == 401 and not token:
                token = self._authenticate(ref, resp.headers.get("WWW-Authenticate", ""))
                headers["Authorization"] = f"Bearer {token}"
                resp = self._client.get(url, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RenderError(
                str(ref), f"registry returned {e.response.status_code} for {path}"
            ) from e
        except httpx.HTTPError as e:
            raise RenderError(str(ref), f"registry request failed: {e}") from e
        return resp

    def _authenticate(self, ref: ImageReference, challenge: str) -> str:
        scheme, _, params = challenge.partition(" ")
        if scheme.lower() != "bearer":
            raise RenderError(str(ref), f"unsupported auth challenge {challenge!r}")
        fields = dict(_CHALLENGE_RE.findall(params))
        realm = fields.pop("realm", None)
        if not realm:
            raise RenderError(str(ref), "auth challenge has no realm")
        fields.setdefault("scope", f"repository:{ref.repository}:pull")
        auth = None
        if self.config.username and self.config.password:
            auth = (self.config.username, self.config.password)
        resp = self._client.get(realm, params=fields, auth=auth)
        if resp.status_code != 200:
            raise RenderError(str(ref), f"token endpoint returned {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as e:
            raise RenderError(str(ref), "token endpoint returned malformed JSON") from e
        if not isinstance(body, dict):
            body = {}
        token = body.get("token") or body.get("access_token")
        if not token:
            raise RenderError(str(ref), "token endpoint returned no token")
        self._tokens[ref.repository] = token
        return token

    def _select_platform(self, ref: ImageReference, manifests: list[dict[str, Any]]) -> str:
        if not manifests:
            raise RenderError(str(ref), "image index lists no manifests")
        want_os, want_arch = self.config.platform
        entries = [m for m in manifests if isinstance(m, dict)]
        if len(entries) != len(manifests) or any(not m.get("digest") for m in entries):
            raise RenderError(str(ref), "image index has an entry without a digest")
        for m in entries:
            platform = m.get("platform") or {}
            if platform.get("os") == want_os and platform.get("architecture") == want_arch:
                return m["digest"]
        # Bundle images are platform independent; any entry will do
        return entries[0]["digest"]


def _extract_layer(data: bytes, dest: Path) -> None:
    """Unpack one layer on top of ``dest``, applying its whiteouts first."""
    root = dest.resolve()
    try:
        tar = tarfile.open(fileobj=io.BytesIO(data), mode="r:*")
    except tarfile.TarError as e:
        raise RenderError(str(dest), f"layer is not a tar archive: {e}") from e
    with tar:
        members: list[tuple[PurePosixPath, tarfile.TarInfo]] = []
        for member in tar.getmembers():
            name = PurePosixPath(member.name)
            if name.is_absolute() or ".." in name.parts:
                logger.warning("Skipping unsafe layer path %s", member.name)
                continue
            if name.name.startswith(WHITEOUT_PREFIX):
                _apply_whiteout(root, name)
                continue
            if member.isfile() or member.isdir():
                members.append((name, member))
        for name, member in members:
            target = root / name
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            src = tar.extractfile(member)
            if src is None:
                continue
            with src, open(target, "wb") as out:
                out.write(src.read())


def _apply_whiteout(root: Path, name: PurePosixPath) -> None:
    # Whiteouts hide paths contributed by lower layers
    parent = root / name.parent
    if name.name == OPAQUE_WHITEOUT:
        if parent.is_dir():
            for child in parent.iterdir():
                _remove_path(child)
        return
    hidden = name.name[len(WHITEOUT_PREFIX):]
    if hidden:
        _remove_path(parent / hidden)


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


class RegistryBundleRenderer:
    """Render local bundle directories directly and pull everything else."""

    def __init__(
        self,
        client: RegistryClient | None = None,
        directory_renderer: DirectoryBundleRenderer | None = None,
    ):
        self.client = client or RegistryClient()
        self.directory_renderer = directory_renderer or DirectoryBundleRenderer()

    @property
    def channel_entries(self):
        return self.directory_renderer.channel_entries

    def render(self, refs: Iterable[str]) -> DeclarativeConfig:
        cfg = DeclarativeConfig()
        for ref in refs:
            if self.directory_renderer.can_render(ref):
                cfg = cfg.merge(self.directory_renderer.render([ref]))
                continue
            try:
                image = ImageReference.parse(ref)
            except ValueError as e:
                raise RenderError(ref, str(e)) from e
            with tempfile.TemporaryDirectory(prefix="fbc-bundle-") as tmp:
                unpacked = self.client.pull(image, Path(tmp))
                bundle = self.directory_renderer.render_directory(unpacked, image=ref, ref=ref)
            cfg = cfg.merge(DeclarativeConfig(bundles=[bundle]))
        return cfg


__all__ = ["RegistryConfig", "RegistryClient", "RegistryBundleRenderer"]
