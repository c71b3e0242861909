"""Run context for assembling a minimal catalog.

A `CatalogContext` is built once per run and never mutated. It can come from
the literal defaults (:func:`default_context`), a YAML config file, or either
of those with ``FBC_*`` environment overrides applied.

Example config file:
  bundle_image: quay.io/rashmigottipati/api-operator:1.0.1
  package: api-operator
  default_channel: foo
  channel_name: foo
  channel_entries:
    - name: api-operator.v1.0.1
  description: "@README.md"
"""

from __future__ import annotations

import io
import os
from pathlib import Path
from typing import Any, Literal, TextIO

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .field_types import CHANNEL_SCHEMA, ChannelName, ImageRef, PackageName
from .models import ChannelEntry
from .paths import DEFAULT_DIRNAME, DEFAULT_FILENAME, OutputPaths

DEFAULT_BUNDLE_IMAGE = "quay.io/rashmigottipati/api-operator:1.0.1"
DEFAULT_PACKAGE = "api-operator"
DEFAULT_CHANNEL = "foo"
DEFAULT_CHANNEL_ENTRY = "api-operator.v1.0.1"
DEFAULT_DESCRIPTION = "foo"

# Environment variable -> context field
ENV_OVERRIDES = {
    "FBC_BUNDLE_IMAGE": "bundle_image",
    "FBC_PACKAGE": "package",
    "FBC_DEFAULT_CHANNEL": "default_channel",
    "FBC_CHANNEL_NAME": "channel_name",
    "FBC_OUTPUT_DIR": "fbc_dir_context",
    "FBC_FILENAME": "fbc_filename",
    "FBC_DESCRIPTION": "description",
    "FBC_ICON": "icon",
    "FBC_FORMAT": "output_format",
}

OutputFormat = Literal["json", "yaml"]


class CatalogContext(BaseModel):
    """Literal parameters of one catalog assembly run (immutable)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    bundle_image: ImageRef
    package: PackageName
    default_channel: ChannelName
    fbc_dir_context: str = DEFAULT_DIRNAME
    fbc_filename: str = Field(DEFAULT_FILENAME, min_length=1)
    base_dir: Path = Field(default_factory=Path.cwd)
    channel_schema: Literal["olm.channel"] = CHANNEL_SCHEMA
    channel_name: ChannelName
    channel_entries: tuple[ChannelEntry, ...] = ()
    description: str = ""
    icon: Path | None = None
    output_format: OutputFormat = "json"

    @field_validator("channel_entries", mode="before")
    @classmethod
    def _coerce_entries(cls, v: Any) -> Any:
        # Accept bare bundle names alongside full entry mappings
        if isinstance(v, list | tuple):
            return tuple({"name": e} if isinstance(e, str) else e for e in v)
        return v

    @model_validator(mode="after")
    def _unique_entries(self) -> CatalogContext:
        seen: set[str] = set()
        for entry in self.channel_entries:
            if entry.name in seen:
                raise ValueError(f"duplicate channel entry {entry.name!r}")
            seen.add(entry.name)
        return self

    # Derived paths -------------------------------------------------------
    @property
    def output_paths(self) -> OutputPaths:
        return OutputPaths(self.fbc_dir_context, self.fbc_filename, base=self.base_dir)

    @property
    def fbc_path(self) -> Path:
        """Absolute output directory."""
        return self.output_paths.directory_path

    @property
    def output_file(self) -> Path:
        return self.output_paths.file_path

    # Readers -------------------------------------------------------------
    def description_reader(self) -> TextIO:
        """Return a text stream over the package description.

        A description of the form ``@path`` is read from that file (relative
        paths resolve against `base_dir`); anything else is literal text.
        """
        if self.description.startswith("@"):
            path = self._resolve(self.description[1:])
            return io.StringIO(path.read_text(encoding="utf-8"))
        return io.StringIO(self.description)

    def icon_reader(self) -> io.BytesIO | None:
        if self.icon is None:
            return None
        return io.BytesIO(self._resolve(self.icon).read_bytes())

    def _resolve(self, value: str | Path) -> Path:
        p = Path(value).expanduser()
        return p if p.is_absolute() else self.base_dir / p

    # Construction --------------------------------------------------------
    @classmethod
    def from_yaml(cls, path: str | Path, **overrides: Any) -> CatalogContext:
        """Load a context from a YAML mapping; relative paths anchor at its directory."""
        path = Path(path)
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: config must be a mapping, got {type(data).__name__}")
        data.setdefault("base_dir", path.parent.resolve())
        data.update(overrides)
        return cls.model_validate(data)

    def with_env(self, environ: dict[str, str] | None = None) -> CatalogContext:
        """Return a copy with ``FBC_*`` environment overrides applied."""
        environ = os.environ if environ is None else environ
        updates = {
            field: environ[var]
            for var, field in ENV_OVERRIDES.items()
            if environ.get(var)
        }
        if not updates:
            return self
        return self.replace(**updates)

    def replace(self, **updates: Any) -> CatalogContext:
        """Return a validated copy with ``updates`` applied."""
        data = self.model_dump()
        data.update(updates)
        return type(self).model_validate(data)


def default_context(cwd: Path | None = None) -> CatalogContext:
    """Return the literal context of a stock run."""
    return CatalogContext(
        bundle_image=DEFAULT_BUNDLE_IMAGE,
        package=DEFAULT_PACKAGE,
        default_channel=DEFAULT_CHANNEL,
        fbc_dir_context=DEFAULT_DIRNAME,
        base_dir=Path.cwd() if cwd is None else Path(cwd),
        channel_schema=CHANNEL_SCHEMA,
        channel_name=DEFAULT_CHANNEL,
        channel_entries=(ChannelEntry(name=DEFAULT_CHANNEL_ENTRY),),
        description=DEFAULT_DESCRIPTION,
    )


__all__ = ["CatalogContext", "default_context", "ENV_OVERRIDES"]
