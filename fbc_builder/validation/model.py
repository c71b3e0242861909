"""Convert a declarative config into a package model and validate it.

The declarative config is a flat list of documents; the model groups them so
that relational rules (default channel exists, every bundle is reachable from
a channel, each channel has a single head) can be checked per package.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..models import PROPERTY_BUNDLE_OBJECT, PROPERTY_PACKAGE, Bundle, ChannelEntry, DeclarativeConfig

__all__ = ["ModelChannel", "ModelPackage", "Model", "convert_to_model"]


@dataclass
class ModelChannel:
    name: str
    package: str
    entries: dict[str, ChannelEntry] = field(default_factory=dict)

    def heads(self) -> list[str]:
        """Entries no other entry replaces or skips."""
        incoming: set[str] = set()
        for entry in self.entries.values():
            if entry.replaces:
                incoming.add(entry.replaces)
            incoming.update(entry.skips or [])
        return [name for name in self.entries if name not in incoming]

    def validate(self) -> list[str]:
        where = f"package {self.package!r}, channel {self.name!r}"
        if not self.name:
            return [f"package {self.package!r}: channel name must be set"]
        if not self.entries:
            return [f"{where}: channel must contain at least one bundle"]
        heads = self.heads()
        if not heads:
            return [f"{where}: no channel head found (replaces/skips cycle)"]
        if len(heads) > 1:
            return [f"{where}: multiple channel heads found: {sorted(heads)}"]
        return []


@dataclass
class ModelPackage:
    name: str
    default_channel: str = ""
    channels: dict[str, ModelChannel] = field(default_factory=dict)
    bundles: dict[str, Bundle] = field(default_factory=dict)

    def validate(self) -> list[str]:
        issues: list[str] = []
        if not self.name:
            return ["package name must be set"]
        if not self.channels:
            issues.append(f"package {self.name!r}: package must contain at least one channel")
        if not self.default_channel:
            issues.append(f"package {self.name!r}: default channel must be set")
        elif self.default_channel not in self.channels:
            issues.append(
                f"package {self.name!r}: default channel {self.default_channel!r} not found in channels"
            )
        for ch in self.channels.values():
            issues.extend(ch.validate())
        for bundle in self.bundles.values():
            issues.extend(_validate_bundle(bundle))
        return issues


@dataclass
class Model:
    packages: dict[str, ModelPackage] = field(default_factory=dict)

    def validate(self) -> list[str]:
        issues: list[str] = []
        for pkg in self.packages.values():
            issues.extend(pkg.validate())
        return issues


def _validate_bundle(bundle: Bundle) -> list[str]:
    where = f"package {bundle.package!r}, bundle {bundle.name!r}"
    issues: list[str] = []
    if not bundle.image and not bundle.properties_of(PROPERTY_BUNDLE_OBJECT):
        issues.append(f"{where}: bundle image must be set")
    pkg_props = bundle.properties_of(PROPERTY_PACKAGE)
    if len(pkg_props) != 1:
        issues.append(
            f"{where}: must be exactly one property of type {PROPERTY_PACKAGE!r}, found {len(pkg_props)}"
        )
    else:
        value = pkg_props[0].value if isinstance(pkg_props[0].value, dict) else {}
        declared = value.get("packageName")
        if declared != bundle.package:
            issues.append(
                f"{where}: property {PROPERTY_PACKAGE!r} names package {declared!r}"
            )
    return issues


def convert_to_model(cfg: DeclarativeConfig) -> tuple[Model, list[str]]:
    """Group documents by package; return the model and any relational issues."""
    model = Model()
    issues: list[str] = []

    for p in cfg.packages:
        if p.name in model.packages:
            issues.append(f"duplicate package {p.name!r}")
            continue
        model.packages[p.name] = ModelPackage(name=p.name, default_channel=p.default_channel)

    for c in cfg.channels:
        pkg = model.packages.get(c.package)
        if pkg is None:
            issues.append(f"channel {c.name!r}: unknown package {c.package!r}")
            continue
        if c.name in pkg.channels:
            issues.append(f"package {c.package!r}: duplicate channel {c.name!r}")
            continue
        channel = ModelChannel(name=c.name, package=c.package)
        for entry in c.entries:
            if entry.name in channel.entries:
                issues.append(
                    f"package {c.package!r}, channel {c.name!r}: duplicate entry {entry.name!r}"
                )
                continue
            channel.entries[entry.name] = entry
        pkg.channels[c.name] = channel

    for b in cfg.bundles:
        pkg = model.packages.get(b.package)
        if pkg is None:
            issues.append(f"bundle {b.name!r}: unknown package {b.package!r}")
            continue
        if b.name in pkg.bundles:
            issues.append(f"package {b.package!r}: duplicate bundle {b.name!r}")
            continue
        pkg.bundles[b.name] = b

    for pkg in model.packages.values():
        in_channels: set[str] = set()
        for ch in pkg.channels.values():
            for name in ch.entries:
                in_channels.add(name)
                if name not in pkg.bundles:
                    issues.append(
                        f"package {pkg.name!r}, channel {ch.name!r}: entry {name!r} not found in bundles"
                    )
        for name in pkg.bundles:
            if name not in in_channels:
                issues.append(
                    f"package {pkg.name!r}: bundle {name!r} not found in any channel entries"
                )
    return model, issues
