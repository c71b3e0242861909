"""Exceptions raised while assembling, loading and validating catalogs."""

from __future__ import annotations

from pathlib import Path


class FBCError(Exception):
    """Base class for all file-based catalog errors."""


class RenderError(FBCError):
    """Raised when a bundle reference cannot be rendered."""

    def __init__(self, ref: str, message: str):
        self.ref = ref
        super().__init__(f"render {ref!r}: {message}")


class InitError(FBCError):
    """Raised when a package document cannot be initialised."""


class CatalogAssemblyError(FBCError):
    """Raised when the merged document breaks the one-of-each invariant."""


class LoadError(FBCError):
    """
    Raised when a catalog file cannot be parsed.

    Attributes:
        path: File that failed to load
    """

    def __init__(self, path: Path | str, message: str):
        self.path = Path(path)
        super().__init__(f"{self.path}: {message}")


class FBCValidationError(FBCError):
    """
    Raised when a declarative config fails model validation.

    Attributes:
        issues: Every problem found, one message per issue
    """

    def __init__(self, issues: list[str]):
        self.issues = list(issues)
        parts = [f"invalid catalog ({len(self.issues)} issue(s))"]
        parts.extend(f" - {issue}" for issue in self.issues)
        super().__init__("\n".join(parts))


__all__ = [
    "FBCError",
    "RenderError",
    "InitError",
    "CatalogAssemblyError",
    "LoadError",
    "FBCValidationError",
]
