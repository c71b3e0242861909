"""Path resolution for catalog output.

The :class:`OutputPaths` value object normalizes two user inputs into two
resolved outputs:

Inputs
======
* ``directory``: output directory (``None`` -> ``<base>/testdata``)
* ``filename``: catalog file name, or an explicit file path

Outputs
=======
* ``directory_path``: absolute directory the catalog is written into
* ``file_path``: absolute path of the catalog file (always includes filename)

Rules
=====
* A relative ``directory`` is resolved against ``base`` (default: cwd).
* If ``filename`` contains a path separator it is treated as a path relative
  to ``directory_path`` (absolute paths are used as-is) and ``directory_path``
  is updated to its parent.
* No filesystem changes happen on construction; call :meth:`ensure_dir`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_DIRNAME = "testdata"
DEFAULT_FILENAME = "testFBC"


@dataclass
class OutputPaths:
    """Resolve the directory and file a catalog is written to.

    Parameters
    ----------
    directory : Path | str | None
        Output directory. ``None`` -> ``<base>/testdata``.
    filename : str
        File name (or relative/absolute file path) of the catalog.
    base : Path | None
        Anchor for relative directories; defaults to the working directory.
    """

    directory: Path | str | None = None
    filename: str = DEFAULT_FILENAME
    base: Path | None = None

    directory_path: Path = field(init=False)
    file_path: Path = field(init=False)

    def __post_init__(self) -> None:
        base = Path.cwd() if self.base is None else Path(self.base)
        self.directory_path = self._resolve_dir(self.directory, base)
        self.file_path = self._resolve_file(self.filename)

    def ensure_dir(self) -> OutputPaths:
        """Create `directory_path` if missing."""
        self.directory_path.mkdir(parents=True, exist_ok=True)
        return self

    @staticmethod
    def _resolve_dir(value: Path | str | None, base: Path) -> Path:
        if value is None or (isinstance(value, str) and value.strip() == ""):
            return (base / DEFAULT_DIRNAME).resolve()
        p = Path(value).expanduser()
        if not p.is_absolute():
            p = base / p
        return p.resolve()

    def _resolve_file(self, filename: str) -> Path:
        name = filename.strip() or DEFAULT_FILENAME
        p = Path(name).expanduser()
        if p.is_absolute():
            self.directory_path = p.parent.resolve()
            return p.resolve()
        if len(p.parts) > 1:
            resolved = (self.directory_path / p).resolve()
            self.directory_path = resolved.parent
            return resolved
        return self.directory_path / name


__all__ = ["OutputPaths", "DEFAULT_DIRNAME", "DEFAULT_FILENAME"]
