"""Reading and writing catalog documents on disk."""

from .loader import load_fbc  # noqa: F401
from .writer import write_fbc, write_json, write_yaml  # noqa: F401

__all__ = ["load_fbc", "write_fbc", "write_json", "write_yaml"]
