"""attachkeeper - per-note attachment folders with references kept intact."""

from attachkeeper.version import get_version

__version__ = get_version()

__all__ = ["__version__"]
