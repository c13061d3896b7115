"""Version lookup and runtime details shown by ``attachkeeper version`` and ``/api/version``."""

import platform
from importlib.metadata import PackageNotFoundError, version as metadata_version
from pathlib import Path
from typing import Final

import tomllib

PACKAGE_NAME: Final[str] = "attachkeeper"
FALLBACK_VERSION: Final[str] = "0.0.0"


def _checkout_version(pyproject: Path) -> str | None:
    """Version declared in a source checkout's pyproject.toml, if it is ours."""
    try:
        with pyproject.open("rb") as file:
            project = tomllib.load(file).get("project", {})
    except (OSError, tomllib.TOMLDecodeError):
        return None
    if project.get("name") != PACKAGE_NAME:
        return None
    return project.get("version")


def get_version() -> str:
    """Return the attachkeeper version.

    A checkout's pyproject.toml wins over installed metadata so an editable
    install reports the version being worked on.
    """
    checkout = _checkout_version(Path(__file__).resolve().parents[1] / "pyproject.toml")
    if checkout:
        return checkout
    try:
        return metadata_version(PACKAGE_NAME)
    except PackageNotFoundError:
        return FALLBACK_VERSION


def runtime_info() -> dict[str, str]:
    return {
        "Version": get_version(),
        "Python": platform.python_version(),
        "Platform": platform.platform(),
    }
