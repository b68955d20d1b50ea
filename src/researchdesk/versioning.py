"""Version of the researchdesk distribution.

Installed builds answer from package metadata. A source checkout that was
never installed reads the ``[project]`` table of the repository's own
pyproject.toml (two levels above this package in the src layout).
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as package_version
from pathlib import Path
from typing import Optional

DISTRIBUTION = "researchdesk"
UNKNOWN_VERSION = "0+unknown"
CHECKOUT_PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def project_version(pyproject: Path) -> Optional[str]:
    try:
        lines = pyproject.read_text(encoding="utf-8").splitlines()
    except OSError:
        return None
    table = ""
    fields: dict[str, str] = {}
    for line in lines:
        stripped = line.strip()
        if stripped.startswith("["):
            table = stripped
            continue
        if table != "[project]" or "=" not in stripped:
            continue
        key, _, value = stripped.partition("=")
        fields[key.strip()] = value.strip().strip("\"'")
    if fields.get("name") != DISTRIBUTION:
        return None
    return fields.get("version") or None


def resolve_version(pyproject: Path = CHECKOUT_PYPROJECT) -> str:
    try:
        return package_version(DISTRIBUTION)
    except PackageNotFoundError:
        return project_version(pyproject) or UNKNOWN_VERSION


VERSION = resolve_version()
