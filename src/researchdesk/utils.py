from __future__ import annotations

import os
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

_ENV_REF_RE = re.compile(r"^(?:\$\{(?P<braced>[^}]+)\}|\$(?P<bare>\w+)|%(?P<windows>[^%]+)%)$")


def log(message: str, *, prefix: str = "researchdesk") -> None:
    sys.stderr.write(f"[{prefix}] {message}\n")


def expand_env_reference(value: str | None) -> str | None:
    """Resolve a whole-value `$NAME`, `${NAME}` or `%NAME%` reference.

    Anything else, and references to unset or empty variables, come back
    unchanged.
    """
    if not value:
        return value
    match = _ENV_REF_RE.match(value.strip())
    if not match:
        return value
    name = match.group("braced") or match.group("bare") or match.group("windows")
    return os.environ.get(name.strip()) or value


def local_timestamp(now: Optional[datetime] = None) -> str:
    current = now or datetime.now()
    return current.strftime("%Y-%m-%d_%H-%M-%S")


def unique_path(path: Path) -> Path:
    if not path.exists():
        return path
    counter = 1
    while True:
        candidate = path.parent / f"{path.stem}_{counter}{path.suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
