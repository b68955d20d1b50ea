from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

PACKAGED_STATIC_DIR = Path(__file__).resolve().parent / "static"
DEFAULT_EXPORT_DIR = "exports"


@dataclass
class DeskwebConfig:
    root: Path
    static_dir: Path
    store_source: str
    export_dir: Path
