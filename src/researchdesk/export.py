from __future__ import annotations

import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from .assembler import assemble_reports
from .models import ExportArtifact, ReportDocument
from .store import ResearchStore, collect_reports
from .utils import local_timestamp, unique_path

EXPORT_PREFIX = "research-reports"


def export_filename(now: Optional[datetime] = None) -> str:
    return f"{EXPORT_PREFIX}-{local_timestamp(now)}.md"


def build_export(
    reports: Iterable[ReportDocument],
    now: Optional[datetime] = None,
) -> Optional[ExportArtifact]:
    """Assemble ``reports``; ``None`` means there is nothing to export."""
    content = assemble_reports(reports)
    if not content:
        return None
    return ExportArtifact(filename=export_filename(now), content=content)


def export_thread(
    store: ResearchStore,
    thread_id: str,
    now: Optional[datetime] = None,
) -> Optional[ExportArtifact]:
    return build_export(collect_reports(store, thread_id), now=now)


def save_export(artifact: Optional[ExportArtifact], out_dir: str | Path) -> Optional[Path]:
    """Write ``artifact`` under ``out_dir`` and return the final path.

    No file is created when ``artifact`` is ``None``. The content goes to a
    temporary file first and is moved into place, so a failed write leaves
    neither a partial export nor the temporary file behind.
    """
    if artifact is None:
        return None
    target_dir = Path(out_dir).expanduser()
    target_dir.mkdir(parents=True, exist_ok=True)
    target = unique_path(target_dir / artifact.filename)
    fd, tmp_name = tempfile.mkstemp(prefix=".export-", suffix=".md.tmp", dir=str(target_dir))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(artifact.data)
        os.replace(tmp_path, target)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
    return target
