"""Researchdesk: research report store, assembler and markdown export."""

from __future__ import annotations

from .versioning import VERSION as __version__

__all__ = ["ReportDocument", "assemble_reports", "export_thread", "load_store", "__version__"]


def __getattr__(name: str):
    if name == "ReportDocument":
        from .models import ReportDocument

        return ReportDocument
    if name == "assemble_reports":
        from .assembler import assemble_reports

        return assemble_reports
    if name == "export_thread":
        from .export import export_thread

        return export_thread
    if name == "load_store":
        from .store import load_store

        return load_store
    raise AttributeError(f"module 'researchdesk' has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(__all__)
