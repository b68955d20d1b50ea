from __future__ import annotations

from typing import Any, Callable, Optional, Protocol
from urllib.parse import unquote, urlparse

from researchdesk.export import export_thread, save_export
from researchdesk.render.html import render_export_html
from researchdesk.store import ResearchStore, summarize_thread
from researchdesk.versioning import VERSION

from .utils import safe_rel as _safe_rel

NOTHING_TO_EXPORT = "nothing_to_export"


class HandlerLike(Protocol):
    path: str

    def _cfg(self): ...

    def _store(self) -> ResearchStore: ...

    def _send_json(self, payload: Any, status: int = 200) -> None: ...

    def _send_bytes(self, data: bytes, content_type: str, status: int = 200) -> None: ...

    def _send_download(self, data: bytes, filename: str, content_type: str) -> None: ...


def _split_thread_path(path: str) -> tuple[Optional[str], str]:
    """Split ``/api/threads/<id>[/<action>]`` into ``(thread_id, action)``."""
    rest = path[len("/api/threads/") :].strip("/")
    if not rest:
        return None, ""
    thread_raw, _, action = rest.partition("/")
    return unquote(thread_raw), action


def _thread_summary(handler: HandlerLike, thread_id: str) -> Optional[dict[str, Any]]:
    try:
        return summarize_thread(handler._store(), thread_id)
    except ValueError as exc:
        handler._send_json({"error": str(exc)}, status=404)
        return None


def handle_api_get(handler: HandlerLike) -> None:
    parsed = urlparse(handler.path)
    path = parsed.path
    if path == "/api/health":
        handler._send_json({"status": "ok"})
        return
    if path == "/api/info":
        cfg = handler._cfg()
        store = handler._store()
        handler._send_json(
            {
                "version": VERSION,
                "store_source": store.source or cfg.store_source,
                "thread_count": len(store.thread_ids()),
                "export_dir": _safe_rel(cfg.export_dir, cfg.root),
            }
        )
        return
    if path == "/api/threads":
        store = handler._store()
        handler._send_json([summarize_thread(store, thread_id) for thread_id in store.thread_ids()])
        return
    if path.startswith("/api/threads/"):
        thread_id, action = _split_thread_path(path)
        if not thread_id:
            handler._send_json({"error": "thread id is required"}, status=400)
            return
        if action == "":
            summary = _thread_summary(handler, thread_id)
            if summary is not None:
                handler._send_json(summary)
            return
        if action in {"export", "preview"}:
            try:
                artifact = export_thread(handler._store(), thread_id)
            except ValueError as exc:
                handler._send_json({"error": str(exc)}, status=404)
                return
            if artifact is None:
                handler._send_json({"error": NOTHING_TO_EXPORT}, status=404)
                return
            if action == "export":
                handler._send_download(artifact.data, artifact.filename, artifact.content_type)
            else:
                handler._send_json({"filename": artifact.filename, "html": render_export_html(artifact)})
            return
    handler._send_json({"error": "unknown_endpoint"}, status=404)


def handle_api_post(
    handler: HandlerLike,
    *,
    reload_store: Callable[[], ResearchStore],
) -> None:
    cfg = handler._cfg()
    path = urlparse(handler.path).path
    try:
        if path == "/api/store/reload":
            store = reload_store()
            handler._send_json({"store_source": store.source, "thread_count": len(store.thread_ids())})
            return
        if path.startswith("/api/threads/"):
            thread_id, action = _split_thread_path(path)
            if thread_id and action == "export":
                try:
                    artifact = export_thread(handler._store(), thread_id)
                except ValueError as exc:
                    handler._send_json({"saved": False, "error": str(exc)}, status=404)
                    return
                if artifact is None:
                    handler._send_json({"saved": False, "error": NOTHING_TO_EXPORT}, status=404)
                    return
                target = save_export(artifact, cfg.export_dir)
                assert target is not None
                handler._send_json(
                    {
                        "saved": True,
                        "filename": target.name,
                        "path": _safe_rel(target, cfg.root),
                        "size": target.stat().st_size,
                    }
                )
                return
    except ValueError as exc:
        handler._send_json({"error": str(exc)}, status=400)
        return
    handler._send_json({"error": "unknown_endpoint"}, status=404)
