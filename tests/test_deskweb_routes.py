from __future__ import annotations

from pathlib import Path

from deskweb.config import DeskwebConfig
from deskweb.routes import handle_api_get, handle_api_post
from deskweb.utils import content_disposition
from researchdesk.store import ResearchStore, store_from_payload


def _store() -> ResearchStore:
    return store_from_payload(
        {
            "threads": {"t1": ["r1", "r2"], "idle": ["r3"]},
            "research_report_ids": {"r1": "m1", "r2": "m2", "r3": "m3"},
            "messages": {
                "m1": {"content": "## 要点总结\nS\n\n## 关键引用\nR"},
                "m2": {"content": "Body"},
                "m3": {"content": "still writing", "is_streaming": True},
            },
        },
        source="memory",
    )


class DummyHandler:
    def __init__(self, cfg: DeskwebConfig, path: str, store: ResearchStore) -> None:
        self._cfg_obj = cfg
        self._store_obj = store
        self.path = path
        self.json_response: tuple[int, object] | None = None
        self.bytes_response: tuple[int, bytes, str] | None = None
        self.download: tuple[bytes, str, str] | None = None

    def _cfg(self) -> DeskwebConfig:
        return self._cfg_obj

    def _store(self) -> ResearchStore:
        return self._store_obj

    def _send_json(self, payload: object, status: int = 200) -> None:
        self.json_response = (status, payload)

    def _send_bytes(self, data: bytes, content_type: str, status: int = 200) -> None:
        self.bytes_response = (status, data, content_type)

    def _send_download(self, data: bytes, filename: str, content_type: str) -> None:
        self.download = (data, filename, content_type)


def make_cfg(tmp_path: Path) -> DeskwebConfig:
    static_dir = tmp_path / "site" / "deskweb"
    static_dir.mkdir(parents=True, exist_ok=True)
    return DeskwebConfig(
        root=tmp_path,
        static_dir=static_dir,
        store_source="memory",
        export_dir=tmp_path / "exports",
    )


def test_handle_api_get_health(tmp_path: Path) -> None:
    handler = DummyHandler(make_cfg(tmp_path), "/api/health", _store())
    handle_api_get(handler)
    assert handler.json_response == (200, {"status": "ok"})


def test_handle_api_get_info(tmp_path: Path) -> None:
    handler = DummyHandler(make_cfg(tmp_path), "/api/info", _store())
    handle_api_get(handler)
    assert handler.json_response is not None
    status, body = handler.json_response
    assert status == 200
    assert isinstance(body, dict)
    assert body["thread_count"] == 2
    assert body["export_dir"] == "exports"


def test_handle_api_get_threads_lists_summaries(tmp_path: Path) -> None:
    handler = DummyHandler(make_cfg(tmp_path), "/api/threads", _store())
    handle_api_get(handler)
    assert handler.json_response is not None
    status, body = handler.json_response
    assert status == 200
    assert [item["thread_id"] for item in body] == ["t1", "idle"]
    assert body[1]["exportable"] == 0


def test_handle_api_get_unknown_thread(tmp_path: Path) -> None:
    handler = DummyHandler(make_cfg(tmp_path), "/api/threads/missing", _store())
    handle_api_get(handler)
    assert handler.json_response is not None
    assert handler.json_response[0] == 404


def test_handle_api_get_export_sends_markdown_download(tmp_path: Path) -> None:
    handler = DummyHandler(make_cfg(tmp_path), "/api/threads/t1/export", _store())
    handle_api_get(handler)
    assert handler.download is not None
    data, filename, content_type = handler.download
    assert data.decode("utf-8") == "## 要点总结\nS\n\nBody\n\n## 关键引用\nR"
    assert filename.startswith("research-reports-") and filename.endswith(".md")
    assert content_type == "text/markdown; charset=utf-8"


def test_handle_api_get_export_nothing_to_export(tmp_path: Path) -> None:
    handler = DummyHandler(make_cfg(tmp_path), "/api/threads/idle/export", _store())
    handle_api_get(handler)
    assert handler.download is None
    assert handler.json_response == (404, {"error": "nothing_to_export"})


def test_handle_api_get_preview_returns_html(tmp_path: Path) -> None:
    handler = DummyHandler(make_cfg(tmp_path), "/api/threads/t1/preview", _store())
    handle_api_get(handler)
    assert handler.json_response is not None
    status, body = handler.json_response
    assert status == 200
    assert "<h2>要点总结</h2>" in body["html"]


def test_handle_api_get_unknown_endpoint(tmp_path: Path) -> None:
    handler = DummyHandler(make_cfg(tmp_path), "/api/nope", _store())
    handle_api_get(handler)
    assert handler.json_response == (404, {"error": "unknown_endpoint"})


def test_handle_api_post_export_saves_file(tmp_path: Path) -> None:
    cfg = make_cfg(tmp_path)
    handler = DummyHandler(cfg, "/api/threads/t1/export", _store())
    handle_api_post(handler, reload_store=_store)
    assert handler.json_response is not None
    status, body = handler.json_response
    assert status == 200
    assert body["saved"] is True
    saved = tmp_path / body["path"]
    assert saved.read_text(encoding="utf-8").startswith("## 要点总结")


def test_handle_api_post_export_nothing_creates_no_file(tmp_path: Path) -> None:
    cfg = make_cfg(tmp_path)
    handler = DummyHandler(cfg, "/api/threads/idle/export", _store())
    handle_api_post(handler, reload_store=_store)
    assert handler.json_response == (404, {"saved": False, "error": "nothing_to_export"})
    assert not cfg.export_dir.exists()


def test_handle_api_post_unknown_thread_is_not_found(tmp_path: Path) -> None:
    handler = DummyHandler(make_cfg(tmp_path), "/api/threads/missing/export", _store())
    handle_api_post(handler, reload_store=_store)
    assert handler.json_response is not None
    assert handler.json_response[0] == 404
    assert handler.json_response[1]["saved"] is False
    assert not (tmp_path / "exports").exists()


def test_handle_api_post_reload_store(tmp_path: Path) -> None:
    calls: list[int] = []

    def reload() -> ResearchStore:
        calls.append(1)
        return _store()

    handler = DummyHandler(make_cfg(tmp_path), "/api/store/reload", _store())
    handle_api_post(handler, reload_store=reload)
    assert calls == [1]
    assert handler.json_response == (200, {"store_source": "memory", "thread_count": 2})


def test_content_disposition_keeps_ascii_fallback() -> None:
    header = content_disposition("research-reports-2026-01-02_03-04-05.md")
    assert header.startswith('attachment; filename="research-reports-2026-01-02_03-04-05.md"')
