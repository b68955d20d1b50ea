from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest
import requests

from deskweb.app import DeskwebHTTPServer, build_parser, main
from deskweb.config import PACKAGED_STATIC_DIR, DeskwebConfig
from researchdesk.store import load_store

EXAMPLE_STORE = Path(__file__).resolve().parents[1] / "examples" / "store.json"


def test_build_parser_defaults(monkeypatch) -> None:
    monkeypatch.delenv("RESEARCHDESK_STORE", raising=False)
    monkeypatch.delenv("RESEARCHDESK_EXPORT_DIR", raising=False)
    args = build_parser().parse_args([])
    assert args.port == 8766
    assert args.store is None
    assert args.export_dir == "exports"
    assert args.open_browser is True
    assert args.static_dir is None


def test_main_requires_store(monkeypatch) -> None:
    monkeypatch.delenv("RESEARCHDESK_STORE", raising=False)
    with pytest.raises(SystemExit, match="Missing --store"):
        main(["--no-open-browser"])


def test_server_serves_download_and_reloads(tmp_path: Path) -> None:
    store_path = tmp_path / "store.json"
    store_path.write_text(EXAMPLE_STORE.read_text(encoding="utf-8"), encoding="utf-8")
    cfg = DeskwebConfig(
        root=tmp_path,
        static_dir=PACKAGED_STATIC_DIR,
        store_source=str(store_path),
        export_dir=tmp_path / "exports",
    )
    server = DeskwebHTTPServer(("127.0.0.1", 0), cfg, load_store(cfg.store_source))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    base = f"http://127.0.0.1:{server.server_address[1]}"
    try:
        resp = requests.get(f"{base}/", timeout=5)
        assert resp.status_code == 200
        assert resp.headers["Content-Type"].startswith("text/html")
        assert "/api/threads" in resp.text

        resp = requests.get(f"{base}/api/threads/demo/export", timeout=5)
        assert resp.status_code == 200
        assert resp.headers["Content-Type"] == "text/markdown; charset=utf-8"
        assert "attachment" in resp.headers["Content-Disposition"]
        text = resp.content.decode("utf-8")
        assert text.index("## 概述") < text.index("## 分析") < text.index("## 关键引用")
        assert "生成中" not in text

        payload = json.loads(store_path.read_text(encoding="utf-8"))
        payload["threads"]["extra"] = []
        store_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        resp = requests.post(f"{base}/api/store/reload", timeout=5)
        assert resp.json()["thread_count"] == 2
    finally:
        server.shutdown()
        server.server_close()
