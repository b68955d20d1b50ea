from __future__ import annotations

import argparse
import mimetypes
import os
import sys
import threading
import traceback
import webbrowser
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Iterable, Optional

from researchdesk.store import ResearchStore, load_store
from researchdesk.versioning import VERSION as RESEARCHDESK_VERSION

from .config import DEFAULT_EXPORT_DIR, PACKAGED_STATIC_DIR, DeskwebConfig
from .routes import handle_api_get as _dispatch_api_get, handle_api_post as _dispatch_api_post
from .utils import content_disposition, json_bytes as _json_bytes

STORE_ENV = "RESEARCHDESK_STORE"
EXPORT_DIR_ENV = "RESEARCHDESK_EXPORT_DIR"


class DeskwebHandler(BaseHTTPRequestHandler):
    server_version = f"deskweb/{RESEARCHDESK_VERSION}"

    def _cfg(self) -> DeskwebConfig:
        return self.server.cfg  # type: ignore[attr-defined]

    def _store(self) -> ResearchStore:
        return self.server.current_store()  # type: ignore[attr-defined]

    def log_message(self, format: str, *args: Any) -> None:
        sys.stderr.write("[deskweb] " + format % args + "\n")

    def _send_json(self, payload: Any, status: int = 200) -> None:
        data = _json_bytes(payload)
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_bytes(self, data: bytes, content_type: str, status: int = 200) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_download(self, data: bytes, filename: str, content_type: str) -> None:
        self.send_response(HTTPStatus.OK)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Disposition", content_disposition(filename))
        self.send_header("Content-Length", str(len(data)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(data)

    def do_GET(self) -> None:  # noqa: N802
        try:
            if self.path.startswith("/api/"):
                _dispatch_api_get(self)
                return
            self._serve_static()
        except Exception as exc:  # pragma: no cover - safety net for local servers
            tb = traceback.format_exc()
            sys.stderr.write(f"[deskweb] GET error: {exc}\n{tb}\n")
            self.send_error(HTTPStatus.INTERNAL_SERVER_ERROR, str(exc))

    def do_POST(self) -> None:  # noqa: N802
        try:
            if not self.path.startswith("/api/"):
                self.send_error(HTTPStatus.NOT_FOUND, "Unknown endpoint")
                return
            _dispatch_api_post(self, reload_store=self.server.reload_store)  # type: ignore[attr-defined]
        except Exception as exc:  # pragma: no cover - safety net for local servers
            tb = traceback.format_exc()
            sys.stderr.write(f"[deskweb] POST error: {exc}\n{tb}\n")
            self.send_error(HTTPStatus.INTERNAL_SERVER_ERROR, str(exc))

    def _serve_static(self) -> None:
        static_dir = self._cfg().static_dir.resolve()
        rel = self.path.split("?", 1)[0].lstrip("/")
        if not rel:
            rel = "index.html"
        target = (static_dir / rel).resolve()
        try:
            target.relative_to(static_dir)
        except ValueError:
            self.send_error(HTTPStatus.FORBIDDEN, "Invalid path")
            return
        if target.is_dir():
            target = target / "index.html"
        if not target.exists():
            # SPA fallback.
            target = static_dir / "index.html"
        if not target.exists():
            self.send_error(HTTPStatus.NOT_FOUND, "Missing static assets")
            return
        ctype, _ = mimetypes.guess_type(str(target))
        self._send_bytes(target.read_bytes(), (ctype or "text/html") + "; charset=utf-8")


class DeskwebHTTPServer(ThreadingHTTPServer):
    allow_reuse_address = False

    def __init__(self, address: tuple[str, int], cfg: DeskwebConfig, store: ResearchStore) -> None:
        super().__init__(address, DeskwebHandler)
        self.cfg = cfg
        self._store = store
        self._store_lock = threading.Lock()

    def current_store(self) -> ResearchStore:
        with self._store_lock:
            return self._store

    def reload_store(self) -> ResearchStore:
        store = load_store(self.cfg.store_source)
        with self._store_lock:
            self._store = store
        sys.stderr.write(f"[deskweb] Store reloaded: {store.source} ({len(store.thread_ids())} threads)\n")
        return store


class _HelpFormatter(argparse.ArgumentDefaultsHelpFormatter, argparse.RawTextHelpFormatter):
    """Preserve example formatting while still showing defaults."""


def build_parser() -> argparse.ArgumentParser:
    examples = """Examples:
  # Serve a local store snapshot.
  deskweb --store ./store.json --port 8766
  # Pull the snapshot from the chat backend and keep exports under ./out.
  deskweb --store http://127.0.0.1:8000/api/store --export-dir out
  # Headless server: do not open a browser.
  deskweb --store ./store.json --no-open-browser
  # Module entrypoint.
  python -m deskweb.app --store ./store.json
"""
    ap = argparse.ArgumentParser(
        prog="deskweb",
        description="Deskweb studio: browse research threads and download merged report exports.",
        epilog=examples,
        formatter_class=_HelpFormatter,
    )
    ap.add_argument("--host", default="127.0.0.1", help="Host to bind.")
    ap.add_argument("--port", type=int, default=8766, help="Port to bind.")
    ap.add_argument("--root", default=".", help="Workspace root; static and export dirs resolve under it.")
    ap.add_argument(
        "--store",
        default=os.getenv(STORE_ENV),
        help=f"Store snapshot path or http(s) URL (default: ${STORE_ENV}).",
    )
    ap.add_argument(
        "--export-dir",
        default=os.getenv(EXPORT_DIR_ENV) or DEFAULT_EXPORT_DIR,
        help="Directory under --root where saved exports are written.",
    )
    ap.add_argument(
        "--static-dir",
        help="Static UI directory under --root (default: the page bundled with deskweb).",
    )
    ap.add_argument(
        "--open-browser",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Open the UI in a browser on startup.",
    )
    return ap


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if not args.store:
        raise SystemExit(f"Missing --store (or set {STORE_ENV}).")
    root = Path(args.root).resolve()
    cfg = DeskwebConfig(
        root=root,
        static_dir=(root / args.static_dir).resolve() if args.static_dir else PACKAGED_STATIC_DIR,
        store_source=args.store,
        export_dir=(root / args.export_dir).resolve(),
    )
    try:
        store = load_store(cfg.store_source)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    server = DeskwebHTTPServer((args.host, args.port), cfg, store)
    url = f"http://{args.host}:{args.port}/"
    print(f"[deskweb] Serving {url}")
    print(f"[deskweb] Store: {store.source} ({len(store.thread_ids())} threads)")
    print(f"[deskweb] Exports: {cfg.export_dir}")
    if not cfg.static_dir.exists():
        print(f"[deskweb] Static dir missing: {cfg.static_dir}", file=sys.stderr)
    if args.open_browser:
        webbrowser.open(url)

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\n[deskweb] Shutting down.")
    finally:
        server.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
