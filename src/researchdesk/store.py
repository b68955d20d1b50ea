"""Read-only snapshot of the chat application's research store.

The front-end keeps three maps: thread -> ordered research ids, research id
-> report message id, and message id -> message. A snapshot of those maps is
loaded from a JSON file or fetched from a URL and queried by the export
trigger.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import requests

from .models import ReportDocument, ReportMessage
from .utils import expand_env_reference

DEFAULT_THREAD_ID = "default"
FETCH_TIMEOUT = 10


@dataclass(frozen=True)
class ResearchStore:
    threads: dict[str, list[str]] = field(default_factory=dict)
    research_report_ids: dict[str, str] = field(default_factory=dict)
    messages: dict[str, ReportMessage] = field(default_factory=dict)
    source: str = ""

    def thread_ids(self) -> list[str]:
        return list(self.threads)

    def research_ids(self, thread_id: str) -> list[str]:
        if thread_id not in self.threads:
            raise ValueError(f"Thread not found: {thread_id}")
        return list(self.threads[thread_id])

    def report_for(self, research_id: str) -> Optional[ReportMessage]:
        report_id = self.research_report_ids.get(research_id)
        if not report_id:
            return None
        return self.messages.get(report_id)

    def has_report(self, research_id: str) -> bool:
        return research_id in self.research_report_ids

    def report_streaming(self, research_id: str) -> bool:
        report = self.report_for(research_id)
        return bool(report and report.is_streaming)


def _parse_message(raw: Any, message_id: str) -> ReportMessage:
    if isinstance(raw, str):
        return ReportMessage(id=message_id, content=raw)
    if not isinstance(raw, dict):
        raise ValueError(f"Message {message_id} must be an object")
    content = raw.get("content", "")
    if not isinstance(content, str):
        raise ValueError(f"Message {message_id} content must be a string")
    return ReportMessage(
        id=message_id,
        content=content,
        is_streaming=bool(raw.get("is_streaming", raw.get("isStreaming", False))),
    )


def _parse_messages(raw: Any) -> dict[str, ReportMessage]:
    messages: dict[str, ReportMessage] = {}
    if raw is None:
        return messages
    if isinstance(raw, dict):
        for message_id, entry in raw.items():
            messages[str(message_id)] = _parse_message(entry, str(message_id))
        return messages
    if isinstance(raw, list):
        for entry in raw:
            if not isinstance(entry, dict) or not entry.get("id"):
                raise ValueError("Message entries must be objects with an id")
            message_id = str(entry["id"])
            messages[message_id] = _parse_message(entry, message_id)
        return messages
    raise ValueError("messages must be an object or an array")


def _parse_id_list(raw: Any, label: str) -> list[str]:
    if not isinstance(raw, list):
        raise ValueError(f"{label} must be an array of research ids")
    return [str(item) for item in raw]


def store_from_payload(payload: Any, source: str = "") -> ResearchStore:
    if not isinstance(payload, dict):
        raise ValueError("Store snapshot must be a JSON object")
    threads: dict[str, list[str]] = {}
    raw_threads = payload.get("threads")
    if raw_threads is not None:
        if not isinstance(raw_threads, dict):
            raise ValueError("threads must be an object")
        for thread_id, ids in raw_threads.items():
            threads[str(thread_id)] = _parse_id_list(ids, f"threads.{thread_id}")
    elif "research_ids" in payload:
        threads[DEFAULT_THREAD_ID] = _parse_id_list(payload["research_ids"], "research_ids")

    raw_report_ids = payload.get("research_report_ids") or {}
    if not isinstance(raw_report_ids, dict):
        raise ValueError("research_report_ids must be an object")
    report_ids = {str(k): str(v) for k, v in raw_report_ids.items() if v}

    return ResearchStore(
        threads=threads,
        research_report_ids=report_ids,
        messages=_parse_messages(payload.get("messages")),
        source=source,
    )


def _is_url(source: str) -> bool:
    lowered = source.lower()
    return lowered.startswith("http://") or lowered.startswith("https://")


def _fetch_payload(url: str) -> Any:
    try:
        resp = requests.get(url, headers={"Accept": "application/json"}, timeout=FETCH_TIMEOUT)
    except requests.RequestException as exc:
        raise ValueError(f"Failed to fetch store snapshot: {exc}") from exc
    if resp.status_code != 200:
        raise ValueError(f"Store snapshot request failed ({resp.status_code}): {url}")
    try:
        return resp.json()
    except ValueError as exc:
        raise ValueError(f"Store snapshot is not valid JSON: {url}") from exc


def _read_payload(path: Path) -> Any:
    if not path.exists() or not path.is_file():
        raise ValueError(f"Store snapshot not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Store snapshot is not valid JSON: {path} ({exc})") from exc


def load_store(source: str | Path) -> ResearchStore:
    raw = expand_env_reference(str(source)) or ""
    raw = raw.strip()
    if not raw:
        raise ValueError("Store source is required")
    if _is_url(raw):
        return store_from_payload(_fetch_payload(raw), source=raw)
    path = Path(raw).expanduser()
    return store_from_payload(_read_payload(path), source=str(path))


def collect_reports(store: ResearchStore, thread_id: str) -> list[ReportDocument]:
    """Finished reports of a thread, indexed by research position (1-based)."""
    reports: list[ReportDocument] = []
    for index, research_id in enumerate(store.research_ids(thread_id), start=1):
        report = store.report_for(research_id)
        if report is None or report.is_streaming:
            continue
        reports.append(ReportDocument(sequence_index=index, content=report.content, research_id=research_id))
    return reports


def summarize_thread(store: ResearchStore, thread_id: str) -> dict[str, Any]:
    rows: list[dict[str, Any]] = []
    exportable = 0
    for index, research_id in enumerate(store.research_ids(thread_id), start=1):
        report = store.report_for(research_id)
        streaming = bool(report and report.is_streaming)
        if report is not None and not streaming:
            exportable += 1
        rows.append(
            {
                "research_id": research_id,
                "index": index,
                "report_id": store.research_report_ids.get(research_id),
                "has_report": store.has_report(research_id),
                "report_streaming": streaming,
            }
        )
    return {
        "thread_id": thread_id,
        "research_count": len(rows),
        "exportable": exportable,
        "researches": rows,
    }
