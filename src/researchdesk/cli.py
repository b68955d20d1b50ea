from __future__ import annotations

import argparse
import os
import shutil
import sys
from pathlib import Path
from typing import Iterable, Optional

from .export import export_thread, save_export
from .render.html import render_export_html
from .store import ResearchStore, load_store, summarize_thread
from .utils import log, unique_path
from .versioning import VERSION

STORE_ENV = "RESEARCHDESK_STORE"
EXPORT_DIR_ENV = "RESEARCHDESK_EXPORT_DIR"


class CleanHelpFormatter(argparse.RawDescriptionHelpFormatter):
    def __init__(self, prog: str) -> None:
        width = shutil.get_terminal_size((120, 20)).columns
        super().__init__(prog, width=width, max_help_position=32)


def build_parser() -> argparse.ArgumentParser:
    epilog = (
        "Store source:\n"
        f"  --store accepts a JSON snapshot path or an http(s) URL (default: ${STORE_ENV}).\n\n"
        "Examples:\n"
        "  researchdesk --store ./store.json --list\n"
        "  researchdesk --store ./store.json --thread t-42 --output-dir ./exports\n"
        "  researchdesk --store ./store.json --thread t-42 --stdout > merged.md\n"
        "  researchdesk --store http://127.0.0.1:8000/api/store --thread t-42 --html\n"
        "  python -m researchdesk --store ./store.json --thread t-42\n"
    )
    ap = argparse.ArgumentParser(
        prog="researchdesk",
        description="Researchdesk: merge a thread's research reports into one markdown export.",
        formatter_class=CleanHelpFormatter,
        epilog=epilog,
    )
    ap.add_argument("--version", action="version", version=f"researchdesk {VERSION}")
    ap.add_argument("--store", default=os.getenv(STORE_ENV), help="Store snapshot path or URL.")
    mode = ap.add_mutually_exclusive_group()
    mode.add_argument("--list", action="store_true", help="List threads with research and report counts.")
    mode.add_argument("--thread", help="Thread id to export.")
    ap.add_argument(
        "--output-dir",
        default=os.getenv(EXPORT_DIR_ENV) or ".",
        help=f"Directory for the exported file (default: ${EXPORT_DIR_ENV} or the current directory).",
    )
    ap.add_argument("--stdout", action="store_true", help="Print the merged markdown instead of writing a file.")
    ap.add_argument(
        "--html",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Also write an HTML preview next to the markdown export.",
    )
    ap.add_argument("--quiet", action="store_true", help="Suppress progress lines on stderr.")
    return ap


def format_thread_list(store: ResearchStore) -> str:
    lines: list[str] = []
    for thread_id in store.thread_ids():
        summary = summarize_thread(store, thread_id)
        lines.append(
            f"{thread_id}\tresearches={summary['research_count']}\texportable={summary['exportable']}"
        )
    if not lines:
        return "(no threads)"
    return "\n".join(lines)


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if not args.store:
        raise SystemExit(f"Missing --store (or set {STORE_ENV}).")
    if not args.list and not args.thread:
        raise SystemExit("Pick one of --list or --thread.")
    if args.stdout and args.html:
        raise SystemExit("--html cannot be combined with --stdout.")

    try:
        store = load_store(args.store)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    if args.list:
        print(format_thread_list(store))
        return 0

    try:
        artifact = export_thread(store, args.thread)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    if artifact is None:
        log(f"nothing to export for thread {args.thread}")
        return 1

    if args.stdout:
        sys.stdout.write(artifact.content)
        return 0

    target = save_export(artifact, Path(args.output_dir))
    if not args.quiet:
        log(f"wrote {target}")
    if args.html and target is not None:
        html_path = unique_path(target.with_suffix(".html"))
        html_path.write_text(render_export_html(artifact), encoding="utf-8")
        if not args.quiet:
            log(f"wrote {html_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
