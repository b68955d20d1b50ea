from __future__ import annotations

import html as html_lib
from typing import Optional

import markdown

from ..models import ExportArtifact

_PREVIEW_CSS = """
    :root {
      --ink: #1d232b;
      --muted: #5b6573;
      --rule: #dde2e8;
      --accent: #2a6f97;
    }
    body {
      margin: 0;
      background: #f7f8fa;
      color: var(--ink);
      font-family: "Noto Sans SC", "Segoe UI", system-ui, sans-serif;
      line-height: 1.65;
    }
    main {
      max-width: 880px;
      margin: 0 auto;
      padding: 48px 32px 96px;
      background: #fff;
    }
    h1, h2, h3 { line-height: 1.3; }
    h2 { border-bottom: 1px solid var(--rule); padding-bottom: 0.3em; }
    a { color: var(--accent); }
    pre { background: #f0f2f5; padding: 12px; overflow-x: auto; }
    table { border-collapse: collapse; }
    th, td { border: 1px solid var(--rule); padding: 4px 8px; }
    .report-meta { color: var(--muted); font-size: 0.9em; }
"""


def markdown_to_html(markdown_text: str) -> str:
    return markdown.markdown(markdown_text, extensions=["extra", "tables", "fenced_code"])


def wrap_html(title: str, body_html: str, subtitle: Optional[str] = None) -> str:
    safe_title = html_lib.escape(title)
    meta = ""
    if subtitle:
        meta = f"  <p class=\"report-meta\">{html_lib.escape(subtitle)}</p>\n"
    return (
        "<!doctype html>\n"
        "<html lang=\"zh\">\n"
        "<head>\n"
        "  <meta charset=\"utf-8\" />\n"
        "  <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />\n"
        f"  <title>{safe_title}</title>\n"
        f"  <style>{_PREVIEW_CSS}  </style>\n"
        "</head>\n"
        "<body>\n"
        "<main>\n"
        f"{meta}"
        f"{body_html}\n"
        "</main>\n"
        "</body>\n"
        "</html>\n"
    )


def render_export_html(artifact: ExportArtifact) -> str:
    title = artifact.filename.rsplit(".", 1)[0]
    return wrap_html(title, markdown_to_html(artifact.content), subtitle=artifact.filename)
