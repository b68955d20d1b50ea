"""Merge a thread's research reports into one markdown document.

The outline report (sequence index 1) anchors the layout: its summary block
is kept in place, every supplementary report is spliced in right after it,
and the references block plus whatever follows it in the outline closes the
document. Outlines that lack either heading are emitted unchanged, followed
by the supplements.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .models import ReportDocument

SUMMARY_MARKER = "## 要点总结"
REFERENCES_MARKER = "## 关键引用"
SECTION_BREAK = "\n\n"


def extract_section(content: str, marker: str) -> Optional[tuple[int, int]]:
    """Return the ``(start, end)`` span of the block opened by ``marker``.

    The block runs to the first blank line after the marker, blank line
    included, or to the end of ``content``.
    """
    start = content.find(marker)
    if start == -1:
        return None
    brk = content.find(SECTION_BREAK, start)
    end = brk + len(SECTION_BREAK) if brk != -1 else len(content)
    return start, end


def split_reports(
    reports: Iterable[ReportDocument],
) -> tuple[Optional[ReportDocument], list[ReportDocument]]:
    outline: Optional[ReportDocument] = None
    supplements: list[ReportDocument] = []
    for report in reports:
        if report.is_outline:
            if outline is None:
                outline = report
            continue
        supplements.append(report)
    supplements.sort(key=lambda item: item.sequence_index)
    return outline, supplements


def _join_supplements(supplements: Sequence[ReportDocument]) -> str:
    return "".join(report.content + SECTION_BREAK for report in supplements)


def assemble_reports(reports: Iterable[ReportDocument]) -> str:
    outline, supplements = split_reports(reports)
    if outline is None:
        return _join_supplements(supplements)

    content = outline.content
    summary = extract_section(content, SUMMARY_MARKER)
    references = extract_section(content, REFERENCES_MARKER)
    if summary is None or references is None:
        return content + SECTION_BREAK + _join_supplements(supplements)

    summary_start, summary_end = summary
    ref_start, ref_end = references
    # Marker order is trusted as produced by the outline writer.
    parts = [
        content[:summary_start],
        content[summary_start:summary_end],
        _join_supplements(supplements),
        content[ref_start:ref_end],
        content[ref_end:],
    ]
    return "".join(parts)
