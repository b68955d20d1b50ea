from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

MARKDOWN_MEDIA_TYPE = "text/markdown"


@dataclass(frozen=True)
class ReportDocument:
    """One finished report; index 1 is the outline, anything above is a supplement."""

    sequence_index: int
    content: str
    research_id: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.sequence_index, bool) or not isinstance(self.sequence_index, int):
            raise ValueError(f"sequence_index must be an integer: {self.sequence_index!r}")
        if self.sequence_index < 1:
            raise ValueError(f"sequence_index must be >= 1: {self.sequence_index}")
        if not isinstance(self.content, str):
            raise ValueError("content must be a string")

    @property
    def is_outline(self) -> bool:
        return self.sequence_index == 1


@dataclass(frozen=True)
class ReportMessage:
    id: str
    content: str
    is_streaming: bool = False


@dataclass(frozen=True)
class ExportArtifact:
    filename: str
    content: str
    media_type: str = MARKDOWN_MEDIA_TYPE

    @property
    def data(self) -> bytes:
        return self.content.encode("utf-8")

    @property
    def content_type(self) -> str:
        return f"{self.media_type}; charset=utf-8"
