"""Port: subtitle file export."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class SubtitleExporter(Protocol):
    def save_srt(self, track_name: str, content: str) -> Path:
        """Write ``<track_name>_subtitles.srt`` as UTF-8 and return its path."""
        ...
