"""Gateway: subtitle files on disk — implements SubtitleExporter port."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from autocaption.l2_use_cases.utils.srt_format import srt_filename

log = logging.getLogger('acap.persist')

_UNSAFE = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


class FileSubtitleExporter:
    """Writes ``.srt`` files into one output directory."""

    def __init__(self, output_dir: Path) -> None:
        self._output_dir = output_dir
        self._output_dir.mkdir(parents=True, exist_ok=True)

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def save_srt(self, track_name: str, content: str) -> Path:
        safe_name = _UNSAFE.sub('_', track_name).strip() or 'track'
        path = self._output_dir / srt_filename(safe_name)
        path.write_text(content, encoding='utf-8')
        log.debug('Wrote %d bytes of subtitles to %s', len(content.encode('utf-8')), path)
        return path
