"""Pure functions for SubRip (.srt) serialization."""

from __future__ import annotations

from autocaption.l1_entities.transcript import Transcript, format_srt_time


def transcript_to_srt(transcript: Transcript) -> str:
    """One block per chunk: 1-based index, ``start --> end`` line, trimmed text.

    Blocks are separated by a blank line.
    """
    blocks = [
        f'{index}\n{format_srt_time(chunk.start_ms)} --> {format_srt_time(chunk.end_ms)}\n{chunk.text.strip()}\n'
        for index, chunk in enumerate(transcript.chunks, start=1)
    ]
    return '\n'.join(blocks)


def srt_filename(track_name: str) -> str:
    return f'{track_name}_subtitles.srt'
