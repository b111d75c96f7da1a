"""Use case: project a transcript onto the timeline as non-overlapping caption elements."""

from __future__ import annotations

import logging
import uuid

from autocaption.l1_entities.timeline import CaptionElement, CaptionStyle, Granularity
from autocaption.l1_entities.transcript import Transcript

log = logging.getLogger('acap.projector')

MIN_SENTENCE_DURATION = 1.0
MIN_WORD_DURATION = 0.5


def _short_text(text: str) -> str:
    words = text.strip().split()
    if len(words) > 3:
        return ' '.join(words[:3]) + '...'
    return text.strip()


def build_candidates(
    transcript: Transcript,
    granularity: Granularity,
    timeline_offset: float,
    *,
    min_sentence_duration: float = MIN_SENTENCE_DURATION,
    min_word_duration: float = MIN_WORD_DURATION,
    style: CaptionStyle | None = None,
) -> list[CaptionElement]:
    """One element per chunk (sentences) or per word, before overlap resolution."""
    style = style or CaptionStyle()
    candidates: list[CaptionElement] = []

    if granularity is Granularity.WORDS:
        for chunk in transcript.chunks:
            for word in chunk.words:
                text = word.text.strip()
                candidates.append(
                    CaptionElement(
                        id=str(uuid.uuid4()),
                        name=f'Word {len(candidates) + 1}: {text}',
                        content=text,
                        start_time=timeline_offset + word.start_ms / 1000,
                        duration=max((word.end_ms - word.start_ms) / 1000, min_word_duration),
                        style=style,
                    )
                )
        return candidates

    for index, chunk in enumerate(transcript.chunks, start=1):
        candidates.append(
            CaptionElement(
                id=str(uuid.uuid4()),
                name=f'Subtitle {index}: {_short_text(chunk.text)}',
                content=chunk.text.strip(),
                start_time=timeline_offset + chunk.start_ms / 1000,
                duration=max((chunk.end_ms - chunk.start_ms) / 1000, min_sentence_duration),
                style=style,
            )
        )
    return candidates


def resolve_overlaps(
    elements: list[CaptionElement],
    *,
    min_clamped_duration: float = 0.0,
) -> tuple[list[CaptionElement], int]:
    """Forward greedy pass: clamp each element to end exactly where the next begins.

    Returns (resolved, clamped_count). Durations only ever shrink. An element whose
    clamped duration is at or below *min_clamped_duration* is dropped rather than kept
    as a zero-length caption; the minimum-duration floors applied earlier can push an
    element onto its neighbour's start.
    """
    ordered = sorted(elements, key=lambda e: e.start_time)
    resolved: list[CaptionElement] = []
    clamped = 0

    for i, current in enumerate(ordered):
        nxt = ordered[i + 1] if i + 1 < len(ordered) else None
        if nxt is not None and current.start_time + current.duration > nxt.start_time:
            new_duration = nxt.start_time - current.start_time
            clamped += 1
            if new_duration <= min_clamped_duration:
                log.debug('Dropping degenerate caption %r (clamped to %.3fs)', current.content, new_duration)
                continue
            current = current.model_copy(update={'duration': new_duration})
        resolved.append(current)

    return resolved, clamped


def project_captions(
    transcript: Transcript,
    granularity: Granularity,
    timeline_offset: float,
    *,
    min_sentence_duration: float = MIN_SENTENCE_DURATION,
    min_word_duration: float = MIN_WORD_DURATION,
    min_clamped_duration: float = 0.0,
    style: CaptionStyle | None = None,
) -> list[CaptionElement]:
    candidates = build_candidates(
        transcript,
        granularity,
        timeline_offset,
        min_sentence_duration=min_sentence_duration,
        min_word_duration=min_word_duration,
        style=style,
    )
    resolved, clamped = resolve_overlaps(candidates, min_clamped_duration=min_clamped_duration)
    if clamped:
        log.warning('Resolved %d overlapping caption(s) by trimming duration', clamped)
    return resolved
