"""Pure functions turning raw recognizer output into a Transcript."""

from __future__ import annotations

from autocaption.l1_entities.engine_output import (
    EngineOutput,
    FlatWordList,
    RawChunk,
    RawWord,
    TextOnly,
    WordLevel,
    classify_word_source,
)
from autocaption.l1_entities.transcript import ChunkSpan, Transcript, TranscriptChunk, TranscriptWord


def _to_ms(seconds: float) -> int:
    return round(seconds * 1000)


def _span_ms(timestamp: tuple[float, float | None]) -> tuple[int, int]:
    start = _to_ms(timestamp[0])
    end = _to_ms(timestamp[1]) if timestamp[1] is not None else start
    return start, max(start, end)


def _convert_words(words: list[RawWord]) -> list[TranscriptWord]:
    result: list[TranscriptWord] = []
    for word in words:
        start, end = _span_ms(word.timestamp)
        result.append(TranscriptWord(text=word.text, start_ms=start, end_ms=end))
    return result


def synthesize_words(text: str, start_ms: int, end_ms: int) -> list[TranscriptWord]:
    """Split *text* on whitespace and give each word an equal share of the span.

    Boundaries are rounded cumulatively, so word durations always sum to the span exactly.
    """
    tokens = text.split()
    if not tokens:
        return []
    span = end_ms - start_ms
    bounds = [start_ms + round(i * span / len(tokens)) for i in range(len(tokens) + 1)]
    return [
        TranscriptWord(text=token, start_ms=bounds[i], end_ms=bounds[i + 1])
        for i, token in enumerate(tokens)
    ]


def _chunk_words(chunk: RawChunk, output: EngineOutput, start_ms: int, end_ms: int) -> list[TranscriptWord]:
    source = classify_word_source(chunk, output)
    if isinstance(source, WordLevel):
        return _convert_words(source.words)
    if isinstance(source, FlatWordList):
        inside = [w for w in source.words if start_ms <= _to_ms(w.timestamp[0]) <= end_ms]
        return _convert_words(inside)
    if isinstance(source, TextOnly):
        return synthesize_words(source.text, start_ms, end_ms)
    raise TypeError(f'Unhandled word source: {type(source).__name__}')


def build_transcript(output: EngineOutput | dict, language: str = 'en') -> Transcript:
    """Normalize engine output into millisecond chunks with word-level entries.

    Word priority per chunk: the chunk's own word timings, else the output-wide word
    list filtered to the chunk span, else words synthesized from the chunk text.
    """
    if isinstance(output, dict):
        output = EngineOutput.model_validate(output)

    chunks: list[TranscriptChunk] = []
    for raw in output.chunks:
        start_ms, end_ms = _span_ms(raw.timestamp)
        chunks.append(
            TranscriptChunk(
                words=_chunk_words(raw, output, start_ms, end_ms),
                start_ms=start_ms,
                end_ms=end_ms,
                text=raw.text.strip(),
            )
        )
    chunks.sort(key=lambda c: c.start_ms)
    return Transcript(chunks=chunks, language=language)


def chunk_spans(transcript: Transcript) -> list[ChunkSpan]:
    """Seconds-based view of the transcript chunks, as stored on a result."""
    return [ChunkSpan(text=c.text, timestamp=(c.start_ms / 1000, c.end_ms / 1000)) for c in transcript.chunks]
