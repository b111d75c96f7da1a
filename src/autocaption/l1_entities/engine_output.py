"""Raw recognizer output and the word-source shapes it can take.

An engine may report word timings per chunk, as one flat list for the whole output,
or not at all. ``classify_word_source`` picks exactly one shape per chunk so the
transcript builder never probes optional fields ad hoc.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, Field


class RawWord(BaseModel):
    text: str
    timestamp: tuple[float, float | None]


class RawChunk(BaseModel):
    text: str = ''
    timestamp: tuple[float, float | None]
    words: list[RawWord] | None = None


class EngineOutput(BaseModel):
    text: str = ''
    chunks: list[RawChunk] = Field(default_factory=list)
    words: list[RawWord] | None = None
    tps: float | None = None


@dataclass(frozen=True)
class WordLevel:
    """The chunk carries its own word timestamps."""

    words: list[RawWord]


@dataclass(frozen=True)
class FlatWordList:
    """Only a flat, output-wide word list is available; filter it by chunk span."""

    words: list[RawWord]


@dataclass(frozen=True)
class TextOnly:
    """No word timings at all; words must be synthesized from the chunk text."""

    text: str


WordSource = WordLevel | FlatWordList | TextOnly


def classify_word_source(chunk: RawChunk, output: EngineOutput) -> WordSource:
    if chunk.words:
        return WordLevel(words=chunk.words)
    if output.words:
        return FlatWordList(words=output.words)
    return TextOnly(text=chunk.text)
