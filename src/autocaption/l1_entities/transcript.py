"""Transcript entities: words, chunks, whole transcripts, and stored transcription results."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, model_validator


def format_srt_time(ms: int) -> str:
    """Format milliseconds as ``HH:MM:SS,mmm``."""
    ms = max(int(ms), 0)
    hours, rem = divmod(ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)
    return f'{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}'


class TranscriptWord(BaseModel):
    """A word with millisecond timestamps relative to the start of the extracted audio."""

    text: str
    start_ms: int
    end_ms: int

    @model_validator(mode='after')
    def _end_not_before_start(self) -> TranscriptWord:
        if self.end_ms < self.start_ms:
            raise ValueError(f'end_ms ({self.end_ms}) precedes start_ms ({self.start_ms})')
        return self


class TranscriptChunk(BaseModel):
    words: list[TranscriptWord] = Field(default_factory=list)
    start_ms: int
    end_ms: int
    text: str

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms


class Transcript(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    chunks: list[TranscriptChunk] = Field(default_factory=list)
    language: str = 'en'

    model_config = {'frozen': True}

    @property
    def total_duration_ms(self) -> int:
        return max((c.end_ms for c in self.chunks), default=0)

    @property
    def text(self) -> str:
        return ' '.join(c.text for c in self.chunks if c.text)


class ChunkSpan(BaseModel):
    """Seconds-based chunk as reported by the engine or as inserted on the timeline."""

    text: str
    timestamp: tuple[float, float]


class TranscriptionResult(BaseModel):
    """A completed job kept in the session's results list until removed."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    track_id: str
    track_name: str
    text: str
    chunks: list[ChunkSpan] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    transcript: Transcript
    timeline_offset: float = Field(default=0.0, description='Timeline seconds where extracted audio zero sits')
