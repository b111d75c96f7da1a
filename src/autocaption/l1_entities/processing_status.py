"""Processing status state value and streaming progress snapshots."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from autocaption.l1_entities.transcript import ChunkSpan


class Stage(enum.Enum):
    LOADING = 'loading'
    INITIALIZING = 'initializing'
    DOWNLOADING = 'downloading'
    TRANSCRIBING = 'transcribing'
    READY = 'ready'
    TERMINATED = 'terminated'
    ERROR = 'error'


class ProcessingStatus(BaseModel):
    """The single observable state driving user-facing feedback."""

    is_processing: bool = False
    stage: Stage = Stage.READY
    progress: int = Field(default=0, ge=0, le=100)
    error: str | None = None

    model_config = {'frozen': True}

    @classmethod
    def ready(cls, progress: int = 0) -> ProcessingStatus:
        return cls(is_processing=False, stage=Stage.READY, progress=progress)

    @classmethod
    def failed(cls, message: str) -> ProcessingStatus:
        return cls(is_processing=False, stage=Stage.ERROR, progress=0, error=message)

    @classmethod
    def terminated(cls) -> ProcessingStatus:
        return cls(is_processing=False, stage=Stage.TERMINATED, progress=0)


@dataclass(frozen=True)
class TranscriptionProgress:
    """One progress update from a running job.

    ``chunks`` only ever holds finalized chunks; the still-open chunk's text is in
    ``current_text`` for live preview.
    """

    stage: Stage
    progress: int = 0
    file: str | None = None
    chunks: list[ChunkSpan] = field(default_factory=list)
    current_text: str = ''
    tps: float | None = None


def progress_to_wire(progress: TranscriptionProgress) -> dict:
    """Plain-dict form for the worker pipe."""
    return {
        'stage': progress.stage.value,
        'progress': progress.progress,
        'file': progress.file,
        'chunks': [{'text': c.text, 'timestamp': list(c.timestamp)} for c in progress.chunks],
        'current_text': progress.current_text,
        'tps': progress.tps,
    }


def progress_from_wire(data: dict) -> TranscriptionProgress:
    return TranscriptionProgress(
        stage=Stage(data.get('stage', Stage.TRANSCRIBING.value)),
        progress=int(data.get('progress') or 0),
        file=data.get('file'),
        chunks=[ChunkSpan.model_validate(c) for c in data.get('chunks') or []],
        current_text=data.get('current_text') or '',
        tps=data.get('tps'),
    )
