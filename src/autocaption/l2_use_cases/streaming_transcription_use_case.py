"""Use case: sliding-window transcription with streamed chunk assembly.

Runs inside the worker process. Does NO I/O itself — the engine is injected and
progress leaves through ``post_update``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from autocaption.l1_entities.audio import ENGINE_SAMPLE_RATE
from autocaption.l1_entities.engine_output import EngineOutput, RawChunk
from autocaption.l1_entities.errors import (
    AutocaptionError,
    EmptyAudioInputError,
    EngineConfigurationInvalidError,
    InferenceFailedError,
)
from autocaption.l1_entities.processing_status import Stage, TranscriptionProgress
from autocaption.l1_entities.transcript import ChunkSpan
from autocaption.l2_use_cases.ports.asr_engine import AsrEngine, EngineMetadata

log = logging.getLogger('acap.worker')

PROGRESS_CEILING = 95  # the last 5% is left for post-processing on the host


@dataclass
class _OpenChunk:
    text: str
    start: float
    end: float | None
    offset: float
    finalised: bool = False


class ChunkStreamAssembler:
    """Tracks chunks as the engine streams them, window by window.

    Progress is a heuristic, ``min(95, window_index * 15 + finalized_chunks * 5)``; it is
    not derived from token counts and must not be read as an exact fraction of work done.
    """

    def __init__(
        self,
        chunk_length: float,
        stride_length: float,
        time_precision: float | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._chunk_length = chunk_length
        self._stride_length = stride_length
        self._time_precision = time_precision
        self._clock = clock

        self._chunks: list[_OpenChunk] = []
        self._window_index = 0
        self._window_started: float | None = None
        self._num_tokens = 0
        self.tps: float | None = None

    @property
    def window_index(self) -> int:
        return self._window_index

    @property
    def window_offset(self) -> float:
        return (self._chunk_length - self._stride_length) * self._window_index

    def _quantize(self, seconds: float) -> float:
        if not self._time_precision:
            return seconds
        return round(round(seconds / self._time_precision) * self._time_precision, 3)

    def start_chunk(self, local_start: float) -> None:
        offset = self.window_offset
        self._chunks.append(_OpenChunk(text='', start=offset + self._quantize(local_start), end=None, offset=offset))

    def record_tokens(self, count: int = 1) -> None:
        """Update the running tokens-per-second rate for the current window."""
        for _ in range(count):
            now = self._clock()
            if self._window_started is None:
                self._window_started = now
            self._num_tokens += 1
            elapsed = now - self._window_started
            if self._num_tokens > 1 and elapsed > 0:
                self.tps = self._num_tokens / elapsed

    def append_text(self, text: str) -> TranscriptionProgress | None:
        if not self._chunks:
            return None
        self._chunks[-1].text += text
        return self.snapshot()

    def end_chunk(self, local_end: float) -> None:
        if not self._chunks:
            return
        current = self._chunks[-1]
        current.end = current.offset + self._quantize(local_end)
        current.finalised = True

    def finalize_window(self) -> None:
        self._window_started = None
        self._num_tokens = 0
        self._window_index += 1

    def finished_chunks(self) -> list[ChunkSpan]:
        """Finalized, non-empty chunks with trimmed text; a missing end collapses to the start."""
        return [
            ChunkSpan(text=c.text.strip(), timestamp=(c.start, c.end if c.end is not None else c.start))
            for c in self._chunks
            if c.finalised and c.text.strip()
        ]

    def snapshot(self) -> TranscriptionProgress:
        finalised = [c for c in self._chunks if c.finalised]
        progress = min(PROGRESS_CEILING, self._window_index * 15 + len(finalised) * 5)
        current_text = self._chunks[-1].text if self._chunks and not self._chunks[-1].finalised else ''
        return TranscriptionProgress(
            stage=Stage.TRANSCRIBING,
            progress=progress,
            chunks=[
                ChunkSpan(text=c.text, timestamp=(c.start, c.end if c.end is not None else c.start))
                for c in finalised
            ],
            current_text=current_text,
            tps=self.tps,
        )


def time_precision_from(metadata: EngineMetadata) -> float:
    if not metadata.chunk_length or metadata.chunk_length <= 0:
        raise EngineConfigurationInvalidError('Invalid transcriber configuration - missing feature extractor')
    if not metadata.max_source_positions or metadata.max_source_positions <= 0:
        raise EngineConfigurationInvalidError('Invalid transcriber configuration - missing model config')
    return metadata.chunk_length / metadata.max_source_positions


class WindowedTranscriptionUseCase:
    """Feeds fixed-length overlapping windows to the engine and assembles the chunks."""

    def __init__(
        self,
        engine: AsrEngine,
        post_update: Callable[[TranscriptionProgress], None],
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._engine = engine
        self._post_update = post_update
        self._clock = clock

    def execute(
        self,
        audio: np.ndarray,
        *,
        language: str | None,
        task: str | None,
        chunk_length: float,
        stride_length: float,
        sample_rate: int = ENGINE_SAMPLE_RATE,
    ) -> EngineOutput:
        if audio is None or len(audio) == 0:
            raise EmptyAudioInputError('No audio data provided')

        time_precision = time_precision_from(self._engine.metadata())
        assembler = ChunkStreamAssembler(chunk_length, stride_length, time_precision, clock=self._clock)

        window_samples = round(chunk_length * sample_rate)
        step_samples = round((chunk_length - stride_length) * sample_rate)
        total = len(audio)

        start = 0
        while True:
            window = audio[start : start + window_samples]
            is_first = assembler.window_index == 0

            def _on_segment(t0: float, t1: float, text: str, _is_first: bool = is_first) -> None:
                # The stride region was already covered by the tail of the previous window.
                if not _is_first and t1 <= stride_length:
                    return
                assembler.start_chunk(t0)
                assembler.record_tokens(max(len(text.split()), 1))
                snapshot = assembler.append_text(text)
                if snapshot is not None:
                    self._post_update(snapshot)
                assembler.end_chunk(t1)

            log.debug('Window %d: samples [%d, %d) of %d', assembler.window_index, start, start + len(window), total)
            try:
                self._engine.transcribe_window(window, language, task, _on_segment)
            except AutocaptionError:
                raise
            except Exception as exc:
                raise InferenceFailedError(f'Transcription error: {exc}') from exc
            assembler.finalize_window()

            if start + window_samples >= total:
                break
            start += step_samples

        chunks = assembler.finished_chunks()
        return EngineOutput(
            text=' '.join(c.text for c in chunks),
            chunks=[RawChunk(text=c.text, timestamp=c.timestamp) for c in chunks],
            tps=assembler.tps,
        )
