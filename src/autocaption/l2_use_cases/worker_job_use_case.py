"""Use case: run one recognition job inside the worker, reusing the loaded model when possible."""

from __future__ import annotations

import logging
from collections.abc import Callable

from autocaption.l1_entities.backend import Precision
from autocaption.l1_entities.config import is_distilled, is_english_only
from autocaption.l1_entities.engine_output import EngineOutput
from autocaption.l1_entities.errors import (
    AutocaptionError,
    EmptyAudioInputError,
    MissingModelSpecError,
    ModelLoadFailedError,
)
from autocaption.l1_entities.processing_status import Stage, TranscriptionProgress
from autocaption.l2_use_cases.ports.asr_engine import AsrEngine
from autocaption.l2_use_cases.ports.model_resolver import ModelResolver
from autocaption.l2_use_cases.streaming_transcription_use_case import WindowedTranscriptionUseCase

log = logging.getLogger('acap.worker')

DEFAULT_WINDOW = (30.0, 5.0)
DISTIL_WINDOW = (20.0, 3.0)


class ModelSlot:
    """Holds at most one loaded engine. Asking for a different model disposes the old one first."""

    def __init__(self, engine_factory: Callable[[], AsrEngine]) -> None:
        self._engine_factory = engine_factory
        self._engine: AsrEngine | None = None
        self._key: tuple[str, Precision | None] | None = None

    @property
    def current_model(self) -> str | None:
        return self._key[0] if self._key else None

    def acquire(self, model_id: str, precision: Precision | None, resolver: ModelResolver) -> AsrEngine:
        key = (model_id, precision)
        if self._engine is not None and self._key == key:
            return self._engine

        self.dispose()
        model_path = resolver.resolve(model_id, precision)
        engine = self._engine_factory()
        try:
            engine.load(model_path)
        except AutocaptionError:
            raise
        except Exception as exc:
            raise ModelLoadFailedError(f'Failed to load model {model_id}: {exc}') from exc

        self._engine = engine
        self._key = key
        log.info('Loaded model %s (%s)', model_id, precision.value if precision else 'default')
        return engine

    def dispose(self) -> None:
        """Best effort: a failing dispose is logged and the slot is cleared anyway."""
        if self._engine is None:
            return
        try:
            self._engine.dispose()
        except Exception as exc:
            log.warning('Failed to dispose model %s: %s', self.current_model, exc)
        self._engine = None
        self._key = None


class WorkerJobUseCase:
    """Validates a transcribe request, loads the requested model, and runs the windowed pass."""

    def __init__(
        self,
        slot: ModelSlot,
        resolver: ModelResolver,
        post_update: Callable[[TranscriptionProgress], None],
    ) -> None:
        self._slot = slot
        self._resolver = resolver
        self._post_update = post_update

    def execute(self, request: dict) -> EngineOutput:
        audio = request.get('audio')
        model_id = request.get('model')
        if audio is None or len(audio) == 0:
            raise EmptyAudioInputError('No audio data provided')
        if not model_id:
            raise MissingModelSpecError('No model specified')

        precision = Precision(request['precision']) if request.get('precision') else None

        self._post_update(TranscriptionProgress(stage=Stage.LOADING, progress=0))
        engine = self._slot.acquire(model_id, precision, self._resolver)

        language = request.get('language')
        task = request.get('task')
        if is_english_only(model_id):
            language, task = None, None

        default_chunk, default_stride = DISTIL_WINDOW if is_distilled(model_id) else DEFAULT_WINDOW
        chunk_length = request.get('chunk_length') or default_chunk
        stride_length = request.get('stride_length')
        if stride_length is None:
            stride_length = default_stride

        return WindowedTranscriptionUseCase(engine, self._post_update).execute(
            audio,
            language=language,
            task=task,
            chunk_length=chunk_length,
            stride_length=stride_length,
        )
