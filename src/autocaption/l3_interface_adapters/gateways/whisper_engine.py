"""Gateway: whisper.cpp recognition engine — implements AsrEngine port."""

from __future__ import annotations

import contextlib
import os

import numpy as np
from pywhispercpp.model import Model

from autocaption.l1_entities.errors import InferenceFailedError, ModelLoadFailedError
from autocaption.l2_use_cases.ports.asr_engine import EngineMetadata, SegmentCallback

# Whisper's feature extractor covers 30 s per window with 1500 encoder positions.
WHISPER_CHUNK_LENGTH = 30.0
WHISPER_MAX_SOURCE_POSITIONS = 1500


@contextlib.contextmanager
def _suppress_c_stdout():
    """Redirect C-level stdout and stderr to /dev/null.

    whisper.cpp prints init/progress messages directly via C fprintf,
    bypassing Python's sys.stdout.
    """
    devnull = os.open(os.devnull, os.O_WRONLY)
    old_stdout = os.dup(1)
    old_stderr = os.dup(2)
    try:
        os.dup2(devnull, 1)
        os.dup2(devnull, 2)
        yield
    finally:
        os.dup2(old_stdout, 1)
        os.dup2(old_stderr, 2)
        os.close(devnull)
        os.close(old_stdout)
        os.close(old_stderr)


class WhisperEngine:
    """pywhispercpp adapter. Streams segments through ``new_segment_callback`` and
    converts centisecond timestamps to seconds."""

    def __init__(self) -> None:
        self._model: Model | None = None

    def load(self, model_path: str) -> None:
        try:
            with _suppress_c_stdout():
                self._model = Model(model_path, print_progress=False, print_realtime=False)
        except Exception as exc:
            raise ModelLoadFailedError(f'Failed to load model {model_path}: {exc}') from exc

    def metadata(self) -> EngineMetadata:
        if self._model is None:
            return EngineMetadata(chunk_length=None, max_source_positions=None)
        return EngineMetadata(chunk_length=WHISPER_CHUNK_LENGTH, max_source_positions=WHISPER_MAX_SOURCE_POSITIONS)

    def transcribe_window(
        self,
        audio: np.ndarray,
        language: str | None,
        task: str | None,
        on_segment: SegmentCallback,
    ) -> None:
        if self._model is None:
            raise InferenceFailedError('Model not loaded. Call load() first.')

        kwargs: dict = {}
        if language:
            kwargs['language'] = language
        if task == 'translate':
            kwargs['translate'] = True

        def _forward(segment) -> None:
            on_segment(segment.t0 / 100.0, segment.t1 / 100.0, segment.text)

        with _suppress_c_stdout():
            self._model.transcribe(audio.astype(np.float32, copy=False), new_segment_callback=_forward, **kwargs)

    def dispose(self) -> None:
        """Explicitly release the model, suppressing C-level teardown noise."""
        if self._model is not None:
            with _suppress_c_stdout():
                del self._model
                self._model = None
