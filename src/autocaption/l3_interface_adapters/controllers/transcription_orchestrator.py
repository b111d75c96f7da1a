"""Controller: owns the recognition worker's lifecycle and the observable processing status."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import numpy as np

from autocaption.l1_entities.audio import ENGINE_SAMPLE_RATE, PcmBuffer
from autocaption.l1_entities.backend import BackendSelection, DeviceCapabilities
from autocaption.l1_entities.config import TranscriptionConfig
from autocaption.l1_entities.errors import (
    AutocaptionError,
    EmptyAudioInputError,
    InferenceFailedError,
    TranscriptionTerminatedError,
    WorkerCommunicationError,
    WorkerUnavailableError,
    error_from_wire,
)
from autocaption.l1_entities.processing_status import (
    ProcessingStatus,
    Stage,
    TranscriptionProgress,
    progress_from_wire,
)
from autocaption.l1_entities.transcript import Transcript
from autocaption.l2_use_cases.backend_selection import fallback_capabilities, select_backend
from autocaption.l2_use_cases.extract_audio_use_case import resample
from autocaption.l2_use_cases.ports.asr_worker import AsrWorker
from autocaption.l2_use_cases.ports.backend_probe import BackendProbe
from autocaption.l2_use_cases.utils.transcript_builder import build_transcript

log = logging.getLogger('acap.orchestrator')

StatusListener = Callable[[ProcessingStatus], None]
ProgressListener = Callable[[TranscriptionProgress], None]


class TranscriptionOrchestrator:
    """Drives one worker process: backend selection, readiness, single-flight jobs, termination.

    Status changes go to ``on_status``; per-job streaming updates go to the ``on_progress``
    callback passed to :meth:`submit`. Every failure ends in ``stage=error`` with
    ``is_processing=False`` and is re-raised to the caller as an ``AutocaptionError``.
    """

    def __init__(
        self,
        worker_factory: Callable[[], AsrWorker],
        probe: BackendProbe,
        config: TranscriptionConfig,
        on_status: StatusListener | None = None,
    ) -> None:
        self._worker_factory = worker_factory
        self._probe = probe
        self._config = config
        self._on_status = on_status

        self._status = ProcessingStatus.ready()
        self._model = config.model
        self._capabilities: DeviceCapabilities | None = None
        self._selection: BackendSelection | None = None

        self._worker: AsrWorker | None = None
        self._pump_task: asyncio.Task | None = None
        self._init_task: asyncio.Task | None = None
        self._ready: asyncio.Future | None = None
        self._pending: asyncio.Future | None = None
        self._on_progress: ProgressListener | None = None
        self._job_error: AutocaptionError | None = None
        self._job_lock = asyncio.Lock()
        self._terminating = False

    # -- observable state --

    @property
    def status(self) -> ProcessingStatus:
        return self._status

    @property
    def capabilities(self) -> DeviceCapabilities | None:
        return self._capabilities

    @property
    def warnings(self) -> list[str]:
        return list(self._capabilities.warnings) if self._capabilities else []

    @property
    def selection(self) -> BackendSelection | None:
        return self._selection

    @property
    def model(self) -> str:
        return self._model

    @property
    def is_initialized(self) -> bool:
        return self._selection is not None and self._worker is not None

    def select_model(self, model_id: str) -> None:
        """Default model for later jobs; the worker swaps models when the next job arrives."""
        self._model = model_id

    def _set_status(self, status: ProcessingStatus) -> None:
        previous = self._status
        if (
            status.stage is Stage.TRANSCRIBING
            and previous.stage is Stage.TRANSCRIBING
            and status.progress < previous.progress
        ):
            status = status.model_copy(update={'progress': previous.progress})
        self._status = status
        if self._on_status is not None:
            try:
                self._on_status(status)
            except Exception:
                log.exception('Status listener failed on %s', status.stage.value)

    # -- capability acquisition --

    async def device_capabilities(self) -> DeviceCapabilities:
        if self._capabilities is None:
            try:
                self._capabilities = await asyncio.to_thread(self._probe.probe)
            except Exception as exc:
                log.warning('Failed to load device capabilities: %s', exc)
                self._capabilities = fallback_capabilities()
        return self._capabilities

    async def initialize(self) -> BackendSelection:
        """Start the worker once; concurrent callers share the same in-flight attempt.

        A failed attempt is not cached, so calling again retries. There is no readiness
        timeout; wrap the call in ``asyncio.wait_for`` to impose one.
        """
        if self.is_initialized:
            return self._selection  # type: ignore[return-value]
        task = self._init_task
        if task is None or task.done():
            task = asyncio.create_task(self._do_initialize())
            self._init_task = task
        return await asyncio.shield(task)

    async def _do_initialize(self) -> BackendSelection:
        self._set_status(ProcessingStatus(is_processing=True, stage=Stage.INITIALIZING, progress=0))
        try:
            if self._worker is not None:
                await self._discard_worker()
            capabilities = await self.device_capabilities()
            for warning in capabilities.warnings:
                log.warning(warning)
            selection = select_backend(capabilities)

            worker = self._worker_factory()
            try:
                await asyncio.to_thread(worker.start)
            except AutocaptionError:
                raise
            except Exception as exc:
                raise WorkerUnavailableError(f'Failed to start recognition worker: {exc}') from exc

            self._ready = asyncio.get_running_loop().create_future()
            self._worker = worker
            self._pump_task = asyncio.create_task(self._pump(worker))
            await self._ready

            self._selection = selection
            log.info('Worker ready on %s (%s)', selection.device.value, selection.precision.value)
            self._set_status(ProcessingStatus.ready(progress=100))
            return selection
        except TranscriptionTerminatedError:
            raise
        except AutocaptionError as exc:
            await self._discard_worker()
            self._fail(exc)
            raise
        except Exception as exc:
            await self._discard_worker()
            wrapped = WorkerUnavailableError(f'Failed to initialize speech-to-text: {exc}')
            self._fail(wrapped)
            raise wrapped from exc

    # -- message pump --

    async def _pump(self, worker: AsrWorker) -> None:
        while True:
            try:
                message = await asyncio.to_thread(worker.recv)
            except WorkerCommunicationError as exc:
                if not self._terminating:
                    log.error('Lost connection to worker: %s', exc)
                    self._selection = None
                    self._reject_waiters(exc)
                return
            try:
                self._dispatch(message)
            except Exception as exc:
                log.exception('Failed to handle worker message')
                self._reject_waiters(InferenceFailedError(f'Failed to handle worker message: {exc}'))

    def _dispatch(self, message: dict) -> None:
        kind = message.get('status')
        if kind == 'ready':
            if self._ready is not None and not self._ready.done():
                self._ready.set_result(None)
        elif kind == 'update':
            self._handle_update(message.get('data') or {})
        elif kind == 'complete':
            if self._pending is not None and not self._pending.done():
                if self._job_error is not None:
                    self._pending.set_exception(self._job_error)
                else:
                    self._pending.set_result(message.get('data') or {})
        elif kind == 'error':
            error = error_from_wire(message.get('kind'), message.get('message') or 'Unknown transcription error')
            self._reject_waiters(error)
        else:
            log.debug('Ignoring unknown worker message: %r', kind)

    def _handle_update(self, data: dict) -> None:
        """A bad update fails the job once the worker reports the job finished."""
        if self._job_error is not None:
            return
        try:
            progress = progress_from_wire(data)
            self._set_status(ProcessingStatus(is_processing=True, stage=progress.stage, progress=progress.progress))
            if self._on_progress is not None:
                self._on_progress(progress)
        except Exception as exc:
            log.exception('Failed to handle progress update')
            self._job_error = InferenceFailedError(f'Failed to handle progress update: {exc}')

    def _reject_waiters(self, error: BaseException) -> None:
        for future in (self._ready, self._pending):
            if future is not None and not future.done():
                future.set_exception(error)

    def _fail(self, error: AutocaptionError) -> None:
        log.error('Transcription failed: %s', error.message)
        self._set_status(ProcessingStatus.failed(error.message))

    async def _discard_worker(self) -> None:
        worker, self._worker = self._worker, None
        pump, self._pump_task = self._pump_task, None
        self._selection = None
        if worker is None:
            return
        self._terminating = True
        try:
            await asyncio.to_thread(worker.close)
            if pump is not None:
                await pump
        finally:
            self._terminating = False

    # -- jobs --

    async def submit(
        self,
        audio: PcmBuffer | np.ndarray,
        *,
        model: str | None = None,
        task: str | None = None,
        language: str | None = None,
        on_progress: ProgressListener | None = None,
    ) -> Transcript:
        """Run one job. Jobs are serialized; a second caller waits until the first settles."""
        async with self._job_lock:
            try:
                selection = await self.initialize()
                samples = _engine_samples(audio)
                if len(samples) == 0:
                    raise EmptyAudioInputError('No audio data provided')

                model_id = model or self._model
                language = language or self._config.language
                task = task or self._config.task
                chunk_length, stride_length = self._config.window_for(model_id)

                self._pending = asyncio.get_running_loop().create_future()
                self._on_progress = on_progress
                self._job_error = None
                self._set_status(ProcessingStatus(is_processing=True, stage=Stage.LOADING, progress=0))
                log.info('Submitting %.1fs of audio to %s', len(samples) / ENGINE_SAMPLE_RATE, model_id)

                worker = self._worker
                if worker is None:
                    raise WorkerUnavailableError('Recognition worker is not running')
                worker.send(
                    {
                        'type': 'transcribe',
                        'audio': samples,
                        'model': model_id,
                        'task': task,
                        'language': language,
                        'device': selection.device.value,
                        'precision': selection.precision.value,
                        'chunk_length': chunk_length,
                        'stride_length': stride_length,
                    }
                )
                raw = await self._pending

                transcript = build_transcript(raw, language=language or 'en')
                self._set_status(ProcessingStatus.ready(progress=100))
                log.info('Transcription complete: %d chunk(s)', len(transcript.chunks))
                return transcript
            except TranscriptionTerminatedError:
                raise
            except AutocaptionError as exc:
                self._fail(exc)
                raise
            except Exception as exc:
                wrapped = InferenceFailedError(f'Transcription error: {exc}')
                self._fail(wrapped)
                raise wrapped from exc
            finally:
                self._pending = None
                self._on_progress = None
                self._job_error = None

    def report_error(self, error: AutocaptionError) -> None:
        """Surface a failure raised outside a job (e.g. during extraction) through the status."""
        self._fail(error)

    # -- teardown --

    async def terminate(self) -> None:
        """Kill the worker at once. A waiting ``submit`` gets TranscriptionTerminatedError."""
        self._terminating = True
        try:
            worker = self._worker
            if worker is not None:
                await asyncio.to_thread(worker.terminate)
            self._reject_waiters(TranscriptionTerminatedError('Transcription was terminated'))
            await self._discard_worker()
            self._init_task = None
            self._ready = None
        finally:
            self._terminating = False
        log.info('Worker terminated')
        self._set_status(ProcessingStatus.terminated())

    async def reset(self) -> None:
        """Terminate, then return to the quiescent ``ready`` state."""
        await self.terminate()
        self._set_status(ProcessingStatus.ready())

    async def aclose(self) -> None:
        """Graceful shutdown: the worker finishes its loop and exits."""
        self._terminating = True
        try:
            await self._discard_worker()
            self._init_task = None
            self._ready = None
        finally:
            self._terminating = False

    async def __aenter__(self) -> TranscriptionOrchestrator:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def _engine_samples(audio: PcmBuffer | np.ndarray) -> np.ndarray:
    if isinstance(audio, PcmBuffer):
        return resample(audio, ENGINE_SAMPLE_RATE).mono().astype(np.float32, copy=False)
    return np.asarray(audio, dtype=np.float32).reshape(-1)
