"""Gateway: recognition worker in a subprocess — implements AsrWorker port."""

from __future__ import annotations

import logging
import multiprocessing as mp
import os
from multiprocessing.connection import Connection
from typing import Any

from autocaption.l1_entities.errors import (
    AutocaptionError,
    WorkerCommunicationError,
    WorkerUnavailableError,
)

log = logging.getLogger('acap.worker')


def _error_message(exc: BaseException) -> dict:
    if isinstance(exc, AutocaptionError):
        return {'status': 'error', 'kind': type(exc).__name__, 'message': exc.message}
    return {'status': 'error', 'kind': 'InferenceFailedError', 'message': f'Transcription error: {exc}'}


def _worker_entry(conn: Any) -> None:
    """Subprocess main: build the job runner, announce readiness, loop on requests.

    Permanently redirects C-level stdout/stderr to /dev/null so whisper.cpp's
    fprintf() calls do not escape to the parent's terminal.
    """
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, 1)
    os.dup2(devnull, 2)
    os.close(devnull)

    try:
        from autocaption.l1_entities.processing_status import (  # noqa: PLC0415 -- deferred: subprocess only
            Stage,
            TranscriptionProgress,
            progress_to_wire,
        )
        from autocaption.l2_use_cases.worker_job_use_case import (  # noqa: PLC0415 -- deferred: subprocess only
            ModelSlot,
            WorkerJobUseCase,
        )
        from autocaption.l3_interface_adapters.gateways.hf_model_resolver import (  # noqa: PLC0415 -- deferred: subprocess only
            HfModelResolver,
        )
        from autocaption.l3_interface_adapters.gateways.whisper_engine import (  # noqa: PLC0415 -- deferred: subprocess only
            WhisperEngine,
        )
    except Exception as e:
        conn.send({'status': 'error', 'kind': 'WorkerUnavailableError', 'message': f'Worker failed to start: {e}'})
        conn.close()
        return

    def post(progress: TranscriptionProgress) -> None:
        conn.send({'status': 'update', 'data': progress_to_wire(progress)})

    def on_download(percent: int, filename: str) -> None:
        post(TranscriptionProgress(stage=Stage.DOWNLOADING, progress=percent, file=filename))

    slot = ModelSlot(WhisperEngine)
    use_case = WorkerJobUseCase(slot, HfModelResolver(on_progress=on_download), post)
    conn.send({'status': 'ready'})

    while True:
        try:
            req = conn.recv()
        except EOFError:
            break
        if req is None:
            break
        if req.get('type') == 'ping':
            conn.send({'status': 'ready'})
            continue
        try:
            output = use_case.execute(req)
            conn.send({'status': 'complete', 'data': output.model_dump()})
        except Exception as e:
            conn.send(_error_message(e))

    slot.dispose()
    conn.close()


class SubprocessAsrWorker:
    """Recognition worker running in a child process.

    whisper.cpp holds the GIL for the full duration of inference, so it runs in a
    spawned process and talks to the host over a duplex ``multiprocessing.Pipe``.
    Messages are pickled, so every payload is a copy.
    """

    def __init__(self) -> None:
        self._process: Any = None  # SpawnProcess; the context returns a subclass
        self._conn: Connection | None = None

    @property
    def is_alive(self) -> bool:
        return self._process is not None and self._process.is_alive()

    def start(self) -> None:
        ctx = mp.get_context('spawn')
        parent_conn, child_conn = ctx.Pipe(duplex=True)
        self._process = ctx.Process(
            target=_worker_entry,
            args=(child_conn,),
            daemon=True,
        )
        try:
            self._process.start()
        except OSError as e:
            self._process = None
            raise WorkerUnavailableError(f'Failed to start recognition worker: {e}') from e
        child_conn.close()  # parent only needs its own end
        self._conn = parent_conn
        log.debug('Worker process started (pid=%s)', self._process.pid)

    def send(self, message: dict[str, Any]) -> None:
        if self._conn is None:
            raise WorkerUnavailableError('Recognition worker is not running')
        try:
            self._conn.send(message)
        except (OSError, EOFError) as e:
            raise WorkerCommunicationError(f'Failed to send to recognition worker: {e}') from e

    def recv(self) -> dict[str, Any]:
        if self._conn is None:
            raise WorkerCommunicationError('Recognition worker is not running')
        try:
            return self._conn.recv()
        except (OSError, EOFError) as e:
            raise WorkerCommunicationError('Recognition worker exited unexpectedly') from e

    def terminate(self) -> None:
        if self._process is not None:
            self._process.terminate()
            self._process.join(timeout=1)  # reap zombie after SIGTERM
            log.info('Worker process terminated')
            self._process = None

    def close(self) -> None:
        if self._conn is not None:
            try:
                self._conn.send(None)
            except Exception:  # noqa: S110 -- best-effort shutdown signal; pipe may already be closed
                pass
            try:
                self._conn.close()
            except Exception:  # noqa: S110 -- best-effort; ignore double-close
                pass
            self._conn = None
        if self._process is not None:
            self._process.join(timeout=5)
            if self._process.is_alive():
                self._process.terminate()
                self._process.join(timeout=1)
            self._process = None
