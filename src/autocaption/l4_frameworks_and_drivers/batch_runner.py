"""Batch runner — headless transcribe-a-project-file, insert captions, export subtitles."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from autocaption.l1_entities.config import AppConfig
from autocaption.l1_entities.errors import AutocaptionError
from autocaption.l1_entities.processing_status import ProcessingStatus, Stage, TranscriptionProgress
from autocaption.l1_entities.timeline import Granularity
from autocaption.l1_entities.transcript import TranscriptionResult
from autocaption.l3_interface_adapters.gateways.json_project_store import JsonProjectStore
from autocaption.l4_frameworks_and_drivers.container import DependencyContainer


def _fmt(seconds: float) -> str:
    h, rem = divmod(int(seconds), 3600)
    m, s = divmod(rem, 60)
    return f'{h:02d}:{m:02d}:{s:02d}'


def _err(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


class _StatusPrinter:
    """Writes one stderr line per distinct (stage, progress) pair."""

    def __init__(self) -> None:
        self._last: tuple[Stage, int] | None = None
        self._chunks_seen = 0

    def on_status(self, status: ProcessingStatus) -> None:
        key = (status.stage, status.progress)
        if key == self._last:
            return
        self._last = key
        if status.stage is Stage.ERROR:
            return
        _err(f'  {status.stage.value}: {status.progress}%')

    def on_progress(self, progress: TranscriptionProgress) -> None:
        if progress.stage is Stage.DOWNLOADING and progress.file:
            _err(f'  Downloading {progress.file}: {progress.progress}%')
            return
        for chunk in progress.chunks[self._chunks_seen :]:
            _err(f'  [{_fmt(chunk.timestamp[0])}] {chunk.text.strip()}')
        self._chunks_seen = max(self._chunks_seen, len(progress.chunks))


async def _transcribe(
    container: DependencyContainer,
    printer: _StatusPrinter,
    track: str | None,
    model: str | None,
    language: str | None,
    task: str | None,
) -> TranscriptionResult:
    controller = container.controller
    async with container.orchestrator:
        for warning in (await container.orchestrator.device_capabilities()).warnings:
            _err(f'Warning: {warning}')
        if track:
            return await controller.process_track(
                track, model=model, language=language, task=task, on_progress=printer.on_progress
            )
        return await controller.process_selected_element(
            model=model, language=language, task=task, on_progress=printer.on_progress
        )


def run_batch(
    project_path: Path,
    config: AppConfig,
    out_dir: Path,
    *,
    track: str | None = None,
    granularity: Granularity = Granularity.SENTENCES,
    insert: bool = False,
    srt: bool = True,
    model: str | None = None,
    language: str | None = None,
    task: str | None = None,
) -> TranscriptionResult:
    """Transcribe the selected element (or a whole track) of *project_path*. Blocks until done."""

    # -- Load project --
    _err(f'Loading project: {project_path}')
    try:
        project = JsonProjectStore.open(project_path)
    except (FileNotFoundError, ValueError) as exc:
        _err(f'Error: {exc}')
        raise SystemExit(1) from exc

    printer = _StatusPrinter()
    container = DependencyContainer(config, project, out_dir, on_status=printer.on_status)
    _err(f'Whisper model: {model or config.transcription.model}')

    # -- Transcribe --
    try:
        result = asyncio.run(_transcribe(container, printer, track, model, language, task))
    except AutocaptionError as exc:
        _err(f'Error: {exc.message}')
        raise SystemExit(1) from exc

    if not result.chunks:
        _err('No speech detected.')
    else:
        duration = result.transcript.total_duration_ms / 1000
        _err(f'\nTranscription complete — {len(result.chunks)} chunk(s), {_fmt(duration)} of speech.')

    # -- Outputs --
    if insert and result.chunks:
        elements = container.controller.insert_result(result.id, granularity)
        project.save()
        _err(f'Inserted {len(elements)} {granularity.value} caption(s) into {project_path}')

    if srt:
        srt_path = container.controller.export_srt(result.id)
        _err(f'Saved:\n  Subtitles: {srt_path}')

    print(result.text)
    return result
