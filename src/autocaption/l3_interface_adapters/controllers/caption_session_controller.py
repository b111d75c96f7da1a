"""Controller: the captioning session — selection, jobs, results list, timeline insertion, export."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from autocaption.l1_entities.config import CaptionConfig
from autocaption.l1_entities.errors import (
    AutocaptionError,
    NoAudioContentError,
    NoAudioExtractableError,
    NoElementSelectedError,
    ResultNotFoundError,
)
from autocaption.l1_entities.timeline import (
    CaptionElement,
    Granularity,
    MediaItem,
    TimelineElement,
    TimelineTrack,
)
from autocaption.l1_entities.transcript import ChunkSpan, Transcript, TranscriptionResult
from autocaption.l2_use_cases.extract_audio_use_case import ExtractAudioUseCase, ExtractedAudio
from autocaption.l2_use_cases.ports.subtitle_exporter import SubtitleExporter
from autocaption.l2_use_cases.ports.timeline_store import MediaStore, TimelineStore
from autocaption.l2_use_cases.project_captions_use_case import project_captions
from autocaption.l2_use_cases.utils.srt_format import transcript_to_srt
from autocaption.l2_use_cases.utils.transcript_builder import chunk_spans
from autocaption.l3_interface_adapters.controllers.transcription_orchestrator import (
    ProgressListener,
    TranscriptionOrchestrator,
)

log = logging.getLogger('acap.session')


@dataclass(frozen=True)
class SelectedElement:
    element: TimelineElement
    media: MediaItem
    track: TimelineTrack


class CaptionSessionController:
    """Owns the results list. Single writer: only job completion and explicit user actions mutate it."""

    def __init__(
        self,
        orchestrator: TranscriptionOrchestrator,
        extractor: ExtractAudioUseCase,
        timeline: TimelineStore,
        media_store: MediaStore,
        exporter: SubtitleExporter,
        captions: CaptionConfig,
    ) -> None:
        self._orchestrator = orchestrator
        self._extractor = extractor
        self._timeline = timeline
        self._media_store = media_store
        self._exporter = exporter
        self._captions = captions
        self._results: list[TranscriptionResult] = []

    @property
    def results(self) -> list[TranscriptionResult]:
        return list(self._results)

    def get_result(self, result_id: str) -> TranscriptionResult:
        for result in self._results:
            if result.id == result_id:
                return result
        raise ResultNotFoundError(f'No transcription result with id {result_id}')

    # -- selection --

    def selected_element_info(self) -> SelectedElement:
        refs = self._timeline.selected_elements
        if not refs:
            raise NoElementSelectedError('No element selected')
        ref = refs[0]

        track = next((t for t in self._timeline.tracks if t.id == ref.track_id), None)
        element = None
        if track is not None:
            element = next((e for e in track.elements if e.id == ref.element_id), None)
        if track is None or element is None:
            raise NoElementSelectedError('Selected element not found on the timeline')

        if not isinstance(element, TimelineElement) or element.media_id is None:
            raise NoAudioContentError('Selected element must be an audio or video element')
        media = self._media_store.get_media(element.media_id)
        if media is None or not media.has_audio:
            raise NoAudioContentError('Selected element must be an audio or video element')
        return SelectedElement(element=element, media=media, track=track)

    # -- jobs --

    async def process_selected_element(
        self,
        *,
        model: str | None = None,
        task: str | None = None,
        language: str | None = None,
        on_progress: ProgressListener | None = None,
    ) -> TranscriptionResult:
        try:
            info = self.selected_element_info()
            extracted = self._extractor.extract_element(info.element, info.media)
        except AutocaptionError as exc:
            self._orchestrator.report_error(exc)
            raise
        return await self._transcribe(info.track, extracted, model, task, language, on_progress)

    async def process_track(
        self,
        track_key: str,
        *,
        model: str | None = None,
        task: str | None = None,
        language: str | None = None,
        on_progress: ProgressListener | None = None,
    ) -> TranscriptionResult:
        """Mix every audio-bearing element on a track (by id or name) and transcribe the mix."""
        try:
            track = self._find_track(track_key)
            extracted = self._extractor.extract_track(track)
        except AutocaptionError as exc:
            self._orchestrator.report_error(exc)
            raise
        return await self._transcribe(track, extracted, model, task, language, on_progress)

    def _find_track(self, key: str) -> TimelineTrack:
        tracks = self._timeline.tracks
        track = next((t for t in tracks if t.id == key), None) or next((t for t in tracks if t.name == key), None)
        if track is None:
            raise NoAudioExtractableError(f'Track not found: {key}')
        return track

    async def _transcribe(
        self,
        track: TimelineTrack,
        extracted: ExtractedAudio,
        model: str | None,
        task: str | None,
        language: str | None,
        on_progress: ProgressListener | None,
    ) -> TranscriptionResult:
        transcript = await self._orchestrator.submit(
            extracted.pcm,
            model=model,
            task=task,
            language=language,
            on_progress=on_progress,
        )
        return self._record(track, transcript, extracted.timeline_offset)

    def _record(self, track: TimelineTrack, transcript: Transcript, timeline_offset: float) -> TranscriptionResult:
        result = TranscriptionResult(
            track_id=track.id,
            track_name=track.name or track.id,
            text=transcript.text,
            chunks=chunk_spans(transcript),
            transcript=transcript,
            timeline_offset=timeline_offset,
        )
        self._results.append(result)
        log.info('Stored result %s for track %s (%d chunk(s))', result.id, result.track_name, len(result.chunks))
        return result

    # -- results --

    def insert_result(self, result_id: str, granularity: Granularity = Granularity.SENTENCES) -> list[CaptionElement]:
        """Add the result's captions to a new text track; the stored chunks then mirror what was inserted."""
        result = self.get_result(result_id)
        elements = project_captions(
            result.transcript,
            granularity,
            result.timeline_offset,
            min_sentence_duration=self._captions.min_sentence_duration,
            min_word_duration=self._captions.min_word_duration,
            min_clamped_duration=self._captions.min_clamped_duration,
            style=self._captions.style,
        )

        track_id = self._timeline.add_track('text', name=f'Captions: {result.track_name}')
        for element in elements:
            self._timeline.add_element_to_track(track_id, element)

        inserted = [ChunkSpan(text=e.content, timestamp=(e.start_time, e.end_time)) for e in elements]
        self._replace(result.model_copy(update={'chunks': inserted}))
        log.info('Inserted %d %s caption(s) on track %s', len(elements), granularity.value, track_id)
        return elements

    def export_srt(self, result_id: str) -> Path:
        result = self.get_result(result_id)
        return self._exporter.save_srt(result.track_name, transcript_to_srt(result.transcript))

    def remove_result(self, result_id: str) -> None:
        self._results = [r for r in self._results if r.id != result_id]

    def clear_results(self) -> None:
        self._results = []

    async def reset(self) -> None:
        """Terminate the worker and drop every result."""
        await self._orchestrator.reset()
        self._results = []

    def _replace(self, updated: TranscriptionResult) -> None:
        self._results = [updated if r.id == updated.id else r for r in self._results]
