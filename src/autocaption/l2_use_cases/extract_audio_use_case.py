"""Use case: extract, trim, mix and resample timeline audio for the recognizer.

Everything here is synchronous and deterministic: the same timeline and sources
always yield the same samples.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from autocaption.l1_entities.audio import ENGINE_SAMPLE_RATE, PcmBuffer
from autocaption.l1_entities.errors import DecodeError, NoAudioContentError, NoAudioExtractableError
from autocaption.l1_entities.timeline import MediaItem, TimelineElement, TimelineTrack
from autocaption.l2_use_cases.ports.media_decoder import MediaDecoder
from autocaption.l2_use_cases.ports.timeline_store import MediaStore

log = logging.getLogger('acap.audio')

NORMALIZE_HEADROOM = 0.95


@dataclass(frozen=True)
class ExtractedAudio:
    """Recognizer-ready mono audio plus the timeline second its sample zero maps to."""

    pcm: PcmBuffer
    timeline_offset: float


def _sample_range(length: int, sample_rate: int, trim_start: float, duration: float) -> tuple[int, int]:
    start = round(trim_start * sample_rate)
    end = start + round(duration * sample_rate)
    start = min(max(start, 0), length)
    end = min(max(end, 0), length)
    return start, end


def extract_segment(source: PcmBuffer, trim_start: float, duration: float) -> PcmBuffer:
    """Copy ``[trim_start, trim_start + duration)`` seconds out of *source*, all channels.

    Total over any trim configuration: an empty or out-of-range span yields a
    one-sample silent buffer instead of raising.
    """
    start, end = _sample_range(source.frames, source.sample_rate, trim_start, duration)
    if end - start <= 0:
        return PcmBuffer.silent(source.sample_rate, channels=source.channels)
    return PcmBuffer(samples=source.samples[:, start:end].copy(), sample_rate=source.sample_rate)


def resample(buffer: PcmBuffer, target_rate: int) -> PcmBuffer:
    """Linear-interpolation resampler; returns *buffer* itself when rates already match.

    Not band-limited. Adequate for speech-recognition front ends only.
    """
    if buffer.sample_rate == target_rate:
        return buffer

    ratio = buffer.sample_rate / target_rate
    length = buffer.frames
    out_length = math.floor(length / ratio)
    if out_length <= 0:
        return PcmBuffer.silent(target_rate, channels=buffer.channels, frames=0)

    source_index = np.arange(out_length, dtype=np.float64) * ratio
    index = np.floor(source_index).astype(np.int64)
    fraction = (source_index - index).astype(np.float32)
    has_next = index + 1 < length
    next_index = np.where(has_next, index + 1, index)

    current = buffer.samples[:, index]
    following = buffer.samples[:, next_index]
    interpolated = np.where(has_next, current * (1 - fraction) + following * fraction, current)
    return PcmBuffer(samples=interpolated.astype(np.float32), sample_rate=target_rate)


def normalize_peak(samples: np.ndarray) -> np.ndarray:
    """Scale to ``0.95 / peak`` when the peak exceeds 1.0; otherwise return unchanged."""
    if samples.size == 0:
        return samples
    peak = float(np.max(np.abs(samples)))
    if peak > 1.0:
        return (samples * (NORMALIZE_HEADROOM / peak)).astype(np.float32)
    return samples


def _eligible(
    elements: list[TimelineElement],
    media_store: MediaStore,
) -> list[tuple[TimelineElement, MediaItem]]:
    found: list[tuple[TimelineElement, MediaItem]] = []
    for element in elements:
        if element.type != 'media' or element.media_id is None:
            continue
        media = media_store.get_media(element.media_id)
        if media is None or not media.has_audio:
            continue
        if element.effective_duration <= 0:
            log.debug('Skipping element %s: no audible span after trimming', element.id)
            continue
        found.append((element, media))
    return sorted(found, key=lambda pair: pair[0].start_time)


def compose_track(
    elements: list[TimelineElement],
    media_store: MediaStore,
    decoder: MediaDecoder,
) -> ExtractedAudio:
    """Mix every audio-bearing element into one mono stream anchored at timeline zero.

    Segments are summed (not replaced) at ``round(start_time * sr)``, then peak-normalized.
    ``timeline_offset`` is the start of the earliest element that contributed audio.
    """
    eligible = _eligible(elements, media_store)
    if not eligible:
        raise NoAudioExtractableError('No audio elements found in track')

    # Scoped to this call: a source shared by several elements decodes once.
    decoded_by_media: dict[str, PcmBuffer] = {}
    segments: list[tuple[TimelineElement, PcmBuffer]] = []
    for element, media in eligible:
        try:
            decoded = decoded_by_media.get(media.id)
            if decoded is None:
                decoded = decoded_by_media[media.id] = decoder.decode(media)
        except DecodeError as exc:
            log.warning('Failed to process audio element %s: %s', element.id, exc)
            continue
        segments.append((element, extract_segment(decoded, element.trim_start, element.effective_duration)))

    if not segments:
        raise NoAudioExtractableError('No audio segments could be processed')

    sample_rate = segments[0][1].sample_rate
    track_end = max(element.start_time + element.effective_duration for element, _ in eligible)
    output = np.zeros(round(track_end * sample_rate), dtype=np.float32)

    for element, segment in segments:
        mono = resample(segment, sample_rate).mono()
        start = round(element.start_time * sample_rate)
        copy_length = min(len(mono), len(output) - start)
        if copy_length > 0:
            output[start : start + copy_length] += mono[:copy_length]

    return ExtractedAudio(
        pcm=PcmBuffer.from_mono(normalize_peak(output), sample_rate),
        timeline_offset=segments[0][0].start_time,
    )


class ExtractAudioUseCase:
    """Produces recognizer-ready audio for a single element or a whole track."""

    def __init__(
        self,
        decoder: MediaDecoder,
        media_store: MediaStore,
        target_sample_rate: int = ENGINE_SAMPLE_RATE,
    ) -> None:
        self._decoder = decoder
        self._media_store = media_store
        self._target_rate = target_sample_rate

    def extract_element(self, element: TimelineElement, media: MediaItem) -> ExtractedAudio:
        """Trim one element to its audible span; timestamps will be relative to its start."""
        duration = element.effective_duration
        if duration <= 0:
            raise NoAudioContentError('Invalid audio duration after trimming')

        decoded = self._decoder.decode(media)
        start, end = _sample_range(decoded.frames, decoded.sample_rate, element.trim_start, duration)
        if end - start <= 0:
            raise NoAudioContentError('No audio samples to extract - check trim values')

        segment = extract_segment(decoded, element.trim_start, duration)
        mono = PcmBuffer.from_mono(segment.mono(), segment.sample_rate)
        log.debug(
            'Extracted element %s: %d frames @ %d Hz -> %d Hz',
            element.id,
            mono.frames,
            mono.sample_rate,
            self._target_rate,
        )
        return ExtractedAudio(pcm=resample(mono, self._target_rate), timeline_offset=element.start_time)

    def extract_track(self, track: TimelineTrack) -> ExtractedAudio:
        """Mix a whole track, dropping the silent lead-in before the earliest element."""
        media_elements = [e for e in track.elements if isinstance(e, TimelineElement)]
        composed = compose_track(media_elements, self._media_store, self._decoder)
        lead_in = round(composed.timeline_offset * composed.pcm.sample_rate)
        trimmed = PcmBuffer.from_mono(composed.pcm.mono()[lead_in:], composed.pcm.sample_rate)
        return ExtractedAudio(pcm=resample(trimmed, self._target_rate), timeline_offset=composed.timeline_offset)
