"""Shared test fixtures and protocol-conforming fakes."""

from __future__ import annotations

import queue
from collections.abc import Callable
from pathlib import Path

import numpy as np
import pytest

from autocaption.l1_entities.audio import PcmBuffer
from autocaption.l1_entities.backend import DeviceCapabilities
from autocaption.l1_entities.config import AppConfig
from autocaption.l1_entities.errors import DecodeError, WorkerCommunicationError, WorkerUnavailableError
from autocaption.l1_entities.timeline import (
    CaptionElement,
    ElementRef,
    MediaItem,
    MediaKind,
    TimelineElement,
    TimelineTrack,
)
from autocaption.l2_use_cases.ports.asr_engine import EngineMetadata, SegmentCallback
from autocaption.l4_frameworks_and_drivers.infra_config import build_app_config

# --- Protocol-conforming Fakes ---


class FakeMediaDecoder:
    """Fake media decoder — returns canned buffers by media id."""

    def __init__(self, buffers: dict[str, PcmBuffer] | None = None, failing: set[str] | None = None):
        self._buffers = dict(buffers or {})
        self._failing = set(failing or ())
        self.decode_calls: list[str] = []

    def decode(self, media: MediaItem) -> PcmBuffer:
        self.decode_calls.append(media.id)
        if media.id in self._failing or media.id not in self._buffers:
            raise DecodeError(f'Cannot decode {media.id}')
        return self._buffers[media.id]


class FakeTimelineStore:
    """Fake timeline + media store for L2/L3 tests."""

    def __init__(
        self,
        tracks: list[TimelineTrack] | None = None,
        media: list[MediaItem] | None = None,
        selection: list[ElementRef] | None = None,
    ):
        self._tracks = list(tracks or [])
        self._media = {m.id: m for m in media or []}
        self._selection = list(selection or [])
        self.added_tracks: list[tuple[str, str, str]] = []

    @property
    def tracks(self) -> list[TimelineTrack]:
        return self._tracks

    @property
    def selected_elements(self) -> list[ElementRef]:
        return self._selection

    def select(self, refs: list[ElementRef]) -> None:
        self._selection = list(refs)

    def add_track(self, track_type: str, name: str = '') -> str:
        track_id = f'track-{len(self.added_tracks) + 1}'
        self._tracks.append(TimelineTrack(id=track_id, name=name, type=track_type))
        self.added_tracks.append((track_id, track_type, name))
        return track_id

    def add_element_to_track(self, track_id: str, element: CaptionElement) -> None:
        track = next(t for t in self._tracks if t.id == track_id)
        track.elements.append(element)

    def get_media(self, media_id: str) -> MediaItem | None:
        return self._media.get(media_id)

    def track(self, track_id: str) -> TimelineTrack:
        return next(t for t in self._tracks if t.id == track_id)


class FakeBackendProbe:
    """Fake backend probe — fixed capabilities, or raises *error*."""

    def __init__(
        self,
        has_accelerator: bool = True,
        has_fallback: bool = True,
        warnings: list[str] | None = None,
        error: Exception | None = None,
    ):
        self._capabilities = DeviceCapabilities(
            has_accelerator=has_accelerator,
            has_fallback=has_fallback,
            warnings=list(warnings or []),
        )
        self._error = error
        self.probe_calls = 0

    def probe(self) -> DeviceCapabilities:
        self.probe_calls += 1
        if self._error is not None:
            raise self._error
        return self._capabilities


class FakeEngine:
    """Fake ASR engine — replays scripted (t0, t1, text) segments, one list per window."""

    def __init__(
        self,
        windows: list[list[tuple[float, float, str]]] | None = None,
        metadata: EngineMetadata | None = None,
        fail_on_window: int | None = None,
        dispose_error: Exception | None = None,
    ):
        self._windows = list(windows or [])
        self._metadata = metadata or EngineMetadata(chunk_length=30.0, max_source_positions=1500)
        self._fail_on_window = fail_on_window
        self._dispose_error = dispose_error
        self.load_calls: list[str] = []
        self.window_calls: list[tuple[int, str | None, str | None]] = []
        self.dispose_calls = 0

    def load(self, model_path: str) -> None:
        self.load_calls.append(model_path)

    def metadata(self) -> EngineMetadata:
        return self._metadata

    def transcribe_window(
        self,
        audio: np.ndarray,
        language: str | None,
        task: str | None,
        on_segment: SegmentCallback,
    ) -> None:
        index = len(self.window_calls)
        self.window_calls.append((len(audio), language, task))
        if self._fail_on_window == index:
            raise RuntimeError('decoder exploded')
        segments = self._windows[index] if index < len(self._windows) else []
        for t0, t1, text in segments:
            on_segment(t0, t1, text)

    def dispose(self) -> None:
        self.dispose_calls += 1
        if self._dispose_error is not None:
            raise self._dispose_error


class FakeModelResolver:
    """Fake model resolver — maps ids to fake paths and records calls."""

    def __init__(self, error: Exception | None = None):
        self._error = error
        self.resolve_calls: list[tuple[str, object]] = []

    def resolve(self, model_id: str, precision=None) -> str:
        self.resolve_calls.append((model_id, precision))
        if self._error is not None:
            raise self._error
        return f'/fake/{model_id}.bin'


_CLOSED = object()

Responder = Callable[[dict], list[dict]]


def complete_with(chunks: list[tuple[float, float, str]]) -> Responder:
    """Responder that streams one update per chunk and then completes."""

    def respond(message: dict) -> list[dict]:
        spans = [{'text': text, 'timestamp': [t0, t1]} for t0, t1, text in chunks]
        updates = [
            {
                'status': 'update',
                'data': {'stage': 'transcribing', 'progress': 5 * (i + 1), 'chunks': spans[: i + 1]},
            }
            for i in range(len(spans))
        ]
        return [*updates, {'status': 'complete', 'data': {'text': ' '.join(c[2] for c in chunks), 'chunks': spans}}]

    return respond


class FakeAsrWorker:
    """Fake worker channel — queue-backed; *responder* maps each request to reply messages."""

    def __init__(
        self,
        responder: Responder | None = None,
        startup: list[dict] | None = None,
        start_error: Exception | None = None,
    ):
        self._responder = responder or (lambda _msg: [])
        self._startup = startup if startup is not None else [{'status': 'ready'}]
        self._start_error = start_error
        self._inbox: queue.Queue = queue.Queue()
        self.sent: list[dict] = []
        self.started = False
        self.terminated = False
        self.closed = False

    def start(self) -> None:
        if self._start_error is not None:
            raise self._start_error
        self.started = True
        for message in self._startup:
            self._inbox.put(message)

    def send(self, message: dict) -> None:
        if self.terminated or self.closed:
            raise WorkerUnavailableError('Recognition worker is not running')
        self.sent.append(message)
        for reply in self._responder(message):
            self._inbox.put(reply)

    def push(self, message: dict) -> None:
        self._inbox.put(message)

    def recv(self) -> dict:
        try:
            item = self._inbox.get(timeout=5)
        except queue.Empty as e:
            raise WorkerCommunicationError('fake worker timed out') from e
        if item is _CLOSED:
            raise WorkerCommunicationError('fake worker closed')
        return item

    def terminate(self) -> None:
        self.terminated = True
        self._inbox.put(_CLOSED)

    def close(self) -> None:
        self.closed = True
        self._inbox.put(_CLOSED)


class FakeSubtitleExporter:
    """Fake subtitle exporter — records content instead of writing files."""

    def __init__(self, output_dir: Path | None = None):
        self._output_dir = output_dir or Path('/fake/output')
        self.saved: list[tuple[str, str]] = []

    def save_srt(self, track_name: str, content: str) -> Path:
        self.saved.append((track_name, content))
        return self._output_dir / f'{track_name}_subtitles.srt'


# --- Builders ---


def tone(seconds: float, sample_rate: int = 16000, value: float = 0.25, channels: int = 1) -> PcmBuffer:
    frames = round(seconds * sample_rate)
    return PcmBuffer(samples=np.full((channels, frames), value, dtype=np.float32), sample_rate=sample_rate)


def media_element(
    element_id: str,
    media_id: str,
    start_time: float = 0.0,
    duration: float = 5.0,
    trim_start: float = 0.0,
    trim_end: float = 0.0,
) -> TimelineElement:
    return TimelineElement(
        id=element_id,
        name=element_id,
        media_id=media_id,
        start_time=start_time,
        duration=duration,
        trim_start=trim_start,
        trim_end=trim_end,
    )


def audio_item(media_id: str, kind: MediaKind = MediaKind.AUDIO) -> MediaItem:
    return MediaItem(id=media_id, name=media_id, kind=kind, path=f'/media/{media_id}.wav')


# --- Standard Fixtures ---


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    d = tmp_path / 'output'
    d.mkdir()
    return d


@pytest.fixture
def default_config() -> AppConfig:
    return build_app_config({})


@pytest.fixture
def sample_config_yaml(tmp_path: Path) -> Path:
    content = """\
transcription:
  model: "small.en"
  language: "en"
  task: "transcribe"
  chunk_length: 30.0
  stride_length: 5.0
  distil_chunk_length: 20.0
  distil_stride_length: 3.0
audio:
  target_sample_rate: 16000
captions:
  min_sentence_duration: 1.5
  min_word_duration: 0.5
  min_clamped_duration: 0.0
output:
  directory: "./test_output"
"""
    p = tmp_path / 'config.yaml'
    p.write_text(content, encoding='utf-8')
    return p
