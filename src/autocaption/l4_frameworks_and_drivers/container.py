"""Dependency container — composition root for wiring all layers together."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from autocaption.l1_entities.config import AppConfig
from autocaption.l1_entities.processing_status import ProcessingStatus
from autocaption.l2_use_cases.extract_audio_use_case import ExtractAudioUseCase
from autocaption.l2_use_cases.ports.asr_worker import AsrWorker
from autocaption.l2_use_cases.ports.backend_probe import BackendProbe
from autocaption.l2_use_cases.ports.config_loader import ConfigLoader
from autocaption.l2_use_cases.ports.media_decoder import MediaDecoder
from autocaption.l2_use_cases.ports.subtitle_exporter import SubtitleExporter
from autocaption.l3_interface_adapters.controllers.caption_session_controller import CaptionSessionController
from autocaption.l3_interface_adapters.controllers.transcription_orchestrator import TranscriptionOrchestrator
from autocaption.l3_interface_adapters.gateways.ffmpeg_media_decoder import FfmpegMediaDecoder
from autocaption.l3_interface_adapters.gateways.file_subtitle_exporter import FileSubtitleExporter
from autocaption.l3_interface_adapters.gateways.json_project_store import JsonProjectStore
from autocaption.l3_interface_adapters.gateways.subprocess_asr_worker import SubprocessAsrWorker
from autocaption.l3_interface_adapters.gateways.whisper_backend_probe import WhisperBackendProbe
from autocaption.l3_interface_adapters.gateways.yaml_config_loader import YamlConfigLoader


class DependencyContainer:
    """Creates and wires all concrete instances. Easy to override for testing."""

    def __init__(
        self,
        config: AppConfig,
        project: JsonProjectStore,
        output_dir: Path,
        on_status: Callable[[ProcessingStatus], None] | None = None,
        worker_factory: Callable[[], AsrWorker] | None = None,
        probe: BackendProbe | None = None,
        decoder: MediaDecoder | None = None,
    ) -> None:
        self.config = config
        self.project = project
        self.output_dir = output_dir

        self.decoder: MediaDecoder = decoder or FfmpegMediaDecoder()
        self.probe: BackendProbe = probe or WhisperBackendProbe()
        self.exporter: SubtitleExporter = FileSubtitleExporter(output_dir)
        self.extractor = ExtractAudioUseCase(
            self.decoder,
            project,
            target_sample_rate=config.audio.target_sample_rate,
        )
        self.orchestrator = TranscriptionOrchestrator(
            worker_factory or SubprocessAsrWorker,
            self.probe,
            config.transcription,
            on_status=on_status,
        )
        self.controller = CaptionSessionController(
            orchestrator=self.orchestrator,
            extractor=self.extractor,
            timeline=project,
            media_store=project,
            exporter=self.exporter,
            captions=config.captions,
        )

    @staticmethod
    def config_loader() -> ConfigLoader:
        return YamlConfigLoader()
