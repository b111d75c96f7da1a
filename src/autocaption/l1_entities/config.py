"""Configuration Pydantic models — pure schema, no infrastructure defaults."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from autocaption.l1_entities.timeline import CaptionStyle


class TranscriptionConfig(BaseModel):
    model: str
    language: str
    task: Literal['transcribe', 'translate']
    chunk_length: float = Field(gt=0)
    stride_length: float = Field(ge=0)
    distil_chunk_length: float = Field(gt=0)
    distil_stride_length: float = Field(ge=0)

    @model_validator(mode='after')
    def _stride_shorter_than_window(self) -> TranscriptionConfig:
        if self.stride_length >= self.chunk_length or self.distil_stride_length >= self.distil_chunk_length:
            raise ValueError('stride_length must be shorter than chunk_length')
        return self

    def window_for(self, model_id: str) -> tuple[float, float]:
        """Return (chunk_length, stride_length); distilled variants use shorter windows."""
        if is_distilled(model_id):
            return self.distil_chunk_length, self.distil_stride_length
        return self.chunk_length, self.stride_length


class AudioConfig(BaseModel):
    target_sample_rate: int = Field(gt=0)


class CaptionConfig(BaseModel):
    min_sentence_duration: float = Field(ge=0)
    min_word_duration: float = Field(ge=0)
    min_clamped_duration: float = Field(ge=0)
    style: CaptionStyle = Field(default_factory=CaptionStyle)


class OutputConfig(BaseModel):
    directory: str


class AppConfig(BaseModel):
    transcription: TranscriptionConfig
    audio: AudioConfig
    captions: CaptionConfig
    output: OutputConfig


def is_distilled(model_id: str) -> bool:
    return model_id.split('/')[-1].startswith('distil')


def is_english_only(model_id: str) -> bool:
    return '.en' in model_id
