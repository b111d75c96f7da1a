"""Inference backend capabilities and selection."""

from __future__ import annotations

import enum

from pydantic import BaseModel, Field


class Device(enum.Enum):
    ACCELERATED = 'gpu'
    FALLBACK = 'cpu'


class Precision(enum.Enum):
    FP16 = 'fp16'
    Q8 = 'q8_0'

    @property
    def is_quantized(self) -> bool:
        return self is Precision.Q8


class DeviceCapabilities(BaseModel):
    has_accelerator: bool
    has_fallback: bool
    warnings: list[str] = Field(default_factory=list)

    @property
    def recommended_backend(self) -> Device:
        return Device.ACCELERATED if self.has_accelerator else Device.FALLBACK


class BackendSelection(BaseModel):
    device: Device
    precision: Precision
