"""PCM buffer entity and audio constants."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

ENGINE_SAMPLE_RATE = 16000


@dataclass(frozen=True)
class PcmBuffer:
    """Decoded linear PCM, channel-planar: ``samples`` has shape ``(channels, frames)``.

    Values are nominally in [-1, 1]; mixing may overshoot until normalization runs.
    """

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        if self.samples.ndim != 2:
            raise ValueError(f'samples must be 2-D (channels, frames), got shape {self.samples.shape}')
        if self.sample_rate <= 0:
            raise ValueError(f'sample_rate must be positive, got {self.sample_rate}')

    @classmethod
    def from_mono(cls, samples: np.ndarray, sample_rate: int) -> PcmBuffer:
        return cls(samples=np.asarray(samples, dtype=np.float32).reshape(1, -1), sample_rate=sample_rate)

    @classmethod
    def silent(cls, sample_rate: int, channels: int = 1, frames: int = 1) -> PcmBuffer:
        return cls(samples=np.zeros((channels, frames), dtype=np.float32), sample_rate=sample_rate)

    @property
    def channels(self) -> int:
        return self.samples.shape[0]

    @property
    def frames(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate

    def mono(self) -> np.ndarray:
        """Channel 0 only. No down-mix averaging, so output is deterministic per source."""
        return self.samples[0]
