"""Port: speech recognition engine running inside the worker process."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import numpy as np

# (local_start_s, local_end_s, text) for one recognized segment inside a window
SegmentCallback = Callable[[float, float, str], None]


@dataclass(frozen=True)
class EngineMetadata:
    """Feature-extraction window length and decoder position limit, used for time precision."""

    chunk_length: float | None
    max_source_positions: int | None


class AsrEngine(Protocol):
    def load(self, model_path: str) -> None:
        """Construct the model from a local file."""
        ...

    def metadata(self) -> EngineMetadata: ...

    def transcribe_window(
        self,
        audio: np.ndarray,
        language: str | None,
        task: str | None,
        on_segment: SegmentCallback,
    ) -> None:
        """Recognize one window of 16 kHz mono audio, streaming segments as they finish."""
        ...

    def dispose(self) -> None:
        """Release the model."""
        ...
