"""Port: whisper model resolution."""

from __future__ import annotations

from typing import Protocol

from autocaption.l1_entities.backend import Precision


class ModelResolver(Protocol):
    """Abstract model resolver — maps model id and precision to a local file path."""

    def resolve(self, model_id: str, precision: Precision | None = None) -> str:
        """Resolve a model id to a usable local path. Raises on failure."""
        ...
