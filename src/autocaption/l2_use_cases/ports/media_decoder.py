"""Port: media decoding to PCM."""

from __future__ import annotations

from typing import Protocol

from autocaption.l1_entities.audio import PcmBuffer
from autocaption.l1_entities.timeline import MediaItem


class MediaDecoder(Protocol):
    """Decodes a media item's audio at its native rate and channel count."""

    def decode(self, media: MediaItem) -> PcmBuffer:
        """Return the full decoded audio. Raises DecodeError on failure."""
        ...
