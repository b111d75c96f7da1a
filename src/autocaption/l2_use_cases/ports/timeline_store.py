"""Ports: timeline and media stores owned by the editor."""

from __future__ import annotations

from typing import Protocol

from autocaption.l1_entities.timeline import CaptionElement, ElementRef, MediaItem, TimelineTrack


class TimelineStore(Protocol):
    """Read access to tracks and selection; write access limited to new tracks and elements."""

    @property
    def tracks(self) -> list[TimelineTrack]: ...

    @property
    def selected_elements(self) -> list[ElementRef]: ...

    def add_track(self, track_type: str, name: str = '') -> str:
        """Create a track and return its id."""
        ...

    def add_element_to_track(self, track_id: str, element: CaptionElement) -> None:
        """Append an element to an existing track."""
        ...


class MediaStore(Protocol):
    """Lookup from element reference to media item."""

    def get_media(self, media_id: str) -> MediaItem | None: ...
