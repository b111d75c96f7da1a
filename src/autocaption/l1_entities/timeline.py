"""Timeline and media records consumed from (and caption elements produced for) the editor."""

from __future__ import annotations

import enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field


class MediaKind(enum.Enum):
    AUDIO = 'audio'
    VIDEO = 'video'
    IMAGE = 'image'


class Granularity(enum.Enum):
    SENTENCES = 'sentences'
    WORDS = 'words'


class MediaItem(BaseModel):
    id: str
    name: str = ''
    kind: MediaKind
    path: str = Field(description='Decodable source location for the media decoder')

    @property
    def has_audio(self) -> bool:
        return self.kind in (MediaKind.AUDIO, MediaKind.VIDEO)


class TimelineElement(BaseModel):
    """A media element placed on a track. All times are seconds."""

    id: str
    name: str = ''
    type: Literal['media'] = 'media'
    media_id: str | None = None
    start_time: float = 0.0
    duration: float = 0.0
    trim_start: float = 0.0
    trim_end: float = 0.0

    @property
    def effective_duration(self) -> float:
        return self.duration - self.trim_start - self.trim_end


class CaptionStyle(BaseModel):
    font_size: int = 36
    font_family: str = 'Arial'
    color: str = '#ffffff'
    background_color: str = 'rgba(0, 0, 0, 0.7)'
    text_align: str = 'center'
    font_weight: str = 'bold'
    x: float = 0.0
    y: float = 200.0


class CaptionElement(BaseModel):
    """Text element derived from a transcript chunk or word, in absolute timeline seconds."""

    id: str
    name: str
    content: str
    start_time: float
    duration: float
    type: Literal['text'] = 'text'
    trim_start: float = 0.0
    trim_end: float = 0.0
    style: CaptionStyle = Field(default_factory=CaptionStyle)

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


class TimelineTrack(BaseModel):
    id: str
    name: str = ''
    type: str = 'media'
    elements: list[Annotated[TimelineElement | CaptionElement, Field(discriminator='type')]] = Field(default_factory=list)


class ElementRef(BaseModel):
    track_id: str
    element_id: str
