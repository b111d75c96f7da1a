"""Gateway: JSON project file — implements TimelineStore and MediaStore ports."""

from __future__ import annotations

import logging
import os
import tempfile
import uuid
from pathlib import Path

from pydantic import BaseModel, Field

from autocaption.l1_entities.timeline import CaptionElement, ElementRef, MediaItem, TimelineTrack

log = logging.getLogger('acap.persist')


class Project(BaseModel):
    """On-disk layout of a project file."""

    name: str = ''
    media: list[MediaItem] = Field(default_factory=list)
    tracks: list[TimelineTrack] = Field(default_factory=list)
    selection: list[ElementRef] = Field(default_factory=list)


class JsonProjectStore:
    """Timeline and media lookup backed by one JSON file.

    Relative media paths are resolved against the project file's directory.
    Changes stay in memory until ``save()``.
    """

    def __init__(self, path: Path, project: Project | None = None) -> None:
        self._path = path
        self._project = project if project is not None else Project()

    @classmethod
    def open(cls, path: Path) -> JsonProjectStore:
        if not path.exists():
            raise FileNotFoundError(f'Project file not found: {path}')
        project = Project.model_validate_json(path.read_text(encoding='utf-8'))
        log.debug('Loaded project %s: %d track(s), %d media item(s)', path.name, len(project.tracks), len(project.media))
        return cls(path, project)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def project(self) -> Project:
        return self._project

    @property
    def tracks(self) -> list[TimelineTrack]:
        return self._project.tracks

    @property
    def selected_elements(self) -> list[ElementRef]:
        return self._project.selection

    def select(self, refs: list[ElementRef]) -> None:
        self._project.selection = list(refs)

    def find_track(self, key: str) -> TimelineTrack | None:
        """Look a track up by id first, then by name."""
        for track in self._project.tracks:
            if track.id == key:
                return track
        for track in self._project.tracks:
            if track.name == key:
                return track
        return None

    def add_track(self, track_type: str, name: str = '') -> str:
        track_id = str(uuid.uuid4())
        self._project.tracks.append(TimelineTrack(id=track_id, name=name, type=track_type))
        return track_id

    def add_element_to_track(self, track_id: str, element: CaptionElement) -> None:
        track = next((t for t in self._project.tracks if t.id == track_id), None)
        if track is None:
            raise KeyError(f'Unknown track: {track_id}')
        track.elements.append(element)

    def get_media(self, media_id: str) -> MediaItem | None:
        media = next((m for m in self._project.media if m.id == media_id), None)
        if media is None:
            return None
        media_path = Path(media.path)
        if not media_path.is_absolute():
            return media.model_copy(update={'path': str(self._path.parent / media_path)})
        return media

    def save(self) -> Path:
        """Write to a temp file in the same directory, then atomically replace the project file."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = self._project.model_dump_json(indent=2)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f'.{self._path.name}.', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        log.debug('Saved project to %s', self._path)
        return self._path
