"""
Soundpack models: metadata plus the local and external soundpack kinds.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from .config import SoundpackConfig
from .errors import MissingNoteAudioError, SoundpackMetaError
from .files import (
    BundledImageFile,
    BundledSoundFile,
    ImageFile,
    SoundFile,
    UrlImageFile,
    UrlSoundFile,
    image_file_from_json,
    sound_file_from_json,
)
from .notes import Note
from .utils import join_path

SOUNDPACK_META_FILE = "soundpack.json"
PREVIEW_FILE = "preview.png"


class SoundpackMeta(BaseModel):
    """Descriptive fields of a soundpack, as stored in `soundpack.json`."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    url: Optional[str] = None
    email: Optional[str] = None

    def copy_with(self, **overrides) -> "SoundpackMeta":
        return self.model_copy(update=overrides)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)

    def to_json(self, indent: Optional[int] = None) -> Optional[str]:
        """Serialize to JSON text, or None when there is nothing to persist."""
        if self.is_empty():
            return None
        return self.model_dump_json(indent=indent, exclude_none=True)

    @classmethod
    def from_json(cls, text: str) -> "SoundpackMeta":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SoundpackMetaError(f"Malformed {SOUNDPACK_META_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise SoundpackMetaError(f"{SOUNDPACK_META_FILE} must contain a JSON object")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise SoundpackMetaError(f"Invalid {SOUNDPACK_META_FILE}: {e}") from e


class Soundpack(ABC):
    """Common capability of every soundpack kind."""

    meta: SoundpackMeta
    preview: Optional[ImageFile]
    note2sound_file: Dict[Note, SoundFile]

    @property
    @abstractmethod
    def id(self) -> str:
        ...

    async def resolve(self, note: Note) -> SoundFile:
        sound_file = self.note2sound_file.get(note)
        if sound_file is None:
            raise MissingNoteAudioError(note)
        return sound_file


@dataclass(eq=False)
class LocalSoundpack(Soundpack):
    """
    A soundpack owned by this device.

    Every local file it references lives under `<soundpacks_root>/<uuid>/`.
    """
    uuid: str
    meta: SoundpackMeta = field(default_factory=SoundpackMeta)
    preview: Optional[ImageFile] = None
    note2sound_file: Dict[Note, SoundFile] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.uuid

    def content_root(self, config: SoundpackConfig) -> Path:
        return config.content_root(self.uuid)

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            "uuid": self.uuid,
            "meta": self.meta.model_dump(),
            "preview": self.preview.to_json() if self.preview else None,
            "note2SoundFile": {
                note.id: sound_file.to_json() for note, sound_file in self.note2sound_file.items()
            },
        }

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "LocalSoundpack":
        return cls(
            uuid=data["uuid"],
            meta=SoundpackMeta.model_validate(data.get("meta") or {}),
            preview=image_file_from_json(data.get("preview")),
            note2sound_file={
                Note.from_id(note_id): sound_file_from_json(raw)
                for note_id, raw in (data.get("note2SoundFile") or {}).items()
            },
        )


class ExternalSoundpack(Soundpack):
    """Read-only soundpack not stored under the local content-root convention."""


@dataclass(eq=False)
class BundledSoundpack(ExternalSoundpack):
    """Soundpack shipped with the application under `bundled_root`."""
    soundpack_id: str
    meta: SoundpackMeta = field(default_factory=SoundpackMeta)
    preview: Optional[BundledImageFile] = None
    note2sound_file: Dict[Note, BundledSoundFile] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.soundpack_id

    @classmethod
    def from_folder(cls, soundpack_id: str, folder: str, extension: str = ".wav",
                    meta: Optional[SoundpackMeta] = None) -> "BundledSoundpack":
        """Bind every note to `<folder>/<note id><extension>` below the bundled root."""
        return cls(
            soundpack_id=soundpack_id,
            meta=meta or SoundpackMeta(),
            note2sound_file={
                note: BundledSoundFile(path=join_path(folder, f"{note.id}{extension}")) for note in Note.all()
            },
        )


@dataclass(eq=False)
class UrlSoundpack(ExternalSoundpack):
    """Soundpack whose files are fetched on demand."""
    soundpack_id: str
    meta: SoundpackMeta = field(default_factory=SoundpackMeta)
    preview: Optional[UrlImageFile] = None
    note2sound_file: Dict[Note, UrlSoundFile] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.soundpack_id
