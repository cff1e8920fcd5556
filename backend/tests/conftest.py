"""
Pytest fixtures for soundpack tests.
"""
import zipfile
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest

from soundpack.config import SoundpackConfig
from soundpack.notes import Note
from soundpack.platform import Platform

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
TWO_NOTES = [Note.C4, Note.D4]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def config(tmp_path):
    """Engine configuration rooted in a temporary directory."""
    return SoundpackConfig(
        soundpacks_root=tmp_path / "soundpacks",
        tmp_dir=tmp_path / "tmp",
        bundled_root=tmp_path / "bundled",
        db_path=tmp_path / "soundpacks.db",
    )


class MemoryStore:
    """Snapshot store that keeps everything in a list."""

    def __init__(self):
        self.snapshots = []

    def add_soundpack_snapshot(self, soundpack):
        self.snapshots.append(soundpack)


@pytest.fixture
def store():
    return MemoryStore()


class FakeDesktop(Platform):
    """Desktop platform with scripted dialog answers."""

    is_desktop = True

    def __init__(self, pick: Optional[str] = None, save_to: Optional[str] = None):
        self.pick = pick
        self.save_to = save_to
        self.suggested_names = []
        self.opened_urls = []

    def pick_file(self, extensions):
        return self.pick

    def save_file(self, suggested_name, extensions):
        self.suggested_names.append(suggested_name)
        return self.save_to

    def open_url(self, url):
        self.opened_urls.append(url)


@pytest.fixture
def archive_factory(tmp_path):
    """Build zip archives from a name -> bytes mapping."""
    def make(name: str, files: Dict[str, bytes], dirs: Iterable[str] = ()) -> Path:
        path = tmp_path / "archives" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as z:
            for d in dirs:
                z.writestr(d.rstrip("/") + "/", b"")
            for member, data in files.items():
                z.writestr(member, data)
        return path

    return make


def forest_files() -> Dict[str, bytes]:
    return {
        "C4.mp3": b"c4-audio",
        "D4.wav": b"d4-audio",
        "soundpack.json": b'{"name": "Forest"}',
        "preview.png": PNG_BYTES,
    }


def all_note_files(extension: str = ".wav") -> Dict[str, bytes]:
    return {f"{note.id}{extension}": f"{note.id}-audio".encode() for note in Note.all()}
