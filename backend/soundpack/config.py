"""
Engine configuration.

Paths and the audio allow-list are passed explicitly into the packager so that
tests can point everything at temporary directories.
"""

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

BACKEND_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_DATA_DIR = BACKEND_ROOT / "data"

SUPPORTED_AUDIO_EXTENSIONS = frozenset({".wav", ".mp3", ".ogg", ".flac", ".m4a", ".aac"})


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class SoundpackConfig:
    soundpacks_root: Path
    tmp_dir: Path
    bundled_root: Path = BACKEND_ROOT / "assets"
    db_path: Path = DEFAULT_DATA_DIR / "soundpacks.db"
    supported_audio_extensions: FrozenSet[str] = field(
        default_factory=lambda: SUPPORTED_AUDIO_EXTENSIONS
    )
    # Delete the content root of a failed import or duplication.
    rollback_failed_imports: bool = True

    def __post_init__(self):
        self.soundpacks_root = Path(self.soundpacks_root)
        self.tmp_dir = Path(self.tmp_dir)
        self.bundled_root = Path(self.bundled_root)
        self.db_path = Path(self.db_path)
        self.supported_audio_extensions = frozenset(
            ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            for ext in self.supported_audio_extensions
        )

    @classmethod
    def from_env(cls, data_dir: Optional[str] = None) -> "SoundpackConfig":
        base = Path(data_dir) if data_dir else Path(os.getenv("SOUNDPACK_DATA_DIR", DEFAULT_DATA_DIR))
        root = os.getenv("SOUNDPACKS_ROOT")
        tmp = os.getenv("SOUNDPACK_TMP_DIR")
        bundled = os.getenv("SOUNDPACK_BUNDLED_ROOT")
        db_path = os.getenv("SOUNDPACK_DB_PATH")
        return cls(
            soundpacks_root=Path(root) if root else base / "soundpacks",
            tmp_dir=Path(tmp) if tmp else Path(tempfile.gettempdir()) / "soundpack",
            bundled_root=Path(bundled) if bundled else BACKEND_ROOT / "assets",
            db_path=Path(db_path) if db_path else base / "soundpacks.db",
            rollback_failed_imports=_env_flag("SOUNDPACK_ROLLBACK", True),
        )

    def content_root(self, uuid: str) -> Path:
        return self.soundpacks_root / uuid

    def ensure_dirs(self) -> None:
        self.soundpacks_root.mkdir(parents=True, exist_ok=True)
        self.tmp_dir.mkdir(parents=True, exist_ok=True)
