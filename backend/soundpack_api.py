from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from fastapi.responses import FileResponse
from pydantic import BaseModel
from typing import Dict, List, Optional
import logging
import tempfile
from pathlib import Path

import aiofiles

from soundpack.config import SoundpackConfig
from soundpack.database import SoundpackDB
from soundpack.errors import SoundpackError
from soundpack.models import LocalSoundpack, SoundpackMeta
from soundpack.packager import Packager

# Setup logging
logger = logging.getLogger(__name__)


class SoundpackSummary(BaseModel):
    uuid: str
    name: Optional[str] = None
    has_preview: bool = False


class SoundpackResponse(BaseModel):
    uuid: str
    meta: SoundpackMeta
    preview: Optional[str] = None
    notes: Dict[str, str]

    @classmethod
    def from_soundpack(cls, soundpack: LocalSoundpack) -> "SoundpackResponse":
        """Convert a LocalSoundpack to the response model."""
        return cls(
            uuid=soundpack.uuid,
            meta=soundpack.meta,
            preview=soundpack.preview.file_name if soundpack.preview else None,
            notes={note.id: f.file_name for note, f in soundpack.note2sound_file.items()},
        )


class SoundpackListResponse(BaseModel):
    soundpacks: List[SoundpackSummary]


soundpack_router = APIRouter(prefix="/api/soundpacks")

_config: Optional[SoundpackConfig] = None


def get_config() -> SoundpackConfig:
    """Engine configuration, read from the environment on first use."""
    global _config
    if _config is None:
        _config = SoundpackConfig.from_env()
        _config.ensure_dirs()
    return _config


def _load(db: SoundpackDB, uuid: str) -> LocalSoundpack:
    soundpack = db.get_soundpack(uuid)
    if soundpack is None:
        raise HTTPException(status_code=404, detail=f"Soundpack '{uuid}' not found")
    return soundpack


@soundpack_router.get("/list", response_model=SoundpackListResponse)
async def list_soundpacks(config: SoundpackConfig = Depends(get_config)):
    """
    List all local soundpacks.
    """
    with SoundpackDB(str(config.db_path)) as db:
        soundpacks = db.list_soundpacks()
    return SoundpackListResponse(soundpacks=[
        SoundpackSummary(uuid=s.uuid, name=s.meta.name, has_preview=s.preview is not None)
        for s in soundpacks
    ])


@soundpack_router.post("/import", response_model=SoundpackResponse)
async def import_soundpack(
    file: UploadFile = File(...),
    config: SoundpackConfig = Depends(get_config)
):
    """
    Import an uploaded soundpack archive.
    """
    config.tmp_dir.mkdir(parents=True, exist_ok=True)
    upload_dir = Path(tempfile.mkdtemp(prefix="upload_", dir=config.tmp_dir))
    archive_path = upload_dir / "soundpack.zip"
    try:
        async with aiofiles.open(archive_path, "wb") as f:
            content = await file.read()
            await f.write(content)

        with SoundpackDB(str(config.db_path)) as db:
            soundpack = await Packager(config, db).import_soundpack_from_file(archive_path)
        return SoundpackResponse.from_soundpack(soundpack)
    except SoundpackError as e:
        logger.error(f"Import of upload {file.filename} rejected: {str(e)}")
        raise HTTPException(status_code=400, detail=str(e))
    finally:
        archive_path.unlink(missing_ok=True)
        upload_dir.rmdir()


@soundpack_router.get("/{uuid}", response_model=SoundpackResponse)
async def get_soundpack(uuid: str, config: SoundpackConfig = Depends(get_config)):
    """
    Get a soundpack's latest snapshot.
    """
    with SoundpackDB(str(config.db_path)) as db:
        return SoundpackResponse.from_soundpack(_load(db, uuid))


@soundpack_router.get("/{uuid}/export")
async def export_soundpack(uuid: str, config: SoundpackConfig = Depends(get_config)):
    """
    Pack a soundpack and download the archive.
    """
    with SoundpackDB(str(config.db_path)) as db:
        soundpack = _load(db, uuid)
        packager = Packager(config, db)
        try:
            archive_path = await packager.pack_local_soundpack(soundpack)
        except SoundpackError as e:
            raise HTTPException(status_code=404, detail=str(e))
    return FileResponse(
        archive_path,
        media_type="application/zip",
        filename=packager.suggested_archive_name(soundpack),
    )


@soundpack_router.post("/{uuid}/duplicate", response_model=SoundpackResponse)
async def duplicate_soundpack(uuid: str, config: SoundpackConfig = Depends(get_config)):
    """
    Duplicate a soundpack into a new independent one.
    """
    with SoundpackDB(str(config.db_path)) as db:
        source = _load(db, uuid)
        try:
            copy = await Packager(config, db).duplicate_soundpack(source)
        except (SoundpackError, FileNotFoundError) as e:
            raise HTTPException(status_code=400, detail=f"Duplication failed: {str(e)}")
    return SoundpackResponse.from_soundpack(copy)


@soundpack_router.patch("/{uuid}/meta", response_model=SoundpackResponse)
async def update_soundpack_meta(
    uuid: str,
    meta: SoundpackMeta,
    config: SoundpackConfig = Depends(get_config)
):
    """
    Replace a soundpack's metadata, rewrite its soundpack.json and store a new snapshot.
    """
    with SoundpackDB(str(config.db_path)) as db:
        soundpack = _load(db, uuid)
        soundpack.meta = meta
        await Packager(config, db).write_soundpack_meta_file(soundpack)
        db.add_soundpack_snapshot(soundpack)
    logger.info(f"Updated meta of soundpack {uuid}")
    return SoundpackResponse.from_soundpack(soundpack)
