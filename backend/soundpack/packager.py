"""
Soundpack Packager
==================
Moves soundpacks between archives, the local content roots and the snapshot
store.

- import: archive -> `<soundpacks_root>/<uuid>/` -> snapshot
- pack/export: content root -> `<tmp_dir>/<uuid>.zip` -> user destination
- duplicate: any soundpack -> new independent local soundpack

Archive format:
    <note id><anything>.<audio ext>   exactly one per note, any sub-folder
    soundpack.json                    optional metadata (case-insensitive name)
    preview.png                       optional preview (case-insensitive name)
Other files are extracted and otherwise ignored.
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import aiofiles

from .archive import ArchiveEntry, ArchiveReader, zip_directory
from .config import SoundpackConfig
from .database import SnapshotStore
from .errors import (
    AmbiguousNoteAudioError,
    MissingNoteAudioError,
    SoundpackNotFoundError,
    UnsupportedAudioFormatError,
    UnsupportedOnPlatformError,
)
from .files import LocalImageFile, LocalSoundFile, SoundFile
from .models import PREVIEW_FILE, SOUNDPACK_META_FILE, LocalSoundpack, Soundpack, SoundpackMeta
from .notes import Note
from .platform import Platform
from .utils import extension_of_path, file_name_of_path, sanitize_filename, uuid_v4

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSIONS = ["zip"]
COPY_SUFFIX = "~Copy"


class Packager:
    """
    Imports, packs, exports and duplicates soundpacks.

    Usage:
        config = SoundpackConfig.from_env()
        with SoundpackDB(str(config.db_path)) as db:
            packager = Packager(config, db)
            soundpack = await packager.import_soundpack_from_file("forest.zip")
            archive = await packager.pack_local_soundpack(soundpack)

    Nothing is handed to the store until a soundpack is completely assembled.
    """

    def __init__(
        self,
        config: SoundpackConfig,
        store: SnapshotStore,
        platform: Optional[Platform] = None
    ):
        self.config = config
        self.store = store
        self.platform = platform or Platform()

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    async def try_pick_soundpack_archive(self) -> Optional[str]:
        """Ask the user for an archive. None if canceled or unsupported."""
        return self.platform.pick_file(ARCHIVE_EXTENSIONS)

    async def import_soundpack_from_file(
        self,
        path,
        notes: Optional[Iterable[Note]] = None
    ) -> LocalSoundpack:
        """
        Import a soundpack archive as a new local soundpack.

        Args:
            path: Path of the zip archive
            notes: Note registry every soundpack must cover (default: all notes)

        Returns:
            The registered LocalSoundpack

        Raises:
            ArchiveFormatError: The archive cannot be decoded
            MissingNoteAudioError, AmbiguousNoteAudioError: A note has zero or several files
            UnsupportedAudioFormatError: A note's file is not a supported audio format
            SoundpackMetaError: `soundpack.json` is malformed
        """
        notes = list(notes) if notes is not None else Note.all()
        archive_path = Path(path)
        logger.info(f"Importing soundpack from {archive_path}")

        with ArchiveReader(archive_path) as reader:
            # Decode the whole central directory before touching the disk.
            file_index = reader.file_index()

            uuid = uuid_v4()
            root_dir = self.config.content_root(uuid)
            try:
                soundpack = await self._assemble_from_archive(uuid, root_dir, file_index, notes)
                self.store.add_soundpack_snapshot(soundpack)
            except Exception as e:
                logger.error(f"Import of {archive_path.name} failed: {e}")
                self._discard_content_root(root_dir)
                raise

        logger.info(
            f"Imported soundpack {uuid} ({soundpack.meta.name or 'unnamed'}) "
            f"with {len(soundpack.note2sound_file)} notes"
        )
        return soundpack

    async def _assemble_from_archive(
        self,
        uuid: str,
        root_dir: Path,
        file_index: Dict[str, ArchiveEntry],
        notes: List[Note]
    ) -> LocalSoundpack:
        root_dir.mkdir(parents=True, exist_ok=False)

        # Only files are mapped. A file inside a folder is named `myFolder/myFile.ext`.
        archive_name2local_path: Dict[str, Path] = {}
        for name, entry in file_index.items():
            archive_name2local_path[name] = entry.write_to(root_dir / name)

        note2sound_file = self._match_note_files(archive_name2local_path, notes)

        lower_name2local_path: Dict[str, Path] = {}
        for name, local_path in archive_name2local_path.items():
            lower_name2local_path.setdefault(name.lower(), local_path)

        meta = None
        meta_path = lower_name2local_path.get(SOUNDPACK_META_FILE)
        if meta_path is not None:
            async with aiofiles.open(meta_path, "r", encoding="utf-8") as f:
                meta = SoundpackMeta.from_json(await f.read())

        preview = None
        preview_path = lower_name2local_path.get(PREVIEW_FILE)
        if preview_path is not None:
            preview = LocalImageFile(local_path=str(preview_path))

        return LocalSoundpack(
            uuid=uuid,
            meta=meta or SoundpackMeta(),
            preview=preview,
            note2sound_file=note2sound_file,
        )

    def _match_note_files(
        self,
        archive_name2local_path: Dict[str, Path],
        notes: List[Note]
    ) -> Dict[Note, SoundFile]:
        """
        Bind each note to the single file whose name starts with the note id.

        The prefix check is case-sensitive and applies to the file name, so
        `sounds/C4.mp3` matches C4. Note ids must be prefix-disjoint.
        """
        note2sound_file: Dict[Note, SoundFile] = {}
        for note in notes:
            candidates = sorted(
                name for name in archive_name2local_path
                if file_name_of_path(name).startswith(note.id)
            )
            if not candidates:
                raise MissingNoteAudioError(note)
            if len(candidates) > 1:
                raise AmbiguousNoteAudioError(note, candidates)
            name = candidates[0]
            if extension_of_path(name).lower() not in self.config.supported_audio_extensions:
                raise UnsupportedAudioFormatError(name)
            note2sound_file[note] = LocalSoundFile(local_path=str(archive_name2local_path[name]))
        return note2sound_file

    def _discard_content_root(self, root_dir: Path) -> None:
        if not self.config.rollback_failed_imports:
            logger.warning(f"Leaving partial content root in place: {root_dir}")
            return
        if root_dir.exists():
            shutil.rmtree(root_dir)
            logger.info(f"Removed partial content root {root_dir}")

    # ------------------------------------------------------------------
    # Pack / export
    # ------------------------------------------------------------------

    async def pack_local_soundpack(self, soundpack: LocalSoundpack) -> Path:
        """
        Zip the soundpack's content root into `<tmp_dir>/<uuid>.zip`.

        Preconditions:
        - Audio files of all notes are mounted in `soundpack.note2sound_file`.

        Returns the archive path; an earlier archive of the same soundpack is
        overwritten. The content root is left untouched.
        """
        root_dir = soundpack.content_root(self.config)
        if not root_dir.is_dir():
            raise SoundpackNotFoundError(f"Content root of soundpack {soundpack.uuid} not found: {root_dir}")
        archive_path = self.config.tmp_dir / f"{soundpack.uuid}.zip"
        names = zip_directory(root_dir, archive_path)
        logger.info(f"Packed soundpack {soundpack.uuid} ({len(names)} files) into {archive_path}")
        return archive_path

    def suggested_archive_name(self, soundpack: LocalSoundpack) -> str:
        return f"{sanitize_filename(soundpack.meta.name)}.zip"

    async def export_soundpack_to(self, soundpack: LocalSoundpack, destination) -> Path:
        """Pack the soundpack and copy the archive to `destination` (file or folder)."""
        archive_path = await self.pack_local_soundpack(soundpack)
        target = Path(destination)
        if target.is_dir():
            target = target / self.suggested_archive_name(soundpack)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(archive_path, target)
        logger.info(f"Exported soundpack {soundpack.uuid} to {target}")
        return target

    async def export_soundpack_archive(self, soundpack: LocalSoundpack) -> Optional[Path]:
        """
        Ask for a destination and export the archive there.

        The packed archive in the tmp dir is kept. Returns None when the user
        cancels the dialog.
        """
        if not self.platform.is_desktop:
            raise UnsupportedOnPlatformError("Exporting soundpack archives needs a desktop platform")
        target = self.platform.save_file(self.suggested_archive_name(soundpack), ARCHIVE_EXTENSIONS)
        if not target:
            logger.info(f"Export of soundpack {soundpack.uuid} canceled")
            return None
        return await self.export_soundpack_to(soundpack, target)

    def _meta_files(self, root_dir: Path) -> List[Path]:
        """Every `soundpack.json` at the content root, in any letter case."""
        if not root_dir.is_dir():
            return []
        return sorted(
            path for path in root_dir.iterdir()
            if path.is_file() and path.name.lower() == SOUNDPACK_META_FILE
        )

    async def write_soundpack_meta_file(self, soundpack: LocalSoundpack) -> Optional[Path]:
        """
        Write `soundpack.meta` to `<content root>/soundpack.json`.

        Existing meta files in any letter case are removed first, so empty
        meta leaves no file behind. Returns None in that case.
        """
        root_dir = soundpack.content_root(self.config)
        for stale in self._meta_files(root_dir):
            stale.unlink()
        soundpack_json = soundpack.meta.to_json(indent=2)
        if soundpack_json is None:
            return None
        root_dir.mkdir(parents=True, exist_ok=True)
        meta_path = root_dir / SOUNDPACK_META_FILE
        async with aiofiles.open(meta_path, "w", encoding="utf-8") as f:
            await f.write(soundpack_json)
        return meta_path

    async def read_soundpack_meta_file(self, soundpack: LocalSoundpack) -> Optional[SoundpackMeta]:
        meta_files = self._meta_files(soundpack.content_root(self.config))
        if not meta_files:
            return None
        async with aiofiles.open(meta_files[0], "r", encoding="utf-8") as f:
            return SoundpackMeta.from_json(await f.read())

    async def write_sound_files(self, soundpack: LocalSoundpack) -> None:
        """
        Materialize every note's sound file as `<content root>/<note id><ext>`.

        Files are staged in the tmp dir first so that a file is never
        overwritten by itself. Replaced local files of the content root are
        removed and `note2sound_file` is rebound to the new files.
        """
        root_dir = soundpack.content_root(self.config)
        root_dir.mkdir(parents=True, exist_ok=True)
        self.config.tmp_dir.mkdir(parents=True, exist_ok=True)
        staging_dir = Path(tempfile.mkdtemp(prefix=f"{soundpack.uuid}-", dir=self.config.tmp_dir))
        try:
            staged: Dict[Note, Path] = {}
            for note, sound_file in soundpack.note2sound_file.items():
                staged[note] = Path(await sound_file.copy_to_folder(staging_dir / note.id, self.config))

            replaced = {
                Path(f.local_path).resolve()
                for f in soundpack.note2sound_file.values()
                if isinstance(f, LocalSoundFile) and root_dir.resolve() in Path(f.local_path).resolve().parents
            }
            note2sound_file: Dict[Note, SoundFile] = {}
            for note, staged_path in staged.items():
                target = root_dir / f"{note.id}{extension_of_path(staged_path.name)}"
                shutil.move(str(staged_path), str(target))
                note2sound_file[note] = LocalSoundFile(local_path=str(target))

            written = {Path(f.local_path).resolve() for f in note2sound_file.values()}
            for stale in replaced - written:
                stale.unlink(missing_ok=True)
        finally:
            shutil.rmtree(staging_dir, ignore_errors=True)

        soundpack.note2sound_file = note2sound_file
        logger.info(f"Wrote {len(note2sound_file)} sound files of soundpack {soundpack.uuid}")

    # ------------------------------------------------------------------
    # Duplicate / reveal
    # ------------------------------------------------------------------

    async def duplicate_soundpack(
        self,
        source: Soundpack,
        notes: Optional[Iterable[Note]] = None
    ) -> LocalSoundpack:
        """
        Copy any soundpack into a new, independent local soundpack.

        Source files are only read. Each note is copied as `<note id><ext>`,
        the preview as `preview.png` and the meta is written to
        `soundpack.json`, so the copy packs into an importable archive. If any
        note cannot be resolved or copied nothing is registered.
        """
        notes = list(notes) if notes is not None else Note.all()
        uuid = uuid_v4()
        source_meta = getattr(source, "meta", None)
        if source_meta is not None:
            source_name = source_meta.name
            meta = source_meta.copy_with(
                name=None if source_name is None else f"{source_name}{COPY_SUFFIX}"
            )
        else:
            meta = SoundpackMeta()

        root_dir = self.config.content_root(uuid)
        root_dir.mkdir(parents=True, exist_ok=False)
        try:
            note2sound_file: Dict[Note, SoundFile] = {}
            for note in notes:
                sound_file = await source.resolve(note)
                file_name = f"{note.id}{extension_of_path(sound_file.file_name)}"
                local_path = await sound_file.copy_to_folder(root_dir, self.config, file_name)
                note2sound_file[note] = LocalSoundFile(local_path=local_path)

            preview = None
            if source.preview is not None:
                preview_path = await source.preview.copy_to_folder(root_dir, self.config, PREVIEW_FILE)
                preview = LocalImageFile(local_path=preview_path)

            soundpack = LocalSoundpack(
                uuid=uuid,
                meta=meta,
                preview=preview,
                note2sound_file=note2sound_file,
            )
            await self.write_soundpack_meta_file(soundpack)
            self.store.add_soundpack_snapshot(soundpack)
        except Exception as e:
            logger.error(f"Duplication of soundpack {source.id} failed: {e}")
            self._discard_content_root(root_dir)
            raise

        logger.info(f"Duplicated soundpack {source.id} as {uuid}")
        return soundpack

    async def reveal_soundpack_in_folder(self, soundpack: LocalSoundpack) -> bool:
        """Open the content root in the system file manager. Desktop only."""
        if not self.platform.is_desktop:
            return False
        url = soundpack.content_root(self.config).resolve().as_uri()
        self.platform.open_url(url)
        return True
