"""
Zip archive access for soundpacks.

`ArchiveReader` decodes entries lazily and streams each one straight to disk,
so large archives are never held in memory. `zip_directory` is the inverse
used when packing a content root.
"""

import logging
import shutil
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, List, Optional

from .errors import ArchiveFormatError

logger = logging.getLogger(__name__)

_DECODE_ERRORS = (zipfile.BadZipFile, zipfile.LargeZipFile, NotImplementedError, zlib.error, EOFError)


def _safe_member_name(name: str) -> Optional[str]:
    """Normalise an archive member name, or None when it escapes the root."""
    raw = PurePosixPath(name.replace("\\", "/"))
    if raw.is_absolute():
        return None
    parts = []
    for part in raw.parts:
        if part in {"", "."}:
            continue
        if part == "..":
            return None
        parts.append(part)
    if not parts:
        return None
    return "/".join(parts)


@dataclass
class ArchiveEntry:
    """One member of a zip archive."""
    name: str
    is_file: bool
    size: int
    _archive: zipfile.ZipFile
    _info: zipfile.ZipInfo

    @property
    def file_name(self) -> str:
        return self.name.rsplit("/", 1)[-1]

    def write_to(self, target) -> Path:
        """Decompress this entry directly into `target`."""
        if not self.is_file:
            raise IsADirectoryError(self.name)
        target = Path(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._archive.open(self._info, "r") as src, target.open("wb") as dst:
                shutil.copyfileobj(src, dst)
        except _DECODE_ERRORS as e:
            raise ArchiveFormatError(f"Cannot decode archive entry {self.name}: {e}") from e
        return target


class ArchiveReader:
    """
    Streaming reader over a zip container.

    Usage:
        with ArchiveReader("forest.zip") as reader:
            for entry in reader.entries():
                if entry.is_file:
                    entry.write_to(out_dir / entry.name)

    `entries()` can be called again to restart enumeration.
    """

    def __init__(self, path):
        self.path = Path(path)
        self._archive: Optional[zipfile.ZipFile] = None

    def open(self) -> None:
        try:
            self._archive = zipfile.ZipFile(self.path, "r")
        except _DECODE_ERRORS as e:
            raise ArchiveFormatError(f"Not a readable zip archive: {self.path} ({e})") from e

    def close(self) -> None:
        if self._archive:
            self._archive.close()
            self._archive = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def entries(self) -> Iterator[ArchiveEntry]:
        if not self._archive:
            raise RuntimeError("Archive not opened")
        for info in self._archive.infolist():
            name = _safe_member_name(info.filename)
            if name is None:
                raise ArchiveFormatError(f"Unsafe archive member path: {info.filename!r}")
            if info.compress_type not in _SUPPORTED_COMPRESSION:
                raise ArchiveFormatError(
                    f"Unsupported compression method {info.compress_type} for {info.filename}"
                )
            yield ArchiveEntry(
                name=name,
                is_file=not info.is_dir(),
                size=info.file_size,
                _archive=self._archive,
                _info=info,
            )

    def file_index(self) -> Dict[str, ArchiveEntry]:
        """
        Index regular-file entries by name; directory entries are skipped.

        Two members normalising to the same name raise ArchiveFormatError.
        """
        index: Dict[str, ArchiveEntry] = {}
        for entry in self.entries():
            if not entry.is_file:
                continue
            if entry.name in index:
                raise ArchiveFormatError(f"Duplicate archive member: {entry.name}")
            index[entry.name] = entry
        return index


_SUPPORTED_COMPRESSION = {zipfile.ZIP_STORED, zipfile.ZIP_DEFLATED, zipfile.ZIP_BZIP2, zipfile.ZIP_LZMA}


def zip_directory(src_dir, dest_zip) -> List[str]:
    """
    Zip every file below `src_dir` into `dest_zip`, overwriting it.

    Member names are paths relative to `src_dir`. Returns them.
    """
    root = Path(src_dir)
    dest = Path(dest_zip)
    dest.parent.mkdir(parents=True, exist_ok=True)
    names: List[str] = []
    with zipfile.ZipFile(dest, "w", zipfile.ZIP_DEFLATED) as z:
        for path in sorted(root.rglob("*")):
            if not path.is_file():
                continue
            # dest may live inside src_dir
            if path.resolve() == dest.resolve():
                continue
            rel = path.relative_to(root).as_posix()
            z.write(path, rel)
            names.append(rel)
    logger.debug(f"Zipped {len(names)} files from {root} into {dest}")
    return names
