"""
File references
===============
Describe where a sound or image lives without caring how it is played or shown.

Three storage kinds exist for both sounds and images:
- Bundled: shipped with the application, read-only, relative to `bundled_root`
- Local: an absolute path, usually inside a soundpack's content root
- Url: a remote resource, downloaded into the tmp dir when resolved

Every reference serializes with an explicit `type` tag and `version` so that
snapshots written by older builds keep loading.
"""

import hashlib
import logging
import shutil
from pathlib import Path
from typing import Any, ClassVar, Dict, Literal, Optional, Type, Union
from urllib.parse import unquote, urlparse

import aiofiles
import httpx
from pydantic import BaseModel, ConfigDict

from .config import SoundpackConfig
from .errors import UnknownFileTypeError
from .utils import extension_of_path, file_name_of_path

logger = logging.getLogger(__name__)

URL_CACHE_DIR_NAME = "url-cache"


class FileRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    version: int = 1

    @property
    def file_name(self) -> str:
        raise NotImplementedError

    async def resolve(self, config: SoundpackConfig) -> Path:
        """Return a local path holding this file's bytes."""
        raise NotImplementedError

    async def copy_to_folder(
        self,
        root_dir,
        config: SoundpackConfig,
        file_name: Optional[str] = None
    ) -> str:
        """
        Copy the file into `root_dir`, under `file_name` or its own file name.

        The source is never moved or removed. Returns the new local path.
        """
        source = await self.resolve(config)
        root = Path(root_dir)
        root.mkdir(parents=True, exist_ok=True)
        target = root / (file_name or self.file_name)
        if target.exists() and target.resolve() == source.resolve():
            return str(target)
        shutil.copyfile(source, target)
        logger.debug(f"Copied {source} -> {target}")
        return str(target)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump()


class BundledFile(FileRef):
    path: str

    @property
    def file_name(self) -> str:
        return file_name_of_path(self.path)

    async def resolve(self, config: SoundpackConfig) -> Path:
        resolved = config.bundled_root / self.path
        if not resolved.is_file():
            raise FileNotFoundError(f"Bundled file not found: {resolved}")
        return resolved


class LocalFile(FileRef):
    local_path: str

    @property
    def file_name(self) -> str:
        return file_name_of_path(self.local_path)

    async def resolve(self, config: SoundpackConfig) -> Path:
        resolved = Path(self.local_path)
        if not resolved.is_file():
            raise FileNotFoundError(f"Local file not found: {resolved}")
        return resolved


class UrlFile(FileRef):
    url: str

    @property
    def file_name(self) -> str:
        name = file_name_of_path(unquote(urlparse(self.url).path))
        if not name:
            name = hashlib.sha1(self.url.encode("utf-8")).hexdigest()[:16]
        return name

    def _cache_path(self, config: SoundpackConfig) -> Path:
        digest = hashlib.sha1(self.url.encode("utf-8")).hexdigest()[:16]
        return config.tmp_dir / URL_CACHE_DIR_NAME / f"{digest}{extension_of_path(self.file_name)}"

    async def resolve(
        self,
        config: SoundpackConfig,
        client: Optional[httpx.AsyncClient] = None
    ) -> Path:
        """Download into the url cache unless already cached. Uses `client` when given."""
        target = self._cache_path(config)
        if target.is_file():
            return target
        target.parent.mkdir(parents=True, exist_ok=True)
        if client is None:
            async with httpx.AsyncClient(timeout=60.0, follow_redirects=True) as client:
                await self._download(client, target)
        else:
            await self._download(client, target)
        logger.info(f"Downloaded {self.url} -> {target}")
        return target

    async def _download(self, client: httpx.AsyncClient, target: Path) -> None:
        partial = target.with_name(target.name + ".part")
        try:
            async with client.stream("GET", self.url) as response:
                response.raise_for_status()
                async with aiofiles.open(partial, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        await f.write(chunk)
            partial.replace(target)
        except httpx.HTTPError as e:
            logger.error(f"Download of {self.url} failed: {e}")
            raise
        finally:
            partial.unlink(missing_ok=True)


class BundledSoundFile(BundledFile):
    TYPE: ClassVar[str] = "calcupiano.BundledSoundFile"
    type: Literal["calcupiano.BundledSoundFile"] = "calcupiano.BundledSoundFile"


class LocalSoundFile(LocalFile):
    TYPE: ClassVar[str] = "calcupiano.LocalSoundFile"
    type: Literal["calcupiano.LocalSoundFile"] = "calcupiano.LocalSoundFile"


class UrlSoundFile(UrlFile):
    TYPE: ClassVar[str] = "calcupiano.UrlSoundFile"
    type: Literal["calcupiano.UrlSoundFile"] = "calcupiano.UrlSoundFile"


class BundledImageFile(BundledFile):
    TYPE: ClassVar[str] = "calcupiano.BundledImageFile"
    type: Literal["calcupiano.BundledImageFile"] = "calcupiano.BundledImageFile"


class LocalImageFile(LocalFile):
    TYPE: ClassVar[str] = "calcupiano.LocalImageFile"
    type: Literal["calcupiano.LocalImageFile"] = "calcupiano.LocalImageFile"


class UrlImageFile(UrlFile):
    TYPE: ClassVar[str] = "calcupiano.UrlImageFile"
    type: Literal["calcupiano.UrlImageFile"] = "calcupiano.UrlImageFile"


SoundFile = Union[BundledSoundFile, LocalSoundFile, UrlSoundFile]
ImageFile = Union[BundledImageFile, LocalImageFile, UrlImageFile]

SOUND_FILE_TYPES: Dict[str, Type[FileRef]] = {
    cls.TYPE: cls for cls in (BundledSoundFile, LocalSoundFile, UrlSoundFile)
}
IMAGE_FILE_TYPES: Dict[str, Type[FileRef]] = {
    cls.TYPE: cls for cls in (BundledImageFile, LocalImageFile, UrlImageFile)
}


def _from_json(data: Dict[str, Any], registry: Dict[str, Type[FileRef]]) -> FileRef:
    type_name = data.get("type") if isinstance(data, dict) else None
    cls = registry.get(type_name)
    if cls is None:
        raise UnknownFileTypeError(type_name)
    return cls.model_validate(data)


def sound_file_from_json(data: Dict[str, Any]) -> SoundFile:
    return _from_json(data, SOUND_FILE_TYPES)


def image_file_from_json(data: Optional[Dict[str, Any]]) -> Optional[ImageFile]:
    if data is None:
        return None
    return _from_json(data, IMAGE_FILE_TYPES)
