import os
import re
import unicodedata
import uuid
from typing import Optional


def uuid_v4() -> str:
    return str(uuid.uuid4())


def join_path(*parts) -> str:
    """Join path segments with forward slashes, e.g. `join_path("default", "C4.wav")`."""
    segments = [str(p).replace("\\", "/").strip("/") for p in parts]
    return "/".join(s for s in segments if s)


def extension_of_path(path: str) -> str:
    """
    Return the extension of `path` including the leading dot, e.g. ".mp3".

    Returns an empty string when the file name has no extension.
    """
    name = str(path).replace("\\", "/").rsplit("/", 1)[-1]
    _, ext = os.path.splitext(name)
    return ext


def file_name_of_path(path: str) -> str:
    return str(path).replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]


def sanitize_filename(filename: Optional[str], default: str = "soundpack") -> str:
    """
    Normalise a user-supplied name into a filesystem-safe file name.
    """
    if not filename:
        return default

    candidate = str(filename).split("/")[-1].split("\\")[-1].strip()
    candidate = (
        unicodedata.normalize("NFKD", candidate)
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    candidate = candidate.replace(" ", "_")
    candidate = re.sub(r"[^A-Za-z0-9._~-]", "", candidate)
    candidate = candidate.lstrip("._")

    if not candidate:
        return default

    return candidate[:128]
