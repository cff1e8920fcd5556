"""
Exceptions raised by the soundpack engine.
"""

from typing import List


class SoundpackError(Exception):
    """Base class for every soundpack failure the caller should present."""


class ArchiveFormatError(SoundpackError):
    """The archive is corrupt, unreadable or uses an unsupported compression."""


class NoteMatchError(SoundpackError):
    """A note could not be bound to exactly one audio file."""

    def __init__(self, note, message: str):
        super().__init__(message)
        self.note = note


class MissingNoteAudioError(NoteMatchError):
    def __init__(self, note):
        super().__init__(note, f"Sound file of Note<{note.id}> not found.")


class AmbiguousNoteAudioError(NoteMatchError):
    def __init__(self, note, candidates: List[str]):
        super().__init__(
            note,
            f"Ambiguous sound audio file detected, {candidates}, of Note<{note.id}>.",
        )
        self.candidates = list(candidates)


class UnsupportedAudioFormatError(SoundpackError):
    def __init__(self, file_name: str):
        super().__init__(f"Unsupported audio format, {file_name}.")
        self.file_name = file_name


class SoundpackMetaError(SoundpackError):
    """`soundpack.json` is not a valid metadata object."""


class UnknownFileTypeError(SoundpackError):
    def __init__(self, type_name):
        super().__init__(f"Unknown file reference type: {type_name!r}")
        self.type_name = type_name


class SoundpackNotFoundError(SoundpackError):
    pass


class UnsupportedOnPlatformError(SoundpackError):
    """The operation needs a desktop platform."""
