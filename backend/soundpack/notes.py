"""
Note Registry
=============
The fixed, ordered catalog of notes the instrument plays.

A note's `id` is the file-name prefix a soundpack archive uses for its audio,
e.g. `C4.mp3` or `sounds/C4-soft.wav` for `Note.C4`. Ids never change across
versions because persisted snapshots are keyed by them.
"""

from enum import Enum
from typing import List


class Note(Enum):
    C4 = "C4"
    D4 = "D4"
    E4 = "E4"
    F4 = "F4"
    G4 = "G4"
    A4 = "A4"
    B4 = "B4"
    C5 = "C5"

    @property
    def id(self) -> str:
        return self.value

    @property
    def frequency(self) -> float:
        """Equal-temperament pitch in Hz (A4 = 440Hz)."""
        return 440.0 * 2 ** (_SEMITONES_FROM_A4[self] / 12)

    @classmethod
    def all(cls) -> List["Note"]:
        return list(cls)

    @classmethod
    def from_id(cls, note_id: str) -> "Note":
        try:
            return cls(note_id)
        except ValueError:
            raise KeyError(f"Unknown note id: {note_id}") from None

    def __str__(self) -> str:
        return self.value


_SEMITONES_FROM_A4 = {
    Note.C4: -9,
    Note.D4: -7,
    Note.E4: -5,
    Note.F4: -4,
    Note.G4: -2,
    Note.A4: 0,
    Note.B4: 2,
    Note.C5: 3,
}
