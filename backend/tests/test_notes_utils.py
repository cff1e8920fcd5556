import pytest

from soundpack.notes import Note
from soundpack.utils import extension_of_path, file_name_of_path, join_path, sanitize_filename, uuid_v4


def test_note_ids_are_unique_and_prefix_disjoint():
    ids = [note.id for note in Note.all()]

    assert ids == ["C4", "D4", "E4", "F4", "G4", "A4", "B4", "C5"]
    for a in ids:
        for b in ids:
            if a != b:
                assert not b.startswith(a)


def test_note_from_id():
    assert Note.from_id("A4") is Note.A4
    assert str(Note.C5) == "C5"
    with pytest.raises(KeyError):
        Note.from_id("H4")


def test_note_frequencies():
    assert Note.A4.frequency == pytest.approx(440.0)
    assert Note.C4.frequency == pytest.approx(261.63, abs=0.01)
    assert Note.C5.frequency == pytest.approx(2 * Note.C4.frequency)


def test_extension_of_path():
    assert extension_of_path("sounds/C4.mp3") == ".mp3"
    assert extension_of_path("C4.TAR.GZ") == ".GZ"
    assert extension_of_path("README") == ""
    assert extension_of_path("folder.v2/README") == ""


def test_file_name_of_path():
    assert file_name_of_path("piano/low/D4.ogg") == "D4.ogg"
    assert file_name_of_path("piano\\D4.ogg") == "D4.ogg"


def test_sanitize_filename():
    assert sanitize_filename("Forest Piano") == "Forest_Piano"
    assert sanitize_filename("Café Noir!") == "Cafe_Noir"
    assert sanitize_filename("../../etc/passwd") == "passwd"
    assert sanitize_filename("...") == "soundpack"
    assert sanitize_filename(None) == "soundpack"
    assert len(sanitize_filename("x" * 300)) == 128


def test_uuid_v4_is_random():
    assert uuid_v4() != uuid_v4()
    assert len(uuid_v4()) == 36


def test_join_path():
    assert join_path("default", "C4.wav") == "default/C4.wav"
    assert join_path("default/", "/piano\\", "C4.wav") == "default/piano/C4.wav"
    assert join_path("", "C4.wav") == "C4.wav"
