import zipfile

import pytest

from soundpack.archive import ArchiveReader, zip_directory
from soundpack.errors import ArchiveFormatError


def test_entries_enumerate_files_and_folders(archive_factory):
    archive = archive_factory("a.zip", {"C4.mp3": b"c4", "sub/D4.wav": b"d4"}, dirs=["sub"])

    with ArchiveReader(archive) as reader:
        entries = {e.name: e for e in reader.entries()}
        # Enumeration can restart
        assert len(list(reader.entries())) == len(entries)

    assert set(entries) == {"sub", "C4.mp3", "sub/D4.wav"}
    assert entries["sub"].is_file is False
    assert entries["sub/D4.wav"].file_name == "D4.wav"
    assert entries["C4.mp3"].size == 2


def test_file_index_skips_folders_and_streams_to_disk(archive_factory, tmp_path):
    archive = archive_factory("a.zip", {"sub/D4.wav": b"d4"}, dirs=["sub"])

    with ArchiveReader(archive) as reader:
        index = reader.file_index()
        written = index["sub/D4.wav"].write_to(tmp_path / "out" / "sub" / "D4.wav")

    assert list(index) == ["sub/D4.wav"]
    assert written.read_bytes() == b"d4"


def test_bad_zip_is_rejected(tmp_path):
    path = tmp_path / "bad.zip"
    path.write_bytes(b"PK\x03\x04 truncated")

    with pytest.raises(ArchiveFormatError):
        with ArchiveReader(path):
            pass


def test_member_escaping_root_is_rejected(archive_factory):
    archive = archive_factory("evil.zip", {"../escape.wav": b"x"})

    with ArchiveReader(archive) as reader:
        with pytest.raises(ArchiveFormatError):
            reader.file_index()


def test_entries_require_open_archive(archive_factory):
    reader = ArchiveReader(archive_factory("a.zip", {"C4.mp3": b"c4"}))

    with pytest.raises(RuntimeError):
        list(reader.entries())


def test_zip_directory_keeps_relative_paths(tmp_path):
    src = tmp_path / "pack"
    (src / "piano").mkdir(parents=True)
    (src / "C4.mp3").write_bytes(b"c4")
    (src / "piano" / "D4.wav").write_bytes(b"d4")

    names = zip_directory(src, tmp_path / "out" / "pack.zip")

    assert names == ["C4.mp3", "piano/D4.wav"]
    with zipfile.ZipFile(tmp_path / "out" / "pack.zip") as z:
        assert z.read("piano/D4.wav") == b"d4"


def test_zip_directory_skips_its_own_output(tmp_path):
    src = tmp_path / "pack"
    src.mkdir()
    (src / "C4.mp3").write_bytes(b"c4")

    zip_directory(src, src / "pack.zip")
    names = zip_directory(src, src / "pack.zip")

    assert names == ["C4.mp3"]


def test_members_with_same_normalised_name_are_rejected(archive_factory):
    archive = archive_factory("dupe.zip", {"a/./C4.mp3": b"first", "a/C4.mp3": b"second"})

    with ArchiveReader(archive) as reader:
        with pytest.raises(ArchiveFormatError):
            reader.file_index()
