import json
import zipfile

import pytest

from conftest import TWO_NOTES, FakeDesktop, forest_files
from soundpack.errors import SoundpackNotFoundError, UnsupportedOnPlatformError
from soundpack.files import BundledSoundFile, LocalSoundFile
from soundpack.models import LocalSoundpack, SoundpackMeta
from soundpack.notes import Note
from soundpack.packager import Packager
from soundpack.utils import extension_of_path


async def _import_forest(config, store, archive_factory, platform=None):
    packager = Packager(config, store, platform)
    archive = archive_factory("forest.zip", forest_files())
    soundpack = await packager.import_soundpack_from_file(archive, notes=TWO_NOTES)
    return packager, soundpack


@pytest.mark.anyio
async def test_pack_writes_uuid_archive_in_tmp_dir(config, store, archive_factory):
    packager, soundpack = await _import_forest(config, store, archive_factory)

    archive_path = await packager.pack_local_soundpack(soundpack)

    assert archive_path == config.tmp_dir / f"{soundpack.uuid}.zip"
    with zipfile.ZipFile(archive_path) as z:
        assert sorted(z.namelist()) == ["C4.mp3", "D4.wav", "preview.png", "soundpack.json"]
    # Source tree untouched
    assert (config.content_root(soundpack.uuid) / "C4.mp3").read_bytes() == b"c4-audio"


@pytest.mark.anyio
async def test_pack_is_idempotent(config, store, archive_factory):
    packager, soundpack = await _import_forest(config, store, archive_factory)

    first = await packager.pack_local_soundpack(soundpack)
    (config.content_root(soundpack.uuid) / "extra.txt").write_text("x")
    second = await packager.pack_local_soundpack(soundpack)

    assert first == second
    with zipfile.ZipFile(second) as z:
        assert "extra.txt" in z.namelist()


@pytest.mark.anyio
async def test_pack_without_content_root(config, store):
    with pytest.raises(SoundpackNotFoundError):
        await Packager(config, store).pack_local_soundpack(LocalSoundpack(uuid="missing"))


@pytest.mark.anyio
async def test_pack_then_import_round_trip(config, store, archive_factory):
    packager, soundpack = await _import_forest(config, store, archive_factory)

    archive_path = await packager.pack_local_soundpack(soundpack)
    reimported = await packager.import_soundpack_from_file(archive_path, notes=TWO_NOTES)

    assert reimported.uuid != soundpack.uuid
    assert reimported.meta.name == soundpack.meta.name
    for note in TWO_NOTES:
        assert extension_of_path(reimported.note2sound_file[note].local_path) == \
            extension_of_path(soundpack.note2sound_file[note].local_path)


@pytest.mark.anyio
async def test_write_meta_file_round_trip(config, store, archive_factory):
    packager, soundpack = await _import_forest(config, store, archive_factory)
    soundpack.meta = soundpack.meta.copy_with(name="Rainforest", author="Liplum")

    meta_path = await packager.write_soundpack_meta_file(soundpack)

    assert meta_path == config.content_root(soundpack.uuid) / "soundpack.json"
    assert json.loads(meta_path.read_text(encoding="utf-8"))["name"] == "Rainforest"
    reread = await packager.read_soundpack_meta_file(soundpack)
    assert reread == soundpack.meta


@pytest.mark.anyio
async def test_empty_meta_writes_nothing(config, store):
    soundpack = LocalSoundpack(uuid="empty")

    assert await Packager(config, store).write_soundpack_meta_file(soundpack) is None
    assert not (config.content_root("empty") / "soundpack.json").exists()


@pytest.mark.anyio
async def test_export_uses_sanitized_suggested_name(config, store, archive_factory, tmp_path):
    destination = tmp_path / "exports" / "mine.zip"
    platform = FakeDesktop(save_to=str(destination))
    packager, soundpack = await _import_forest(config, store, archive_factory, platform)
    soundpack.meta = SoundpackMeta(name="Forest Piano: Night?")

    exported = await packager.export_soundpack_archive(soundpack)

    assert exported == destination
    assert platform.suggested_names == ["Forest_Piano_Night.zip"]
    assert zipfile.is_zipfile(destination)
    # The packed archive is kept in the tmp dir
    assert (config.tmp_dir / f"{soundpack.uuid}.zip").exists()


@pytest.mark.anyio
async def test_export_suggests_default_name_without_meta_name(config, store, archive_factory, tmp_path):
    platform = FakeDesktop(save_to=str(tmp_path / "out.zip"))
    packager, soundpack = await _import_forest(config, store, archive_factory, platform)
    soundpack.meta = SoundpackMeta()

    await packager.export_soundpack_archive(soundpack)

    assert platform.suggested_names == ["soundpack.zip"]


@pytest.mark.anyio
async def test_export_canceled_dialog(config, store, archive_factory):
    platform = FakeDesktop(save_to=None)
    packager, soundpack = await _import_forest(config, store, archive_factory, platform)

    assert await packager.export_soundpack_archive(soundpack) is None
    assert not (config.tmp_dir / f"{soundpack.uuid}.zip").exists()


@pytest.mark.anyio
async def test_export_on_non_desktop_platform_is_rejected(config, store, archive_factory):
    packager, soundpack = await _import_forest(config, store, archive_factory)

    with pytest.raises(UnsupportedOnPlatformError):
        await packager.export_soundpack_archive(soundpack)


@pytest.mark.anyio
async def test_export_to_folder(config, store, archive_factory, tmp_path):
    packager, soundpack = await _import_forest(config, store, archive_factory)
    out_dir = tmp_path / "out"
    out_dir.mkdir()

    exported = await packager.export_soundpack_to(soundpack, out_dir)

    assert exported == out_dir / "Forest.zip"


@pytest.mark.anyio
async def test_write_sound_files_renames_to_note_ids(config, store, archive_factory):
    packager = Packager(config, store)
    archive = archive_factory("nested.zip", {"piano/C4-soft.mp3": b"c4", "D4.wav": b"d4"})
    soundpack = await packager.import_soundpack_from_file(archive, notes=TWO_NOTES)
    root = config.content_root(soundpack.uuid)

    await packager.write_sound_files(soundpack)

    assert soundpack.note2sound_file[Note.C4] == LocalSoundFile(local_path=str(root / "C4.mp3"))
    assert (root / "C4.mp3").read_bytes() == b"c4"
    assert (root / "D4.wav").read_bytes() == b"d4"
    assert not (root / "piano" / "C4-soft.mp3").exists()
    assert [p.name for p in config.tmp_dir.iterdir()] == []


@pytest.mark.anyio
async def test_write_sound_files_materializes_bundled_files(config, store):
    (config.bundled_root / "default").mkdir(parents=True)
    (config.bundled_root / "default" / "C4.wav").write_bytes(b"bundled-c4")
    soundpack = LocalSoundpack(
        uuid="mixed",
        note2sound_file={Note.C4: BundledSoundFile(path="default/C4.wav")},
    )

    await Packager(config, store).write_sound_files(soundpack)

    target = config.content_root("mixed") / "C4.wav"
    assert soundpack.note2sound_file[Note.C4] == LocalSoundFile(local_path=str(target))
    assert target.read_bytes() == b"bundled-c4"
    assert (config.bundled_root / "default" / "C4.wav").exists()


@pytest.mark.anyio
async def test_reveal_opens_file_uri_on_desktop(config, store, archive_factory):
    platform = FakeDesktop()
    packager, soundpack = await _import_forest(config, store, archive_factory, platform)

    assert await packager.reveal_soundpack_in_folder(soundpack) is True
    assert platform.opened_urls == [config.content_root(soundpack.uuid).resolve().as_uri()]


@pytest.mark.anyio
async def test_reveal_is_noop_without_desktop(config, store, archive_factory):
    packager, soundpack = await _import_forest(config, store, archive_factory)

    assert await packager.reveal_soundpack_in_folder(soundpack) is False


@pytest.mark.anyio
async def test_pick_archive_delegates_to_platform(config, store):
    packager = Packager(config, store, FakeDesktop(pick="/tmp/forest.zip"))

    assert await packager.try_pick_soundpack_archive() == "/tmp/forest.zip"
    assert await Packager(config, store).try_pick_soundpack_archive() is None


@pytest.mark.anyio
async def test_meta_file_replaces_other_letter_cases(config, store, archive_factory):
    packager = Packager(config, store)
    archive = archive_factory("upper.zip", {
        "C4.mp3": b"c4",
        "D4.wav": b"d4",
        "SOUNDPACK.JSON": b'{"name": "Old"}',
    })
    soundpack = await packager.import_soundpack_from_file(archive, notes=TWO_NOTES)
    soundpack.meta = SoundpackMeta(name="New")

    await packager.write_soundpack_meta_file(soundpack)
    packed = await packager.pack_local_soundpack(soundpack)
    reimported = await packager.import_soundpack_from_file(packed, notes=TWO_NOTES)

    root = config.content_root(soundpack.uuid)
    assert [p.name for p in root.iterdir() if p.name.lower() == "soundpack.json"] == ["soundpack.json"]
    assert (await packager.read_soundpack_meta_file(soundpack)).name == "New"
    assert reimported.meta.name == "New"


@pytest.mark.anyio
async def test_clearing_meta_removes_meta_file(config, store, archive_factory):
    packager, soundpack = await _import_forest(config, store, archive_factory)
    soundpack.meta = SoundpackMeta()

    assert await packager.write_soundpack_meta_file(soundpack) is None
    packed = await packager.pack_local_soundpack(soundpack)
    reimported = await packager.import_soundpack_from_file(packed, notes=TWO_NOTES)

    assert not (config.content_root(soundpack.uuid) / "soundpack.json").exists()
    assert await packager.read_soundpack_meta_file(soundpack) is None
    assert reimported.meta.name is None
