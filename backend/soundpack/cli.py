#!/usr/bin/env python3
"""
Soundpack - Main CLI Entry Point
================================
Unified CLI for all soundpack operations.

Usage:
    soundpack import ./forest.zip
    soundpack list
    soundpack info <uuid>
    soundpack export <uuid> ./forest.zip
    soundpack duplicate <uuid>
    soundpack template ./template.zip --name "Sine Piano"
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import SoundpackConfig
from .database import SoundpackDB
from .errors import SoundpackNotFoundError
from .packager import Packager
from .platform import DesktopPlatform, Platform


def _config(args) -> SoundpackConfig:
    config = SoundpackConfig.from_env()
    if args.root:
        config.soundpacks_root = Path(args.root)
    if args.tmp_dir:
        config.tmp_dir = Path(args.tmp_dir)
    if args.db:
        config.db_path = Path(args.db)
    if args.keep_failed:
        config.rollback_failed_imports = False
    config.ensure_dirs()
    return config


def _platform(args) -> Platform:
    return DesktopPlatform() if args.desktop else Platform()


def _load(db: SoundpackDB, uuid: str):
    soundpack = db.get_soundpack(uuid)
    if soundpack is None:
        raise SoundpackNotFoundError(f"Soundpack {uuid} not found")
    return soundpack


def cmd_import(args):
    """Handle import command."""
    config = _config(args)
    with SoundpackDB(str(config.db_path)) as db:
        packager = Packager(config, db, _platform(args))
        archive = args.archive or asyncio.run(packager.try_pick_soundpack_archive())
        if not archive:
            print("No archive selected")
            return 1
        soundpack = asyncio.run(packager.import_soundpack_from_file(archive))

    print(f"Imported: {soundpack.uuid}")
    print(f"  Name: {soundpack.meta.name or '(unnamed)'}")
    print(f"  Notes: {len(soundpack.note2sound_file)}")
    print(f"  Preview: {'yes' if soundpack.preview else 'no'}")
    return 0


def cmd_list(args):
    """Handle list command."""
    config = _config(args)
    with SoundpackDB(str(config.db_path)) as db:
        soundpacks = db.list_soundpacks()

    if not soundpacks:
        print("No soundpacks")
        return 0
    for soundpack in soundpacks:
        print(f"  {soundpack.uuid}  {soundpack.meta.name or '(unnamed)'}")
    return 0


def cmd_info(args):
    """Handle info command."""
    config = _config(args)
    with SoundpackDB(str(config.db_path)) as db:
        soundpack = _load(db, args.uuid)
        snapshots = db.snapshot_count(args.uuid)

    print("\n" + "="*50)
    print("SOUNDPACK INFO")
    print("="*50)
    print(f"UUID: {soundpack.uuid}")
    print(f"Content root: {soundpack.content_root(config)}")
    print(f"Snapshots: {snapshots}")
    for key, value in soundpack.meta.model_dump(exclude_none=True).items():
        print(f"{key.capitalize()}: {value}")
    print(f"Preview: {soundpack.preview.file_name if soundpack.preview else 'N/A'}")
    print("\nNotes:")
    for note, sound_file in soundpack.note2sound_file.items():
        print(f"  {note.id}: {sound_file.file_name}")
    return 0


def cmd_pack(args):
    """Handle pack command."""
    config = _config(args)
    with SoundpackDB(str(config.db_path)) as db:
        packager = Packager(config, db)
        archive = asyncio.run(packager.pack_local_soundpack(_load(db, args.uuid)))

    print(f"Packed: {archive}")
    return 0


def cmd_export(args):
    """Handle export command."""
    config = _config(args)
    with SoundpackDB(str(config.db_path)) as db:
        packager = Packager(config, db, _platform(args))
        soundpack = _load(db, args.uuid)
        if args.output:
            target = asyncio.run(packager.export_soundpack_to(soundpack, args.output))
        else:
            target = asyncio.run(packager.export_soundpack_archive(soundpack))

    if target is None:
        print("Export canceled")
        return 1
    print(f"Exported: {target}")
    return 0


def cmd_duplicate(args):
    """Handle duplicate command."""
    config = _config(args)
    with SoundpackDB(str(config.db_path)) as db:
        packager = Packager(config, db)
        copy = asyncio.run(packager.duplicate_soundpack(_load(db, args.uuid)))

    print(f"Duplicated: {args.uuid} -> {copy.uuid}")
    return 0


def cmd_reveal(args):
    """Handle reveal command."""
    config = _config(args)
    with SoundpackDB(str(config.db_path)) as db:
        packager = Packager(config, db, DesktopPlatform())
        asyncio.run(packager.reveal_soundpack_in_folder(_load(db, args.uuid)))
    return 0


def cmd_template(args):
    """Handle template generation command."""
    from .template import TemplateGenerator

    generator = TemplateGenerator(duration_seconds=args.duration)
    path = generator.build_archive(args.output, name=args.name)
    print(f"Template written: {path}")
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='soundpack',
        description='Soundpack packager - import, export and duplicate note soundpacks',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--root', help='Soundpacks root directory (default: $SOUNDPACKS_ROOT)')
    parser.add_argument('--tmp-dir', help='Directory for packed archives (default: $SOUNDPACK_TMP_DIR)')
    parser.add_argument('--db', help='Snapshot database path (default: $SOUNDPACK_DB_PATH)')
    parser.add_argument('--keep-failed', action='store_true',
                        help='Keep extracted files of a failed import')
    parser.add_argument('--desktop', action='store_true',
                        help='Use desktop file dialogs where a path is omitted')
    parser.add_argument('-v', '--verbose', action='store_true')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # IMPORT command
    import_parser = subparsers.add_parser('import', help='Import a soundpack archive')
    import_parser.add_argument('archive', nargs='?', help='Archive path (omit to pick with --desktop)')
    import_parser.set_defaults(func=cmd_import)

    # LIST command
    list_parser = subparsers.add_parser('list', help='List local soundpacks')
    list_parser.set_defaults(func=cmd_list)

    # INFO command
    info_parser = subparsers.add_parser('info', help='Display soundpack information')
    info_parser.add_argument('uuid', help='Soundpack uuid')
    info_parser.set_defaults(func=cmd_info)

    # PACK command
    pack_parser = subparsers.add_parser('pack', help='Pack a soundpack into the tmp dir')
    pack_parser.add_argument('uuid', help='Soundpack uuid')
    pack_parser.set_defaults(func=cmd_pack)

    # EXPORT command
    export_parser = subparsers.add_parser('export', help='Export a soundpack archive')
    export_parser.add_argument('uuid', help='Soundpack uuid')
    export_parser.add_argument('output', nargs='?', help='Output file or folder (omit to pick with --desktop)')
    export_parser.set_defaults(func=cmd_export)

    # DUPLICATE command
    duplicate_parser = subparsers.add_parser('duplicate', help='Duplicate a soundpack')
    duplicate_parser.add_argument('uuid', help='Soundpack uuid')
    duplicate_parser.set_defaults(func=cmd_duplicate)

    # REVEAL command
    reveal_parser = subparsers.add_parser('reveal', help='Open the soundpack folder')
    reveal_parser.add_argument('uuid', help='Soundpack uuid')
    reveal_parser.set_defaults(func=cmd_reveal)

    # TEMPLATE command
    template_parser = subparsers.add_parser('template', help='Generate a template soundpack archive')
    template_parser.add_argument('output', help='Output archive path')
    template_parser.add_argument('--name', default=None, help='Soundpack display name')
    template_parser.add_argument('--duration', type=float, default=0.6, help='Tone duration (seconds)')
    template_parser.set_defaults(func=cmd_template)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        return args.func(args)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
