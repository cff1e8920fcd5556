"""
Soundpack Packager
==================
Imports user-supplied soundpack archives (one audio file per note, optional
`soundpack.json` and `preview.png`) into local content roots, packs them back
into portable archives and duplicates them.

Modules:
- notes.py: The fixed note registry
- files.py: Bundled / local / url references to sound and image files
- archive.py: Streaming zip reader and directory zipping
- models.py: SoundpackMeta and the soundpack kinds
- packager.py: Import, pack, export, duplicate and reveal operations
- database.py: SQLite snapshot store
- template.py: Synthesized template soundpack generator
- cli.py: Command line interface
"""

__version__ = "1.0.0"
__author__ = "Soundpack Packager"

from .config import SoundpackConfig
from .database import SoundpackDB
from .models import BundledSoundpack, LocalSoundpack, SoundpackMeta, UrlSoundpack
from .notes import Note
from .packager import Packager
