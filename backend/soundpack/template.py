"""
Template Soundpack Generator
============================
Synthesizes a short tone for every note and bundles the result as a soundpack
archive that imports cleanly. Useful as a starting point for authors and as a
fixture for tests.

Usage:
    python -m soundpack.template ./template.zip --name "Sine Piano"
"""

import argparse
import json
import sys
import tempfile
from pathlib import Path
from typing import Iterable, Optional

import numpy as np
import soundfile as sf

from .archive import zip_directory
from .models import SOUNDPACK_META_FILE, SoundpackMeta
from .notes import Note


class TemplateGenerator:
    """
    Generates note tones and template soundpack archives.

    Each tone is a sine at the note's pitch plus two soft overtones, with a
    fast attack and exponential decay so it sounds like a plucked key.
    """

    SAMPLE_RATE = 44100

    def __init__(self, duration_seconds: float = 0.6, amplitude: float = 0.6):
        self.duration_seconds = duration_seconds
        self.amplitude = amplitude

    def generate_tone(self, frequency: float) -> np.ndarray:
        """
        Generate a decaying tone.

        Args:
            frequency: Fundamental frequency in Hz

        Returns:
            numpy array of float32 mono samples
        """
        num_samples = int(self.duration_seconds * self.SAMPLE_RATE)
        t = np.linspace(0, self.duration_seconds, num_samples, endpoint=False)

        tone = (
            np.sin(2 * np.pi * frequency * t)
            + 0.3 * np.sin(2 * np.pi * 2 * frequency * t)
            + 0.1 * np.sin(2 * np.pi * 3 * frequency * t)
        )
        tone = tone / np.max(np.abs(tone)) * self.amplitude

        envelope = np.exp(-4.0 * t / self.duration_seconds)
        # Fade in/out to prevent clicks
        fade_samples = min(100, num_samples // 4)
        envelope[:fade_samples] *= np.linspace(0, 1, fade_samples)
        envelope[-fade_samples:] *= np.linspace(1, 0, fade_samples)

        return (tone * envelope).astype(np.float32)

    def write_note_files(self, output_dir, notes: Optional[Iterable[Note]] = None) -> list:
        """Write `<note id>.wav` for every note. Returns the written paths."""
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        written = []
        for note in (list(notes) if notes is not None else Note.all()):
            path = out / f"{note.id}.wav"
            sf.write(str(path), self.generate_tone(note.frequency), self.SAMPLE_RATE, subtype='PCM_16')
            written.append(path)
        return written

    def build_archive(
        self,
        output_path,
        name: Optional[str] = None,
        notes: Optional[Iterable[Note]] = None
    ) -> Path:
        """
        Build a complete template soundpack archive.

        Args:
            output_path: Where to write the zip
            name: Display name stored in soundpack.json
            notes: Notes to synthesize (default: all notes)

        Returns:
            Path of the written archive
        """
        output_path = Path(output_path)
        with tempfile.TemporaryDirectory(prefix="soundpack-template-") as work_dir:
            self.write_note_files(work_dir, notes)
            meta_json = SoundpackMeta(name=name).to_json(indent=2)
            if meta_json is not None:
                (Path(work_dir) / SOUNDPACK_META_FILE).write_text(meta_json, encoding="utf-8")
            zip_directory(work_dir, output_path)
        return output_path


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Generate a template soundpack archive with one synthesized tone per note'
    )
    parser.add_argument('output', help='Output archive path (.zip)')
    parser.add_argument('--name', default=None, help='Soundpack display name')
    parser.add_argument('--duration', type=float, default=0.6, help='Tone duration (seconds)')

    args = parser.parse_args()

    generator = TemplateGenerator(duration_seconds=args.duration)
    path = generator.build_archive(args.output, name=args.name)
    print(json.dumps({"archive": str(path), "notes": [n.id for n in Note.all()]}))
    return 0


if __name__ == '__main__':
    sys.exit(main())
