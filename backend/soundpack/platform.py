"""
Platform capabilities the packager needs but does not own: file dialogs and
opening URLs in the system file manager.
"""

import logging
import webbrowser
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


class Platform:
    """Headless platform: no dialogs, nothing to open."""

    is_desktop = False

    def pick_file(self, extensions: List[str]) -> Optional[str]:
        return None

    def save_file(self, suggested_name: Optional[str], extensions: List[str]) -> Optional[str]:
        return None

    def open_url(self, url: str) -> None:
        return None


HeadlessPlatform = Platform


class DesktopPlatform(Platform):
    """Desktop platform backed by tkinter file dialogs."""

    is_desktop = True

    def __init__(self, initial_dir: Optional[str] = None):
        self.initial_dir = initial_dir or str(Path.cwd())

    def _filetypes(self, extensions: List[str]):
        patterns = " ".join(f"*.{ext.lstrip('.')}" for ext in extensions)
        return [("Soundpack archive", patterns), ("All files", "*.*")]

    def _with_root(self, dialog, **kwargs) -> Optional[str]:
        import tkinter as tk
        from tkinter import filedialog

        root = tk.Tk()
        root.withdraw()
        try:
            selected = getattr(filedialog, dialog)(parent=root, initialdir=self.initial_dir, **kwargs)
        finally:
            root.destroy()
        return selected or None

    def pick_file(self, extensions: List[str]) -> Optional[str]:
        return self._with_root(
            "askopenfilename",
            title="Select soundpack archive",
            filetypes=self._filetypes(extensions),
        )

    def save_file(self, suggested_name: Optional[str], extensions: List[str]) -> Optional[str]:
        return self._with_root(
            "asksaveasfilename",
            title="Export soundpack",
            initialfile=suggested_name or "",
            defaultextension=f".{extensions[0].lstrip('.')}" if extensions else "",
            filetypes=self._filetypes(extensions),
        )

    def open_url(self, url: str) -> None:
        # webbrowser returns False when no handler is registered
        if not webbrowser.open(url):
            logger.warning(f"No handler could open {url}")
