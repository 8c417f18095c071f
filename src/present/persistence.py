"""
Saving and restoring the slide list and the theme preference.

The slide list is a plain text file with one URL per line. Both files and the
image cache live below one storage root, passed around explicitly as a
`StoragePaths` value.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List

from . import config

# Get a logger instance for this module
logger = logging.getLogger(__name__)


class ThemePreference(Enum):
    SYSTEM = 'system'
    LIGHT = 'light'
    DARK = 'dark'


@dataclass(frozen=True)
class StoragePaths:
    """Locations of everything the presenter keeps on disk."""

    root: Path

    @classmethod
    def default(cls) -> 'StoragePaths':
        return cls(config.default_data_dir())

    @property
    def slides_file(self) -> Path:
        return self.root / config.SLIDES_FILENAME

    @property
    def theme_file(self) -> Path:
        return self.root / config.THEME_FILENAME

    @property
    def cache_root(self) -> Path:
        return self.root / config.CACHE_DIRNAME


def load_from(path: Path) -> List[str]:
    """
    Loads slide URLs from a text file.

    Each line is stripped of surrounding whitespace and blank lines are
    skipped.

    Args:
        path (Path): The file to read.

    Returns:
        List[str]: The URLs in file order.

    Raises:
        OSError: If the file cannot be read.
    """
    with open(path, 'r', encoding='utf-8') as f:
        urls = [line.strip() for line in f if line.strip()]
    logger.info(f"Loaded {len(urls)} slides from {path}.")
    return urls


def save_to(path: Path, urls: Iterable[str]) -> None:
    """
    Saves slide URLs to a text file, one per line.

    Args:
        path (Path): The file to write. Its parent directory must exist.
        urls (Iterable[str]): The URLs in presentation order.
    """
    urls = list(urls)
    with open(path, 'w', encoding='utf-8') as f:
        for url in urls:
            f.write(f"{url}\n")
    logger.info(f"Saved {len(urls)} slides to {path}.")


def load_default(paths: StoragePaths) -> List[str]:
    """Loads the auto-saved slide list, or an empty list if there is none."""
    if not paths.slides_file.exists():
        logger.debug(f"No saved slide list at {paths.slides_file}.")
        return []
    return load_from(paths.slides_file)


def save_default(paths: StoragePaths, urls: Iterable[str]) -> None:
    """Saves the slide list to the auto-save location, creating it if needed."""
    paths.root.mkdir(parents=True, exist_ok=True)
    save_to(paths.slides_file, urls)


def load_theme_preference(paths: StoragePaths) -> ThemePreference:
    """Reads the theme preference. Missing or unknown values mean SYSTEM."""
    if not paths.theme_file.exists():
        return ThemePreference.SYSTEM
    raw = paths.theme_file.read_text(encoding='utf-8').strip().lower()
    try:
        return ThemePreference(raw)
    except ValueError:
        logger.warning(f"Unknown theme preference '{raw}' in {paths.theme_file}; using system theme.")
        return ThemePreference.SYSTEM


def save_theme_preference(paths: StoragePaths, preference: ThemePreference) -> None:
    paths.root.mkdir(parents=True, exist_ok=True)
    paths.theme_file.write_text(preference.value, encoding='utf-8')
