# -*- coding: utf-8 -*-
"""
Unit tests for slide list and theme persistence, and the data directory lookup.
"""

from pathlib import Path

import pytest

from present import config, persistence
from present.persistence import StoragePaths, ThemePreference


@pytest.fixture
def paths(tmp_path):
    return StoragePaths(tmp_path / "data")


def test_save_and_load_preserve_order(tmp_path):
    slides_file = tmp_path / "slides.txt"
    urls = ["https://example.com/b", "https://example.com/a.png", "https://example.com/c"]

    persistence.save_to(slides_file, urls)

    assert slides_file.read_text(encoding='utf-8') == "".join(f"{u}\n" for u in urls)
    assert persistence.load_from(slides_file) == urls


def test_load_trims_lines_and_skips_blanks(tmp_path):
    slides_file = tmp_path / "slides.txt"
    slides_file.write_text("  https://example.com/one  \n\n   \n\thttps://example.com/two\n", encoding='utf-8')

    assert persistence.load_from(slides_file) == ["https://example.com/one", "https://example.com/two"]


def test_load_missing_explicit_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        persistence.load_from(tmp_path / "nope.txt")


def test_load_default_without_saved_list_is_empty(paths):
    assert persistence.load_default(paths) == []


def test_save_default_creates_data_directory(paths):
    persistence.save_default(paths, ["https://example.com"])

    assert paths.slides_file.exists()
    assert persistence.load_default(paths) == ["https://example.com"]


def test_storage_layout(paths):
    assert paths.slides_file == paths.root / config.SLIDES_FILENAME
    assert paths.theme_file == paths.root / config.THEME_FILENAME
    assert paths.cache_root == paths.root / "cache"


def test_theme_defaults_to_system(paths):
    assert persistence.load_theme_preference(paths) is ThemePreference.SYSTEM


@pytest.mark.parametrize("preference", list(ThemePreference))
def test_theme_round_trip(paths, preference):
    persistence.save_theme_preference(paths, preference)
    assert persistence.load_theme_preference(paths) is preference


def test_unknown_theme_falls_back_to_system(paths, caplog):
    paths.root.mkdir(parents=True)
    paths.theme_file.write_text("neon", encoding='utf-8')

    assert persistence.load_theme_preference(paths) is ThemePreference.SYSTEM
    assert "Unknown theme preference 'neon'" in caplog.text


def test_theme_value_is_case_insensitive(paths):
    paths.root.mkdir(parents=True)
    paths.theme_file.write_text(" Dark\n", encoding='utf-8')
    assert persistence.load_theme_preference(paths) is ThemePreference.DARK


def test_data_dir_override(monkeypatch, tmp_path):
    monkeypatch.setenv('PRESENT_HOME', str(tmp_path / "custom"))
    assert StoragePaths.default().root == tmp_path / "custom"


def test_data_dir_follows_xdg(monkeypatch, tmp_path):
    monkeypatch.delenv('PRESENT_HOME', raising=False)
    monkeypatch.setenv('XDG_DATA_HOME', str(tmp_path))
    assert config.default_data_dir() == tmp_path / "present"


def test_data_dir_fallback_is_under_home(monkeypatch):
    monkeypatch.delenv('PRESENT_HOME', raising=False)
    monkeypatch.delenv('XDG_DATA_HOME', raising=False)
    assert config.default_data_dir() == Path.home() / ".local" / "share" / "present"
