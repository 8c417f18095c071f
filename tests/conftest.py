# -*- coding: utf-8 -*-
"""
Configuration and fixtures for pytest.

This module defines shared fixtures used across the test suite for the presenter.
Fixtures include real image payloads generated with Pillow, a scriptable fake
downloader, cache stores rooted in temporary directories, and logging setup.
"""

import io
import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional

import pytest
from PIL import Image

from present.cache_store import CacheStore, DownloadResult
from present.resolver import SlideResolver


def _encode(fmt: str) -> bytes:
    buffer = io.BytesIO()
    Image.new('RGB', (8, 8), color='red').save(buffer, fmt)
    return buffer.getvalue()


@pytest.fixture(scope='session')
def png_bytes() -> bytes:
    """A small, valid PNG payload."""
    return _encode('PNG')


@pytest.fixture(scope='session')
def jpeg_bytes() -> bytes:
    """A small, valid JPEG payload."""
    return _encode('JPEG')


@pytest.fixture(scope='session')
def gif_bytes() -> bytes:
    """A small, valid GIF payload."""
    return _encode('GIF')


@pytest.fixture(scope='session')
def webp_bytes() -> bytes:
    """A small, valid WEBP payload."""
    return _encode('WEBP')


class FakeDownloader:
    """
    Stand-in for the network.

    Returns `result` (or calls `respond(url, cancel)` when given) and records
    every URL it was asked for. If `gate` is set, each call blocks until the
    gate opens; `started` is set as soon as the first call begins.
    """

    def __init__(self, result: Optional[DownloadResult] = None,
                 respond: Optional[Callable] = None):
        self.result = result or DownloadResult(b'\x89PNG\r\n\x1a\n' + b'\x00' * 16, 'image/png')
        self.respond = respond
        self.calls: List[str] = []
        self.gate: Optional[threading.Event] = None
        self.started = threading.Event()
        self._lock = threading.Lock()

    def __call__(self, url: str, cancel: Optional[threading.Event] = None) -> DownloadResult:
        with self._lock:
            self.calls.append(url)
        self.started.set()
        if self.gate is not None:
            assert self.gate.wait(timeout=5), "gate never opened"
        if self.respond is not None:
            return self.respond(url, cancel)
        return self.result


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def store(cache_root: Path, downloader: FakeDownloader) -> CacheStore:
    """A cache store backed by the fake downloader."""
    return CacheStore(cache_root, downloader=downloader)


@pytest.fixture
def resolver(store: CacheStore) -> SlideResolver:
    return SlideResolver(store)


@pytest.fixture
def caplog_info(caplog):
    """
    Set the logging level to INFO for the duration of a test.

    Args:
        caplog: The pytest fixture for capturing log output.

    Returns:
        LogCaptureFixture: The configured caplog fixture.
    """
    caplog.set_level(logging.INFO)
    return caplog
