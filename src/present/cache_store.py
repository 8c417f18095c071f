from __future__ import annotations
"""
Content-addressable on-disk cache for image slides.

Each image URL is stored as `<cache_root>/images/<fingerprint><ext>`, where the
fingerprint is the lowercase SHA-256 of the exact URL string and the extension
is inferred from the downloaded bytes. The file name is the only index: there
is no metadata file. Concurrent requests for the same URL share one download,
and files are written to a temporary name and renamed into place so a reader
never observes a partial file.
"""

import hashlib
import logging
import shutil
import threading
import uuid
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

import requests

from . import config
from .exceptions.present_errors import CancelledOperation, DownloadError, UnrecognizedPayload
from .slide_urls import image_extension_from_url, is_image_url
from .slides import is_blank_url

logger = logging.getLogger(__name__)

_PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'
_JPEG_SIGNATURE = b'\xff\xd8\xff'
_GIF_SIGNATURES = (b'GIF87a', b'GIF89a')

# How often a caller waiting on somebody else's download re-checks its own token.
_JOIN_POLL_INTERVAL = 0.05

# How many times a write is retried after its temporary file was swept.
_WRITE_ATTEMPTS = 3


class CacheKind(Enum):
    IMAGE = 'image'
    PAGE = 'page'


@dataclass(frozen=True)
class CacheEntry:
    """Result of `CacheStore.ensure_cached`. For pages `file_path` is the URL itself."""

    url: str
    fingerprint: str
    kind: CacheKind
    file_path: str


@dataclass(frozen=True)
class DownloadResult:
    """Raw payload returned by a downloader."""

    content: bytes
    content_type: str | None = None
    final_url: str | None = None


Downloader = Callable[[str, Optional[threading.Event]], DownloadResult]


def fingerprint(url: str) -> str:
    """Return the cache key of a URL: the lowercase hex SHA-256 of the exact string."""
    return hashlib.sha256(url.encode('utf-8')).hexdigest()


def sniff_image_extension(content: bytes) -> str | None:
    """Identify PNG, JPEG, WEBP and GIF payloads from their leading bytes."""
    if content.startswith(_PNG_SIGNATURE):
        return '.png'
    if content.startswith(_JPEG_SIGNATURE):
        return '.jpg'
    if len(content) >= 12 and content[:4] == b'RIFF' and content[8:12] == b'WEBP':
        return '.webp'
    if content[:6] in _GIF_SIGNATURES:
        return '.gif'
    return None


def resolve_image_extension(url: str, payload: DownloadResult) -> str | None:
    """
    Decide which extension a downloaded payload is stored under.

    The first match wins:
      1. magic bytes of the payload;
      2. the declared content type, mapped through `CONTENT_TYPE_EXTENSIONS`;
      3. the extension of the final (post-redirect) URL.

    A declared content type that is not `image/*` rejects the payload outright,
    so an HTML error page served for an image URL is never cached.

    Args:
        url: The URL that was requested.
        payload: The downloaded bytes and response metadata.

    Returns:
        The extension including its dot, or None if the payload is not a
        recognizable image.
    """
    ext = sniff_image_extension(payload.content)
    if ext:
        return ext

    content_type = (payload.content_type or '').split(';', 1)[0].strip().lower()
    if content_type and not content_type.startswith('image/'):
        return None

    ext = config.CONTENT_TYPE_EXTENSIONS.get(content_type)
    if ext:
        return ext

    return image_extension_from_url(payload.final_url or url)


def download(url: str, cancel: threading.Event | None = None) -> DownloadResult:
    """
    Download a URL with `requests`, checking the cancellation token between chunks.

    Raises:
        DownloadError: On any transport or HTTP status failure.
        CancelledOperation: If `cancel` is set while the body is streaming.
    """
    headers = {'User-Agent': config.USER_AGENT, 'Accept': config.ACCEPT_HEADER}
    chunks: list[bytes] = []
    try:
        with requests.get(url, headers=headers, timeout=config.DOWNLOAD_TIMEOUT, stream=True) as response:
            response.raise_for_status()
            for chunk in response.iter_content(chunk_size=config.DOWNLOAD_CHUNK_SIZE):
                if cancel is not None and cancel.is_set():
                    raise CancelledOperation(f"Download of '{url}' was cancelled.")
                chunks.append(chunk)
            content_type = response.headers.get('Content-Type')
            final_url = response.url
    except requests.RequestException as e:
        raise DownloadError(url, str(e)) from e

    logger.debug(f"Downloaded {sum(len(c) for c in chunks)} bytes from '{final_url}' ({content_type}).")
    return DownloadResult(b''.join(chunks), content_type, final_url)


class CacheStore:
    """
    Maps slide URLs to local files holding their downloaded image bytes.

    Page URLs are never written to disk; `ensure_cached` hands them back
    unchanged. All methods may be called from any thread.
    """

    def __init__(self, cache_root: Path, downloader: Downloader | None = None):
        self.cache_root = Path(cache_root)
        self._downloader = downloader or download
        self._in_flight: dict[str, Future] = {}
        self._in_flight_lock = threading.Lock()
        self.image_dir.mkdir(parents=True, exist_ok=True)

    @property
    def image_dir(self) -> Path:
        return self.cache_root / config.IMAGE_CACHE_DIRNAME

    def ensure_cached(self, url: str, cancel: threading.Event | None = None) -> CacheEntry | None:
        """
        Make sure the image behind `url` is on disk and return its cache entry.

        Only one download per URL runs at a time: the first caller performs it
        and later callers for the same URL wait for that result. The download
        runs under the first caller's `cancel` token, so cancelling it fails
        every waiter with `CancelledOperation`; a waiter's own token only stops
        that waiter from waiting.

        Args:
            url: The slide URL.
            cancel: Optional cancellation token.

        Returns:
            The cache entry, or None for an empty or placeholder URL.

        Raises:
            DownloadError: The download failed.
            UnrecognizedPayload: The bytes are not a supported image.
            CancelledOperation: The token was set before the entry was ready.
        """
        if is_blank_url(url):
            return None

        key = fingerprint(url)
        if not is_image_url(url):
            # Pages are warmed by the browser engine's own disk cache.
            return CacheEntry(url, key, CacheKind.PAGE, url)

        existing = self._find_cached(key)
        if existing is not None:
            logger.debug(f"Cache hit for '{url}': {existing.name}")
            return CacheEntry(url, key, CacheKind.IMAGE, str(existing))

        with self._in_flight_lock:
            pending = self._in_flight.get(url)
            is_owner = pending is None
            if is_owner:
                pending = Future()
                self._in_flight[url] = pending

        if not is_owner:
            logger.debug(f"Joining in-flight download for '{url}'.")
            return self._wait_for(pending, url, cancel)

        # The registration is dropped before the future settles, so a caller
        # arriving after a failure starts a fresh download.
        try:
            entry = self._download_and_store(url, key, cancel)
        except Exception as e:
            self._release(url, pending)
            pending.set_exception(e)
            raise
        except BaseException:
            self._release(url, pending)
            pending.set_exception(CancelledOperation(f"Download of '{url}' was interrupted."))
            raise
        self._release(url, pending)
        pending.set_result(entry)
        return entry

    def try_get_cached_path(self, url: str) -> Path | None:
        """Return the cached file for an image URL without touching the network."""
        if is_blank_url(url) or not is_image_url(url):
            return None
        return self._find_cached(fingerprint(url))

    def remove_cached(self, url: str) -> None:
        """Delete every cached file of `url`. Missing files are not an error."""
        if is_blank_url(url):
            return
        for match in self.image_dir.glob(f"{fingerprint(url)}.*"):
            match.unlink(missing_ok=True)
            logger.debug(f"Removed cache file '{match.name}' for '{url}'.")

    def clear_all(self) -> None:
        """Delete the whole cache root and recreate an empty image directory."""
        try:
            shutil.rmtree(self.cache_root)
        except FileNotFoundError:
            pass
        self.image_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Cleared image cache at {self.cache_root}")

    def in_flight_count(self) -> int:
        with self._in_flight_lock:
            return len(self._in_flight)

    def _release(self, url: str, pending: Future) -> None:
        with self._in_flight_lock:
            if self._in_flight.get(url) is pending:
                del self._in_flight[url]

    def _find_cached(self, key: str) -> Path | None:
        matches = sorted(
            p for p in self.image_dir.glob(f"{key}.*")
            if config.TEMP_FILE_MARKER not in p.name
        )
        return matches[0] if matches else None

    def _wait_for(self, pending: Future, url: str, cancel: threading.Event | None) -> CacheEntry:
        if cancel is None:
            return pending.result()
        while True:
            if cancel.is_set():
                raise CancelledOperation(f"Stopped waiting for the download of '{url}'.")
            try:
                return pending.result(timeout=_JOIN_POLL_INTERVAL)
            except FutureTimeoutError:
                continue

    def _download_and_store(self, url: str, key: str, cancel: threading.Event | None) -> CacheEntry:
        existing = self._find_cached(key)
        if existing is not None:
            return CacheEntry(url, key, CacheKind.IMAGE, str(existing))

        _raise_if_cancelled(url, cancel)
        logger.info(f"Caching image '{url}'")
        payload = self._downloader(url, cancel)

        ext = resolve_image_extension(url, payload)
        if ext is None:
            raise UnrecognizedPayload(url, payload.content_type)

        _raise_if_cancelled(url, cancel)
        final_path = self._write_atomic(url, key, ext, payload.content)
        logger.debug(f"Stored '{url}' as {final_path.name}")
        return CacheEntry(url, key, CacheKind.IMAGE, str(final_path))

    def _write_atomic(self, url: str, key: str, ext: str, content: bytes) -> Path:
        """
        Write `content` to a temporary file, then rename it to `<key><ext>`.

        Stale files of the same fingerprint (other extensions, abandoned
        temporary files) are removed first; the literal final path and our own
        temporary file are never touched. If the final path already exists a
        concurrent writer got there first and our copy is discarded.

        Another writer's cleanup pass may remove our temporary file before it
        is renamed. If no cached file survived either, the write starts over
        with a fresh temporary file, up to `_WRITE_ATTEMPTS` times.
        """
        self.image_dir.mkdir(parents=True, exist_ok=True)
        final_path = self.image_dir / f"{key}{ext}"
        for attempt in range(1, _WRITE_ATTEMPTS + 1):
            temp_path = self.image_dir / f"{key}{config.TEMP_FILE_MARKER}{uuid.uuid4().hex}"
            try:
                temp_path.write_bytes(content)
            except OSError:
                temp_path.unlink(missing_ok=True)
                raise

            for match in self.image_dir.glob(f"{key}.*"):
                if match == temp_path or match == final_path:
                    continue
                logger.debug(f"Removing stale cache file '{match.name}'")
                match.unlink(missing_ok=True)

            if final_path.exists():
                temp_path.unlink(missing_ok=True)
                return final_path

            try:
                temp_path.rename(final_path)
            except FileExistsError:
                temp_path.unlink(missing_ok=True)
            except FileNotFoundError:
                survivor = self._find_cached(key)
                if survivor is not None:
                    return survivor
                logger.debug(f"Temporary file for '{url}' was swept by another writer "
                             f"(attempt {attempt}/{_WRITE_ATTEMPTS}).")
                continue
            return final_path

        raise DownloadError(url, "cache file was removed before it could be stored")


def _raise_if_cancelled(url: str, cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise CancelledOperation(f"Caching of '{url}' was cancelled.")
