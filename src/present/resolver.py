from __future__ import annotations
"""
Slide URL resolution.

Decides whether a slide is a cacheable image or an always-live page and
returns the best address to load: the cached local file when there is one,
the original URL otherwise. Resolution never raises; caching is an
optimization, not a requirement for showing a slide.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from .cache_store import CacheStore
from .slide_urls import image_html, is_image_url

logger = logging.getLogger(__name__)

__all__ = ['Resolution', 'SlideResolver', 'image_html', 'is_image_url', 'is_file_uri']


@dataclass(frozen=True)
class Resolution:
    """
    Where a slide should be loaded from.

    `error` holds the caching failure when an image had to fall back to its
    live URL; it is None for pages and for successful cache lookups.
    """

    url: str
    display_url: str
    is_from_cache: bool
    is_image: bool
    error: Exception | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def is_file_uri(url: str) -> bool:
    return url.lower().startswith('file://')


class SlideResolver:
    """Stateless decision layer on top of a `CacheStore`."""

    def __init__(self, cache_store: CacheStore):
        self.cache_store = cache_store

    def is_image_url(self, url: str) -> bool:
        return is_image_url(url)

    def resolve(self, url: str, cancel: threading.Event | None = None) -> Resolution:
        """
        Return the address to display for `url`.

        Pages come back unchanged. Images are looked up in the cache and
        downloaded on a miss; on success the local file URI is returned, on any
        failure the original URL.
        """
        if not is_image_url(url):
            return Resolution(url, url, is_from_cache=False, is_image=False)

        try:
            cached_path = self.cache_store.try_get_cached_path(url)
            if cached_path is None:
                entry = self.cache_store.ensure_cached(url, cancel)
                cached_path = Path(entry.file_path) if entry is not None else None
        except Exception as e:
            logger.warning(f"Could not cache '{url}', loading it live instead: {e}")
            return Resolution(url, url, is_from_cache=False, is_image=True, error=e)

        if cached_path is None:
            return Resolution(url, url, is_from_cache=False, is_image=True)
        return Resolution(url, cached_path.resolve().as_uri(), is_from_cache=True, is_image=True)
