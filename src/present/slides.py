from __future__ import annotations
"""
Slide data model.

A slide is one URL in the presentation plus the state of its local image
cache and of the source it was last displayed from. Slides are owned by the
presentation controller; every state change it makes is also published as a
`SlideChange` record so the UI layer can follow a diff instead of watching
fields.
"""

from dataclasses import dataclass
from enum import Enum
import itertools
from typing import Any

from .config import DEFAULT_ZOOM, PLACEHOLDER_URL

_slide_ids = itertools.count(1)


class CacheState(Enum):
    UNKNOWN = 'unknown'
    CACHING = 'caching'
    CACHED = 'cached'
    FAILED = 'failed'


class SourceState(Enum):
    UNKNOWN = 'unknown'
    CACHE = 'cache'
    NETWORK = 'network'
    FAILED = 'failed'


def is_blank_url(url: str | None) -> bool:
    """Return True for an empty URL or the editor's placeholder."""
    return not url or not url.strip() or url.strip() == PLACEHOLDER_URL


class Slide:
    """
    A single slide entry.

    `position` is 1-based and recomputed by the controller after every list
    mutation. Assigning a different `url` resets `cache_state` to UNKNOWN.
    Slides compare by identity; `slide_id` stays stable across moves.
    """

    def __init__(self, url: str, position: int = 0):
        self._url = url or ''
        self.position = position
        self.cache_state = CacheState.UNKNOWN
        self.source_state = SourceState.UNKNOWN
        self.display_url = None
        self.slide_id = next(_slide_ids)

    @property
    def url(self) -> str:
        return self._url

    @url.setter
    def url(self, value: str) -> None:
        normalized = value or ''
        if normalized != self._url:
            self._url = normalized
            self.cache_state = CacheState.UNKNOWN
            self.display_url = None

    @property
    def summary(self) -> str:
        """Short label combining cache and source state, as shown in the slide list."""
        if self.cache_state is CacheState.FAILED or self.source_state is SourceState.FAILED:
            return 'Failed'
        if self.cache_state is CacheState.CACHING:
            return 'Caching'
        if self.source_state is SourceState.NETWORK:
            return 'Live'
        if self.source_state is SourceState.CACHE or self.cache_state is CacheState.CACHED:
            return 'Cached'
        return ''

    def snapshot(self) -> SlideChange:
        return SlideChange(
            slide_id=self.slide_id,
            position=self.position,
            url=self.url,
            cache_state=self.cache_state,
            source_state=self.source_state,
            display_url=self.display_url,
        )

    def __repr__(self) -> str:
        return (f"Slide(#{self.position} {self.url!r}, cache={self.cache_state.value}, "
                f"source={self.source_state.value})")


@dataclass(frozen=True)
class SlideChange:
    """Immutable read projection of a slide, emitted whenever its state changes."""

    slide_id: int
    position: int
    url: str
    cache_state: CacheState
    source_state: SourceState
    display_url: str | None = None


@dataclass(frozen=True)
class PresentationStatus:
    """Transient snapshot of the presentation, computed on demand."""

    current_index: int = 0
    slide_count: int = 0
    is_playing: bool = False
    current_url: str | None = None
    zoom_factor: float = DEFAULT_ZOOM

    def to_dict(self) -> dict[str, Any]:
        return {
            'currentIndex': self.current_index,
            'slideCount': self.slide_count,
            'isPlaying': self.is_playing,
            'currentUrl': self.current_url,
            'zoomFactor': self.zoom_factor,
        }
