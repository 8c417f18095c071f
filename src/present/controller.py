from __future__ import annotations
"""
Presentation state machine.

This module defines `PresentationController`, which owns the ordered slide
list, the current index, the zoom factor and the browsing/presenting mode. All
public methods are meant to run on the host's single UI thread. Work that may
block (resolving a slide, warming the cache) runs on an optional executor and
hands its results back through the injected `post` callable, so slide state is
only ever mutated on the UI thread.
"""

import logging
import threading
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable

from . import config
from .exceptions.present_errors import CancelledOperation, PresentError
from .resolver import Resolution, SlideResolver
from .slide_urls import is_image_url
from .slides import CacheState, PresentationStatus, Slide, SlideChange, SourceState, is_blank_url

logger = logging.getLogger(__name__)

# How often a batch waiting for the cache operation lock re-checks its token.
_LOCK_POLL_INTERVAL = 0.05


class Mode(Enum):
    BROWSING = 'browsing'
    PRESENTING = 'presenting'


@dataclass(frozen=True)
class Transition:
    """
    Outcome of one navigation, zoom or scroll command.

    `resolution` is the pending resolution of the slide that is now current,
    or None when nothing needed resolving (empty list, scroll, no-op).
    """

    action: str
    mode: Mode
    previous_index: int
    index: int
    zoom_factor: float
    scroll_dy: int = 0
    resolution: Future | None = None

    @property
    def moved(self) -> bool:
        return self.previous_index != self.index


Listener = Callable[[Any], None]


def _call_inline(fn: Callable[..., Any], *args: Any) -> None:
    fn(*args)


class PresentationController:
    """
    Owns the slides and drives navigation, zoom and caching.

    Args:
        resolver: Resolves slide URLs to cached files or live addresses.
        urls: Initial slide URLs.
        post: Marshals a callable onto the UI thread. Defaults to calling it
              immediately, which suits single-threaded use.
        executor: Runs resolution and cache jobs. Defaults to running them
                  immediately on the calling thread.
    """

    def __init__(
        self,
        resolver: SlideResolver,
        urls: Iterable[str] = (),
        post: Callable[..., None] | None = None,
        executor: Executor | None = None,
    ):
        self.resolver = resolver
        self.slides: list[Slide] = [Slide(url, i + 1) for i, url in enumerate(urls)]
        self.current_index: int = 0
        self.zoom_factor: float = config.DEFAULT_ZOOM
        self.mode: Mode = Mode.BROWSING
        self.dirty: bool = False
        self.cache_status: str = ''

        self._post = post or _call_inline
        self._executor = executor
        self._listeners: list[Listener] = []
        self._cache_lock = threading.Lock()
        self._batch_cancel: threading.Event | None = None
        self._batch_future: Future | None = None
        self._closed = threading.Event()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def is_playing(self) -> bool:
        return self.mode is Mode.PRESENTING

    @property
    def current_slide(self) -> Slide | None:
        if not self.slides:
            return None
        return self.slides[self.current_index]

    @property
    def urls(self) -> list[str]:
        return [slide.url for slide in self.slides]

    def status(self) -> PresentationStatus:
        slide = self.current_slide
        return PresentationStatus(
            current_index=self.current_index if slide else 0,
            slide_count=len(self.slides),
            is_playing=self.is_playing,
            current_url=slide.url if slide else None,
            zoom_factor=self.zoom_factor,
        )

    def snapshot(self) -> list[SlideChange]:
        """Read-only projection of every slide, in order."""
        return [slide.snapshot() for slide in self.slides]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for `Transition` and `SlideChange` events.

        Listeners are called on the UI thread. Returns a function that removes
        the listener again.
        """
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Navigation and zoom
    # ------------------------------------------------------------------

    def play(self) -> Transition:
        """Enter presenting mode from the currently selected slide."""
        if not self.slides:
            logger.info("No slides to present. Add some URLs first.")
            return self._transition('play', self.current_index, resolve=False)
        if self.is_playing:
            return self._transition('play', self.current_index, resolve=False)
        self.current_index = min(max(self.current_index, 0), len(self.slides) - 1)
        self.mode = Mode.PRESENTING
        logger.info(f"Presenting from slide {self.current_index + 1}/{len(self.slides)}")
        return self._transition('play', self.current_index)

    def stop(self) -> Transition:
        """Leave presenting mode, keeping the last slide reached."""
        if self.is_playing:
            self.mode = Mode.BROWSING
            logger.info(f"Presentation stopped at slide {self.current_index + 1}")
        return self._transition('stop', self.current_index, resolve=False)

    def next(self) -> Transition:
        before = self.current_index
        if self.slides:
            self.current_index = (self.current_index + 1) % len(self.slides)
        return self._transition('next', before, resolve=bool(self.slides))

    def prev(self) -> Transition:
        before = self.current_index
        if self.slides:
            count = len(self.slides)
            self.current_index = (self.current_index - 1 + count) % count
        return self._transition('prev', before, resolve=bool(self.slides))

    def select(self, index: int) -> Transition:
        """Make the slide at `index` current, clamped to the list bounds."""
        before = self.current_index
        if self.slides:
            self.current_index = min(max(index, 0), len(self.slides) - 1)
        return self._transition('select', before, resolve=bool(self.slides))

    def zoom_in(self) -> Transition:
        self.zoom_factor = min(self.zoom_factor * config.ZOOM_STEP, config.MAX_ZOOM)
        logger.debug(f"Zoom factor increased to {self.zoom_factor:.2f}")
        return self._transition('zoomin', self.current_index, resolve=bool(self.slides))

    def zoom_out(self) -> Transition:
        self.zoom_factor = max(self.zoom_factor / config.ZOOM_STEP, config.MIN_ZOOM)
        logger.debug(f"Zoom factor decreased to {self.zoom_factor:.2f}")
        return self._transition('zoomout', self.current_index, resolve=bool(self.slides))

    def zoom_reset(self) -> Transition:
        self.zoom_factor = config.DEFAULT_ZOOM
        return self._transition('zoomreset', self.current_index, resolve=bool(self.slides))

    def scroll(self, dy: int) -> Transition:
        """Ask the display to scroll the current slide vertically by `dy` pixels."""
        return self._transition('scroll', self.current_index, scroll_dy=dy, resolve=False)

    # ------------------------------------------------------------------
    # Slide list editing
    # ------------------------------------------------------------------

    def add_slide(self, url: str = config.PLACEHOLDER_URL) -> Slide:
        return self.insert_slide(len(self.slides), url)

    def insert_slide(self, index: int, url: str) -> Slide:
        index = min(max(index, 0), len(self.slides))
        slide = Slide(url)
        self.slides.insert(index, slide)
        if len(self.slides) > 1 and index <= self.current_index:
            self.current_index += 1
        self._list_changed(slide)
        return slide

    def remove_slide(self, index: int) -> Slide:
        slide = self.slides.pop(index)
        if index < self.current_index:
            self.current_index -= 1
        self.current_index = min(self.current_index, max(len(self.slides) - 1, 0))
        self._list_changed()
        return slide

    def move_slide(self, old_index: int, new_index: int) -> None:
        if old_index == new_index:
            return
        current = self.current_slide
        slide = self.slides.pop(old_index)
        self.slides.insert(new_index, slide)
        if current is not None:
            self.current_index = self.slides.index(current)
        self._list_changed()

    def set_slide_url(self, index: int, url: str) -> Slide:
        """Edit a slide's URL. Its cache and source state start over."""
        slide = self.slides[index]
        if slide.url == (url or ''):
            return slide
        slide.url = url
        slide.source_state = SourceState.UNKNOWN
        self._list_changed(slide)
        if slide is self.current_slide:
            self._resolve_current()
        return slide

    def replace_slides(self, urls: Iterable[str]) -> None:
        """Swap in a whole new slide list, e.g. after opening a file."""
        self.cancel_warm()
        self.slides = [Slide(url) for url in urls]
        self.current_index = 0
        self._list_changed()

    def mark_saved(self) -> None:
        self.dirty = False

    # ------------------------------------------------------------------
    # Cache operations
    # ------------------------------------------------------------------

    def warm_all(self, force_refresh: bool = False) -> bool:
        """
        Cache every slide, in list order, on the calling thread.

        Any batch already running is cancelled first. Returns True when the
        batch ran to completion and False when it was cancelled.
        """
        items, cancel = self._begin_batch()
        return self._run_batch(items, force_refresh, cancel)

    def start_warm_all(self, force_refresh: bool = False) -> Future:
        """Like `warm_all`, but scheduled on the executor."""
        items, cancel = self._begin_batch()
        self._batch_future = self._submit(self._run_batch, items, force_refresh, cancel)
        return self._batch_future

    def cancel_warm(self) -> None:
        if self._batch_cancel is not None:
            self._batch_cancel.set()
            self._batch_cancel = None

    def close(self) -> None:
        """
        Cancel background work for good.

        The running batch and any in-flight resolve or reload job observe the
        cancellation; jobs started afterwards give up before downloading.
        """
        self._closed.set()
        self.cancel_warm()

    def reload_slide(self, index: int) -> Future:
        """Drop one slide's cache entry and download it again."""
        slide = self.slides[index]
        return self._submit(self._reload_job, slide, slide.url)

    def clear_cache(self) -> Future:
        """Wipe the whole image cache and reset every slide's state."""
        return self._submit(self._clear_job)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, action: str, previous_index: int, scroll_dy: int = 0,
                    resolve: bool = True) -> Transition:
        resolution = self._resolve_current() if resolve else None
        transition = Transition(
            action=action,
            mode=self.mode,
            previous_index=previous_index,
            index=self.current_index,
            zoom_factor=self.zoom_factor,
            scroll_dy=scroll_dy,
            resolution=resolution,
        )
        self._publish(transition)
        return transition

    def _resolve_current(self) -> Future | None:
        slide = self.current_slide
        if slide is None or is_blank_url(slide.url):
            return None
        return self._submit(self._resolve_job, slide, slide.url)

    def _resolve_job(self, slide: Slide, url: str) -> Resolution:
        resolution = self.resolver.resolve(url, self._closed)
        if not self._closed.is_set():
            self._post(self._apply_resolution, slide, url, resolution)
        return resolution

    def _apply_resolution(self, slide: Slide, url: str, resolution: Resolution) -> None:
        if not self._is_live(slide, url):
            return
        slide.display_url = resolution.display_url
        if resolution.is_from_cache:
            slide.cache_state = CacheState.CACHED
            slide.source_state = SourceState.CACHE
        elif resolution.failed:
            slide.cache_state = CacheState.FAILED
            slide.source_state = SourceState.FAILED
        else:
            slide.source_state = SourceState.NETWORK
        self._publish(slide.snapshot())

    def _apply_state(self, slide: Slide, url: str, cache_state: CacheState,
                     source_state: SourceState) -> None:
        if not self._is_live(slide, url):
            return
        if slide.cache_state is cache_state and slide.source_state is source_state:
            return
        slide.cache_state = cache_state
        slide.source_state = source_state
        logger.debug(f"Slide {slide.position}: cache={cache_state.value} source={source_state.value}")
        self._publish(slide.snapshot())

    def _apply_cache_status(self, text: str) -> None:
        self.cache_status = text

    def _reset_all_states(self) -> None:
        for slide in self.slides:
            self._apply_state(slide, slide.url, CacheState.UNKNOWN, SourceState.UNKNOWN)

    def _is_live(self, slide: Slide, url: str) -> bool:
        return slide.url == url and any(s is slide for s in self.slides)

    def _post_state(self, slide: Slide, url: str, cache_state: CacheState,
                    source_state: SourceState) -> None:
        self._post(self._apply_state, slide, url, cache_state, source_state)

    def _set_cache_status(self, text: str) -> None:
        self._post(self._apply_cache_status, text)

    def _list_changed(self, edited: Slide | None = None) -> None:
        for position, slide in enumerate(self.slides, start=1):
            if slide.position != position or slide is edited:
                slide.position = position
                self._publish(slide.snapshot())
        self.dirty = True

    def _publish(self, event: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Presentation listener {listener!r} failed on {event!r}")

    def _submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        if self._executor is not None:
            return self._executor.submit(fn, *args)
        future: Future = Future()
        try:
            future.set_result(fn(*args))
        except Exception as e:
            future.set_exception(e)
        return future

    def _begin_batch(self) -> tuple[list[tuple[Slide, str]], threading.Event]:
        self.cancel_warm()
        cancel = threading.Event()
        if self._closed.is_set():
            cancel.set()
        self._batch_cancel = cancel
        return [(slide, slide.url) for slide in self.slides], cancel

    def _acquire_cache_lock(self, cancel: threading.Event) -> bool:
        while not self._cache_lock.acquire(timeout=_LOCK_POLL_INTERVAL):
            if cancel.is_set():
                return False
        if cancel.is_set():
            self._cache_lock.release()
            return False
        return True

    def _run_batch(self, items: list[tuple[Slide, str]], force_refresh: bool,
                   cancel: threading.Event) -> bool:
        if not self._acquire_cache_lock(cancel):
            logger.debug("Batch caching cancelled before it started.")
            return False
        try:
            if not items:
                self._set_cache_status('')
                return True

            self._set_cache_status('Re-caching all slides...' if force_refresh else 'Caching slides...')
            logger.info(f"{'Re-caching' if force_refresh else 'Caching'} {len(items)} slides.")
            for done, (slide, url) in enumerate(items, start=1):
                if cancel.is_set():
                    raise CancelledOperation("Batch caching cancelled.")
                self._cache_slide(slide, url, force_refresh, cancel)
                self._set_cache_status(f'Caching {done}/{len(items)}')

            self._set_cache_status('Cache ready')
            logger.info("Cache ready.")
            return True
        except CancelledOperation:
            logger.debug("Batch caching cancelled.")
            self._set_cache_status('')
            return False
        finally:
            self._cache_lock.release()

    def _cache_slide(self, slide: Slide, url: str, force_refresh: bool,
                     cancel: threading.Event | None) -> None:
        if is_blank_url(url):
            self._post_state(slide, url, CacheState.UNKNOWN, SourceState.UNKNOWN)
            return
        if not is_image_url(url):
            self._post_state(slide, url, CacheState.UNKNOWN, SourceState.NETWORK)
            return

        cache = self.resolver.cache_store
        self._post_state(slide, url, CacheState.CACHING, SourceState.UNKNOWN)
        try:
            if not force_refresh and cache.try_get_cached_path(url) is not None:
                self._post_state(slide, url, CacheState.CACHED, SourceState.CACHE)
                return
            if force_refresh:
                cache.remove_cached(url)
            cache.ensure_cached(url, cancel)
        except CancelledOperation:
            self._post_state(slide, url, CacheState.UNKNOWN, SourceState.UNKNOWN)
            raise
        except (PresentError, OSError) as e:
            logger.error(f"Failed to cache '{url}': {e}")
            self._post_state(slide, url, CacheState.FAILED, SourceState.FAILED)
        else:
            self._post_state(slide, url, CacheState.CACHED, SourceState.CACHE)

    def _reload_job(self, slide: Slide, url: str) -> None:
        with self._cache_lock:
            self._set_cache_status('Reloading selected slide...')
            self.resolver.cache_store.remove_cached(url)
            self._post_state(slide, url, CacheState.UNKNOWN, SourceState.UNKNOWN)
            try:
                self._cache_slide(slide, url, force_refresh=True, cancel=self._closed)
            except CancelledOperation:
                logger.debug(f"Reload of '{url}' cancelled.")
                return
            finally:
                self._set_cache_status('')
        self._post(self._refresh_if_current, slide)

    def _refresh_if_current(self, slide: Slide) -> None:
        if slide is self.current_slide:
            self._resolve_current()

    def _clear_job(self) -> bool:
        with self._cache_lock:
            self._set_cache_status('Clearing cache...')
            try:
                self.resolver.cache_store.clear_all()
            except OSError as e:
                logger.error(f"Cache clear failed: {e}")
                self._set_cache_status('Cache clear failed')
                return False
            self._post(self._reset_all_states)
            self._set_cache_status('Cache cleared')
            return True
