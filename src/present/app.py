from __future__ import annotations
"""
Main application class for the Present slideshow presenter.

This module defines `PresenterApp`, the headless host that wires the cache,
the resolver, the presentation controller and the remote control service
together, and runs the single UI loop that owns the presentation state.
Rendering is delegated to the system web browser.
"""

import logging
import threading
import webbrowser
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from . import config, persistence
from .cache_store import CacheStore
from .controller import PresentationController, Transition
from .dispatcher import DispatchedCommands, Dispatcher
from .exceptions.present_errors import ListenerBindError
from .remote import RemoteControlService, local_ip_address
from .resolver import SlideResolver
from .slides import SlideChange

logger = logging.getLogger(__name__)


class PresenterApp:
    """
    The main application class for the presenter.
    """

    def __init__(
        self,
        paths: persistence.StoragePaths,
        slides_file: str | None = None,
        host: str = config.DEFAULT_HOST,
        port: int = config.DEFAULT_PORT,
        enable_remote: bool = True,
        open_browser: bool = False,
        max_workers: int = 4,
    ):
        self.paths = paths
        self.slides_file = Path(slides_file).resolve() if slides_file else None
        self.open_browser = open_browser

        self.dispatcher = Dispatcher()
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='present-worker')
        self.cache_store = CacheStore(paths.cache_root)
        self.resolver = SlideResolver(self.cache_store)
        self.controller = PresentationController(
            self.resolver, post=self.dispatcher.post, executor=self.executor)
        self.controller.subscribe(self.on_event)

        self.remote: RemoteControlService | None = None
        if enable_remote:
            self.remote = RemoteControlService(
                DispatchedCommands(self.controller, self.dispatcher), host=host, port=port)
        self.remote_url: str | None = None

        self._stop = threading.Event()
        self._shown: tuple[int, str] | None = None

    def setup(self, clear_cache: bool = False, recache: bool = False) -> None:
        """
        Load the slide list, start warming the cache and start the remote control.

        Raises:
            FileNotFoundError: If an explicit slide list file does not exist.
        """
        if self.slides_file is not None:
            urls = persistence.load_from(self.slides_file)
        else:
            urls = persistence.load_default(self.paths)
        self.controller.replace_slides(urls)
        self.controller.mark_saved()

        if not urls:
            logger.warning("The slide list is empty. Nothing to present yet.")

        if clear_cache:
            self.controller.clear_cache().result()
        self.controller.start_warm_all(force_refresh=recache)
        self.start_remote()

    def start_remote(self) -> None:
        """Start the remote control. A busy port disables it instead of failing."""
        if self.remote is None:
            return
        try:
            self.remote.start()
        except ListenerBindError as e:
            self.remote_url = None
            logger.warning(f"Remote control unavailable: {e}")
            return
        self.remote_url = f"http://{local_ip_address()}:{self.remote.bound_port}/"
        logger.info(f"Remote: {self.remote_url}")

    def on_event(self, event: Transition | SlideChange) -> None:
        """React to controller events on the UI thread."""
        if isinstance(event, Transition):
            if event.action == 'scroll':
                logger.info(f"Scroll by {event.scroll_dy}px requested.")
            elif event.moved or event.action in ('play', 'stop'):
                status = self.controller.status()
                logger.info(f"[{event.mode.value}] Slide {status.current_index + 1}/{status.slide_count}: "
                            f"{status.current_url}")
            return

        current = self.controller.current_slide
        if current is None or current.slide_id != event.slide_id or not event.display_url:
            return
        if self._shown == (event.slide_id, event.display_url):
            return
        self._shown = (event.slide_id, event.display_url)
        logger.debug(f"Slide {event.position} resolves to {event.display_url}")
        if self.open_browser and self.controller.is_playing:
            webbrowser.open(event.display_url)

    def run(self) -> None:
        """Run the UI loop until `quit` is called or the user interrupts."""
        try:
            self.dispatcher.run_forever(self._stop)
        except KeyboardInterrupt:
            logger.info("Interrupted.")
        finally:
            self.shutdown()

    def quit(self) -> None:
        self._stop.set()

    def shutdown(self) -> None:
        """Stop the remote control and background work, and save pending edits."""
        logger.info("Shutting down.")
        if self.remote is not None:
            self.remote.stop()
            self.remote.join(timeout=2.0)
        self.controller.close()
        self.executor.shutdown(wait=False, cancel_futures=True)
        if self.controller.dirty:
            if self.slides_file is not None:
                persistence.save_to(self.slides_file, self.controller.urls)
            else:
                persistence.save_default(self.paths, self.controller.urls)
            self.controller.mark_saved()
