from __future__ import annotations
"""
Single-threaded UI context.

Background threads (remote control handlers, download jobs) must never touch
the presentation controller directly. They hand work to a `Dispatcher`, whose
queue is drained by exactly one thread: the host's UI loop.
"""

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, TYPE_CHECKING

from .remote import CommandHandler
from .slides import PresentationStatus

if TYPE_CHECKING:
    from .controller import PresentationController

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    A work queue bound to one owner thread.

    The thread that calls `run_forever` (or, before that, the thread that
    created the dispatcher) is the owner. `post` is fire-and-forget,
    `invoke` waits for the result.
    """

    def __init__(self):
        self._queue: queue.Queue[tuple[Callable[..., Any], tuple[Any, ...], Future | None]] = queue.Queue()
        self._owner = threading.get_ident()

    @property
    def on_owner_thread(self) -> bool:
        return threading.get_ident() == self._owner

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        """Queue `fn(*args)` to run on the owner thread."""
        self._queue.put((fn, args, None))

    def invoke(self, fn: Callable[..., Any], *args: Any, timeout: float | None = None) -> Any:
        """
        Run `fn(*args)` on the owner thread and return its result.

        Runs inline when already on the owner thread.

        Raises:
            concurrent.futures.TimeoutError: The owner thread did not get to it
                within `timeout` seconds.
        """
        if self.on_owner_thread:
            return fn(*args)
        future: Future = Future()
        self._queue.put((fn, args, future))
        return future.result(timeout=timeout)

    def run_pending(self) -> int:
        """Run every queued call without blocking. Returns how many ran."""
        ran = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return ran
            self._run(item)
            ran += 1

    def run_forever(self, stop: threading.Event, poll_interval: float = 0.1) -> None:
        """Claim the current thread and process calls until `stop` is set."""
        self._owner = threading.get_ident()
        logger.debug("Dispatcher loop started.")
        while not stop.is_set():
            try:
                item = self._queue.get(timeout=poll_interval)
            except queue.Empty:
                continue
            self._run(item)
        self.run_pending()
        logger.debug("Dispatcher loop stopped.")

    def _run(self, item: tuple[Callable[..., Any], tuple[Any, ...], Future | None]) -> None:
        fn, args, future = item
        if future is not None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(fn(*args))
            except Exception as e:
                future.set_exception(e)
            return
        try:
            fn(*args)
        except Exception:
            logger.exception(f"Dispatched call {fn!r} failed")


class DispatchedCommands(CommandHandler):
    """
    Remote control command handler that forwards into a controller.

    Commands are posted to the dispatcher and return immediately; status is
    read on the dispatcher's thread.
    """

    def __init__(self, controller: 'PresentationController', dispatcher: Dispatcher,
                 status_timeout: float = 2.0):
        self.controller = controller
        self.dispatcher = dispatcher
        self.status_timeout = status_timeout

    def next(self) -> None:
        self.dispatcher.post(self.controller.next)

    def prev(self) -> None:
        self.dispatcher.post(self.controller.prev)

    def play(self) -> None:
        self.dispatcher.post(self.controller.play)

    def stop(self) -> None:
        self.dispatcher.post(self.controller.stop)

    def zoom_in(self) -> None:
        self.dispatcher.post(self.controller.zoom_in)

    def zoom_out(self) -> None:
        self.dispatcher.post(self.controller.zoom_out)

    def scroll(self, dy: int) -> None:
        self.dispatcher.post(self.controller.scroll, dy)

    def status(self) -> PresentationStatus:
        return self.dispatcher.invoke(self.controller.status, timeout=self.status_timeout)
