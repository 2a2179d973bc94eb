"""Transient user-facing message banner."""

import logging
import threading
from typing import Callable, Optional

DISPLAY_SECONDS = 5.0
FADE_SECONDS = 0.5

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class MessageBanner:
    """
    An error/success banner that dismisses itself.

    `show` makes the banner visible for `display_seconds`, then fades it
    (opacity 0) and hides it `fade_seconds` later. Showing a new message
    before the old one clears restarts the countdown.
    """

    def __init__(
        self,
        display_seconds: float = DISPLAY_SECONDS,
        fade_seconds: float = FADE_SECONDS,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self.display_seconds = display_seconds
        self.fade_seconds = fade_seconds
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self.text = ""
        self.kind = ""
        self.visible = False
        self.opacity = 0.0

    def show(self, text: str, kind: str = "error") -> None:
        with self._lock:
            self._cancel()
            self.text = text
            self.kind = kind
            self.visible = True
            self.opacity = 1.0
            self._start(self.display_seconds, self._fade)
        log = logging.error if kind == "error" else logging.info
        log(f"[Client] {kind}: {text}")

    def hide(self) -> None:
        with self._lock:
            self._cancel()
            self.visible = False

    def _fade(self) -> None:
        with self._lock:
            self.opacity = 0.0
            self._start(self.fade_seconds, self._finish)

    def _finish(self) -> None:
        with self._lock:
            self.visible = False
            self._timer = None

    def _start(self, delay: float, callback: Callable[[], None]) -> None:
        self._timer = self._timer_factory(delay, callback)
        self._timer.daemon = True
        self._timer.start()

    def _cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
