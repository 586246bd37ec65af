"""Cancellable single-shot deferred action used for the bot's delayed reply."""

from __future__ import annotations

from typing import Callable, Optional
import threading

from loguru import logger


class DeferredAction:
    """At most one outstanding callback, run once after a delay.

    Scheduling supersedes whatever is still pending. Every schedule bumps a
    generation counter; a timer that wakes up with an older generation is
    dropped instead of running.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._timer: Optional[threading.Timer] = None
        self._callback: Optional[Callable[[], None]] = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._callback is not None

    def schedule(self, delay: float, callback: Callable[[], None]) -> int:
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            generation = self._generation
            self._callback = callback
            timer = threading.Timer(max(0.0, delay), self._fire, args=(generation,))
            timer.daemon = True
            self._timer = timer
        timer.start()
        logger.debug("tictactoe.deferred.schedule generation={} delay={}", generation, delay)
        return generation

    def hold(self, callback: Callable[[], None]) -> int:
        """Register a callback that only runs through :meth:`fire_now`."""
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            self._callback = callback
            return self._generation

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()

    def fire_now(self) -> bool:
        """Run the pending callback synchronously, if any."""
        with self._lock:
            callback = self._take_locked()
        if callback is None:
            return False
        callback()
        return True

    # ---- internals ----

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("tictactoe.deferred.stale generation={}", generation)
                return
            callback = self._take_locked()
        if callback is not None:
            callback()

    def _take_locked(self) -> Optional[Callable[[], None]]:
        callback = self._callback
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._callback = None
        # Invalidate a timer thread that already woke up.
        self._generation += 1
        return callback

    def _cancel_locked(self) -> None:
        if self._callback is not None:
            logger.debug("tictactoe.deferred.cancel generation={}", self._generation)
        self._take_locked()
