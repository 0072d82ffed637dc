"""Deferred acknowledgement: fire a callback N seconds after new comments are shown."""

from __future__ import annotations

import functools
import threading
import time
from collections.abc import Callable
from typing import Any

from redseen.statuses import CountdownState


class AutoAcknowledger:
    """One-shot countdown that can be paused (e.g. while threads are reviewed).

    The ``comments --auto-ack`` command only starts and cancels it;
    ``pause``/``resume`` are for front ends that hold the countdown while
    a thread view is open.

    ``timer_factory`` must build an object with ``start()`` and ``cancel()``
    from ``(interval, function)``, like ``threading.Timer``.
    """

    def __init__(
        self,
        seconds: float,
        on_expire: Callable[[], Any],
        *,
        timer_factory: Callable[[float, Callable[[], None]], Any] = threading.Timer,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.seconds = seconds
        self._on_expire = on_expire
        self._timer_factory = timer_factory
        self._clock = clock
        self._lock = threading.Lock()
        self._timer: Any = None
        self._generation = 0
        self._remaining = seconds
        self._armed_at = 0.0
        self.state = CountdownState.IDLE

    def start(self) -> None:
        """(Re)start from the full duration."""
        with self._lock:
            self._disarm()
            self._remaining = self.seconds
            self._arm()

    def pause(self) -> None:
        with self._lock:
            if self.state != CountdownState.RUNNING:
                return
            self._remaining = max(0.0, self._remaining - (self._clock() - self._armed_at))
            self._disarm()
            self.state = CountdownState.PAUSED

    def resume(self) -> None:
        with self._lock:
            if self.state != CountdownState.PAUSED:
                return
            self._arm()

    def cancel(self) -> None:
        with self._lock:
            self._disarm()
            self._remaining = self.seconds
            if self.state != CountdownState.EXPIRED:
                self.state = CountdownState.IDLE

    def remaining(self) -> float:
        with self._lock:
            if self.state == CountdownState.RUNNING:
                return max(0.0, self._remaining - (self._clock() - self._armed_at))
            if self.state == CountdownState.EXPIRED:
                return 0.0
            return self._remaining

    def _arm(self) -> None:
        self._generation += 1
        self._armed_at = self._clock()
        self._timer = self._timer_factory(self._remaining, functools.partial(self._fire, self._generation))
        if isinstance(self._timer, threading.Thread):
            self._timer.daemon = True
        self._timer.start()
        self.state = CountdownState.RUNNING

    def _disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A timer replaced by pause/cancel/start may still call in late
            if generation != self._generation or self.state != CountdownState.RUNNING:
                return
            self._timer = None
            self._remaining = 0.0
            self.state = CountdownState.EXPIRED
        self._on_expire()
