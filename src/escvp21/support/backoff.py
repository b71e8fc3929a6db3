"""
A backoff controller that counts down between reconnection attempts.

The delay curve itself is supplied by a RetryStrategy. The controller only decides when to ask the
strategy for the next delay, runs the countdown on the event loop and fires `ready` once it elapses.
"""
import asyncio
import logging

from escvp21.support.events import EventSource
from escvp21.support.retry_strategy import ExponentialRetryStrategy, RetryStrategy

logger = logging.getLogger(__name__)


class Backoff:
    """
    Schedules a "ready" notification after an increasing delay each time backoff() is called without
    an intervening reset().

    - `started` handlers are called with (delay, attempt) when a countdown begins.
    - `ready` handlers are called with (delay, attempt) when the countdown elapses.

    Calling backoff() while a countdown is running is ignored, so the delay neither restarts nor
    returns to the initial value.
    """

    def __init__(self, strategy: RetryStrategy=None, log=logger, loop=None):
        self.strategy = strategy if strategy is not None else ExponentialRetryStrategy()
        self.started = EventSource()
        self.ready = EventSource()
        self.logger = log
        self._loop = loop
        self._handle = None
        self._closed = False

    @property
    def in_progress(self) -> bool:
        return self._handle is not None

    @property
    def attempts(self):
        return self.strategy.attempts

    @property
    def closed(self) -> bool:
        return self._closed

    def backoff(self):
        """
        Starts the next countdown.
        :return: True if a countdown was started, False if one was already running or the backoff is closed.
        """
        if self._closed:
            return False
        if self.in_progress:
            self.logger.debug("backoff already in progress, ignoring")
            return False
        attempt = self.strategy.attempts
        delay = self.strategy()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(delay, self._on_ready, delay, attempt)
        self.started.fire(delay, attempt)
        return True

    def reset(self):
        """ cancels any countdown and returns the delay to the initial value. """
        self._cancel()
        self.strategy.reset()

    def close(self):
        """ cancels any countdown; later calls to backoff() are ignored. """
        self._closed = True
        self._cancel()

    def _cancel(self):
        handle = self._handle
        self._handle = None
        if handle is not None:
            handle.cancel()

    def _on_ready(self, delay, attempt):
        self._handle = None
        self.ready.fire(delay, attempt)
