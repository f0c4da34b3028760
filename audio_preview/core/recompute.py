"""
Cancellable Recompute

Runs spectrogram analyses off the interactive thread. Every request
gets a monotonically increasing token; a finished result is delivered
only while its token is still the latest one issued, so a settings
change simply supersedes whatever is in flight.

The FFT loop itself is never interrupted: superseded work is either
cancelled before it starts or its result is dropped.
"""

import itertools
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, Optional

from .analyzer import ChannelAnalysis, analyze_buffer
from .audio_io import AudioBuffer
from .settings import AnalyzeSettings

logger = logging.getLogger(__name__)

ResultCallback = Callable[[int, list[ChannelAnalysis]], None]
ErrorCallback = Callable[[int, BaseException], None]


class SpectrogramRecomputer:
    """
    Latest-wins scheduler for spectrogram analyses.

    Usage:
        recomputer = SpectrogramRecomputer(on_result=draw)
        recomputer.request(buffer, settings)   # token 1
        recomputer.request(buffer, new_settings)  # token 2, 1 is dropped
        ...
        recomputer.shutdown()

    Callbacks run on the worker thread; marshal to the UI thread there.
    A delivered token is current for the whole callback: a request()
    from another thread blocks until the callback returns.
    """

    def __init__(
        self,
        on_result: ResultCallback,
        on_error: Optional[ErrorCallback] = None,
        executor: Optional[Executor] = None,
    ):
        """
        Initialize recomputer.

        Args:
            on_result: Called with (token, analyses) for the latest request
            on_error: Called with (token, exception) when the latest
                request fails; errors of superseded requests are dropped
            executor: Executor to run on (default: one worker thread)
        """
        self._on_result = on_result
        self._on_error = on_error
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="spectrogram")
        self._lock = threading.RLock()
        self._tokens = itertools.count(1)
        self._latest = 0
        self._pending: Optional[Future] = None

    @property
    def latest_token(self) -> int:
        """Token of the most recent request (0 before the first)."""
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest

    def request(self, buffer: AudioBuffer, settings: AnalyzeSettings) -> int:
        """
        Schedule an analysis of all channels, superseding earlier ones.

        Returns:
            Token of this request
        """
        with self._lock:
            token = next(self._tokens)
            self._latest = token
            if self._pending is not None:
                self._pending.cancel()

            future = self._executor.submit(analyze_buffer, buffer, settings)
            self._pending = future
        future.add_done_callback(lambda f, t=token: self._deliver(t, f))
        return token

    def cancel(self) -> None:
        """Invalidate every request in flight."""
        with self._lock:
            self._latest = next(self._tokens)
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None

    def shutdown(self, wait: bool = True) -> None:
        """Cancel pending work and stop the owned executor."""
        self.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def _deliver(self, token: int, future: Future) -> None:
        if future.cancelled():
            logger.debug("Recompute %d cancelled before start", token)
            return

        # request() and cancel() wait until the callback has returned
        with self._lock:
            if not self.is_current(token):
                logger.debug("Recompute %d superseded by %d, result dropped", token, self._latest)
                return

            error = future.exception()
            if error is not None:
                if self._on_error is None:
                    logger.error("Recompute %d failed: %s", token, error)
                else:
                    self._on_error(token, error)
                return
            self._on_result(token, future.result())
