"""
Tests für die abbrechbare Neuberechnung (neueste Anfrage gewinnt).
"""

import threading
from concurrent.futures import Executor, Future

import pytest
import numpy as np

from audio_preview.core.errors import InvalidArgument
from audio_preview.core.audio_io import AudioBuffer
from audio_preview.core.settings import AnalyzeSettings
from audio_preview.core.recompute import SpectrogramRecomputer


class ManualExecutor(Executor):
    """Führt Aufträge erst auf Anforderung aus."""

    def __init__(self):
        self.jobs = []

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        self.jobs.append((future, fn, args, kwargs))
        return future

    def start(self, index):
        return self.jobs[index][0].set_running_or_notify_cancel()

    def finish(self, index):
        future, fn, args, kwargs = self.jobs[index]
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)

    def run_all(self):
        for index, (future, _, _, _) in enumerate(self.jobs):
            if future.done():
                continue
            if self.start(index):
                self.finish(index)


@pytest.fixture
def buffer():
    t = np.arange(8000) / 8000
    return AudioBuffer([np.sin(2 * np.pi * 440 * t)], 8000)


@pytest.fixture
def settings():
    return AnalyzeSettings(window_size=256, max_frequency=4000, max_time=1.0)


class TestLatestWins:
    """Tests für die Token-Logik."""

    def test_single_request_delivered(self, buffer, settings):
        """Eine Anfrage wird zugestellt."""
        results = []
        executor = ManualExecutor()
        recomputer = SpectrogramRecomputer(lambda token, r: results.append((token, r)), executor=executor)

        token = recomputer.request(buffer, settings)
        executor.run_all()

        assert token == 1
        assert recomputer.latest_token == 1
        assert len(results) == 1
        assert results[0][0] == 1
        assert results[0][1][0].spectrogram.num_bins > 0

    def test_pending_request_is_cancelled(self, buffer, settings):
        """Noch nicht gestartete Arbeit wird abgebrochen."""
        results = []
        executor = ManualExecutor()
        recomputer = SpectrogramRecomputer(lambda token, r: results.append(token), executor=executor)

        recomputer.request(buffer, settings)
        recomputer.request(buffer, settings.with_changes(window_size=512))

        assert executor.jobs[0][0].cancelled()
        executor.run_all()
        assert results == [2]

    def test_running_request_result_dropped(self, buffer, settings):
        """Laufende Arbeit wird nicht unterbrochen, ihr Ergebnis verworfen."""
        results = []
        executor = ManualExecutor()
        recomputer = SpectrogramRecomputer(lambda token, r: results.append(token), executor=executor)

        recomputer.request(buffer, settings)
        executor.start(0)
        recomputer.request(buffer, settings.with_changes(window_size=512))

        executor.finish(0)
        assert results == []

        executor.run_all()
        assert results == [2]

    def test_tokens_increase(self, buffer, settings):
        """Tokens steigen streng monoton."""
        recomputer = SpectrogramRecomputer(lambda token, r: None, executor=ManualExecutor())

        tokens = [recomputer.request(buffer, settings) for _ in range(3)]

        assert tokens == [1, 2, 3]
        assert recomputer.is_current(3)
        assert not recomputer.is_current(2)

    def test_request_waits_for_delivery(self, buffer, settings):
        """Neue Anfrage aus einem anderen Thread wartet, bis die Zustellung fertig ist."""
        executor = ManualExecutor()
        seen = []
        threads = []

        def on_result(token, analyses):
            other = threading.Thread(target=recomputer.request, args=(buffer, settings))
            other.start()
            other.join(timeout=0.2)
            seen.append((token, other.is_alive(), recomputer.is_current(token)))
            threads.append(other)

        recomputer = SpectrogramRecomputer(on_result, executor=executor)
        recomputer.request(buffer, settings)
        executor.start(0)
        executor.finish(0)
        threads[0].join(timeout=10)

        assert seen == [(1, True, True)]
        assert recomputer.latest_token == 2

    def test_cancel_drops_everything(self, buffer, settings):
        """cancel() verwirft auch bereits laufende Arbeit."""
        results = []
        executor = ManualExecutor()
        recomputer = SpectrogramRecomputer(lambda token, r: results.append(token), executor=executor)

        recomputer.request(buffer, settings)
        executor.start(0)
        recomputer.cancel()
        executor.finish(0)

        assert results == []


class TestErrors:
    """Tests für die Fehlerzustellung."""

    def test_error_of_latest_request(self, buffer):
        """Fehler der neuesten Anfrage gehen an on_error."""
        errors = []
        executor = ManualExecutor()
        recomputer = SpectrogramRecomputer(
            lambda token, r: None,
            on_error=lambda token, e: errors.append((token, e)),
            executor=executor,
        )

        # max_frequency über Nyquist (4 kHz)
        recomputer.request(buffer, AnalyzeSettings(max_frequency=6000, max_time=1.0))
        executor.run_all()

        assert len(errors) == 1
        assert errors[0][0] == 1
        assert isinstance(errors[0][1], InvalidArgument)

    def test_error_without_handler_is_logged(self, buffer, caplog):
        """Ohne on_error wird der Fehler protokolliert."""
        executor = ManualExecutor()
        recomputer = SpectrogramRecomputer(lambda token, r: None, executor=executor)

        recomputer.request(buffer, AnalyzeSettings(max_frequency=6000, max_time=1.0))
        with caplog.at_level("ERROR"):
            executor.run_all()

        assert "Recompute 1 failed" in caplog.text


class TestThreadPool:
    """Tests mit echtem Worker-Thread."""

    def test_result_from_worker(self, buffer, settings):
        """Standard-Executor liefert das Ergebnis im Worker-Thread."""
        done = threading.Event()
        results = []

        def on_result(token, analyses):
            results.append((token, analyses))
            done.set()

        recomputer = SpectrogramRecomputer(on_result)
        try:
            recomputer.request(buffer, settings)
            assert done.wait(timeout=10)
        finally:
            recomputer.shutdown()

        assert results[0][0] == 1
        assert len(results[0][1]) == 1
