"""Polling scheduler running screening and spam training on a cadence."""

from __future__ import annotations

import logging
import signal
import threading
import time
from collections.abc import Callable
from types import FrameType
from typing import Any, Protocol

from .screener import Screener

SignalHandler = Callable[[int, FrameType | None], Any] | int | signal.Handlers | None

LOGGER = logging.getLogger(__name__)
SIG_USR1 = getattr(signal, "SIGUSR1", None)
POLL_SECONDS = 0.5


class Trainable(Protocol):
    def train(self) -> object: ...


class ScreeningDaemon:
    """Run screening passes back to back, never overlapping.

    Training happens before the screening pass that follows its due time, so
    a run always sees a consistent corpus.
    """

    def __init__(
        self,
        screener: Screener,
        *,
        interval: float,
        classifier: Trainable | None = None,
        training_interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._screener = screener
        self._classifier = classifier
        self._interval = interval
        self._training_interval = training_interval
        self._clock = clock
        self._next_training: float | None = None
        self._last_run_ok: bool | None = None
        self._trainings = 0
        self._stop_event = threading.Event()
        self._status_event = threading.Event()
        self._installed_signals: dict[int, SignalHandler] = {}

    def run(self, *, initial_training: bool = True) -> None:
        self._install_signal_handlers()
        try:
            self._schedule_training(immediately=initial_training)
            while not self._stop_event.is_set():
                self.run_once()
                self._wait(self._interval)
        except KeyboardInterrupt:
            LOGGER.info("Interrupt received; shutting down Screenr daemon.")
        finally:
            self._restore_signal_handlers()

    def run_once(self) -> bool:
        """Train if due, then screen once."""

        self._train_if_due()
        LOGGER.info("Started screening")
        self._last_run_ok = self._screener.screen_mail()
        if self._last_run_ok:
            LOGGER.info("Screening complete")
        else:
            LOGGER.warning("Screening did not complete; retrying in %ss", self._interval)
        return self._last_run_ok

    def stop(self) -> None:
        self._stop_event.set()

    def status_snapshot(self) -> dict[str, Any]:
        snapshot = self._screener.metrics.snapshot()
        snapshot["last_run_ok"] = self._last_run_ok
        snapshot["trainings"] = self._trainings
        return snapshot

    def _schedule_training(self, *, immediately: bool) -> None:
        if self._classifier is None or self._training_interval is None:
            return
        delay = 0.0 if immediately else self._training_interval
        self._next_training = self._clock() + delay

    def _train_if_due(self) -> None:
        if self._classifier is None or self._training_interval is None:
            return
        now = self._clock()
        if self._next_training is None or now < self._next_training:
            return
        self._next_training = now + self._training_interval
        try:
            self._classifier.train()
        except Exception:
            LOGGER.exception("Spam training failed; keeping previous corpora")
            return
        self._trainings += 1

    def _wait(self, seconds: float) -> None:
        deadline = self._clock() + seconds
        while not self._stop_event.is_set():
            if self._status_event.is_set():
                self._status_event.clear()
                self._log_status()
            remaining = deadline - self._clock()
            if remaining <= 0:
                return
            self._stop_event.wait(min(POLL_SECONDS, remaining))

    def _log_status(self) -> None:
        snapshot = self.status_snapshot()
        details = " ".join(f"{key}={value}" for key, value in snapshot.items())
        LOGGER.info("Screenr daemon status: %s", details)

    def _install_signal_handlers(self) -> None:
        interested = tuple(
            sig for sig in (signal.SIGTERM, signal.SIGINT, SIG_USR1) if sig is not None
        )
        for sig in interested:
            try:
                previous = signal.getsignal(sig)
                signal.signal(sig, self._handle_signal)
            except ValueError:  # not the main thread
                continue
            self._installed_signals[sig] = previous

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._installed_signals.items():
            try:
                signal.signal(sig, handler)
            except ValueError:
                continue
        self._installed_signals.clear()

    def _handle_signal(self, signum: int, _frame: FrameType | None) -> None:
        if signum in (signal.SIGTERM, signal.SIGINT):
            LOGGER.info("Signal %s received; initiating shutdown.", signum)
            self._stop_event.set()
        elif SIG_USR1 is not None and signum == SIG_USR1:
            self._status_event.set()


__all__ = ["ScreeningDaemon", "Trainable"]
