from __future__ import annotations

import logging

from screenr.runtime import ScreeningDaemon
from screenr.screener import ScreeningMetrics


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class StubScreener:
    def __init__(self, results: list[bool] | None = None) -> None:
        self.metrics = ScreeningMetrics()
        self.results = results or []
        self.calls = 0
        self.on_run = None

    def screen_mail(self) -> bool:
        self.calls += 1
        self.metrics.runs += 1
        if self.on_run is not None:
            self.on_run()
        return self.results.pop(0) if self.results else True


class StubClassifier:
    def __init__(self, *, fail: bool = False) -> None:
        self.trainings = 0
        self.fail = fail

    def train(self) -> None:
        self.trainings += 1
        if self.fail:
            raise RuntimeError("mailbox unreachable")


def test_run_once_trains_before_first_screening():
    clock = FakeClock()
    classifier = StubClassifier()
    daemon = ScreeningDaemon(
        StubScreener(), interval=20, classifier=classifier, training_interval=3600, clock=clock
    )
    daemon._schedule_training(immediately=True)

    daemon.run_once()
    daemon.run_once()

    assert classifier.trainings == 1


def test_training_repeats_after_interval():
    clock = FakeClock()
    classifier = StubClassifier()
    daemon = ScreeningDaemon(
        StubScreener(), interval=20, classifier=classifier, training_interval=3600, clock=clock
    )
    daemon._schedule_training(immediately=False)

    daemon.run_once()
    assert classifier.trainings == 0

    clock.now += 3600
    daemon.run_once()
    assert classifier.trainings == 1


def test_training_failure_is_logged_and_screening_continues(caplog):
    screener = StubScreener()
    classifier = StubClassifier(fail=True)
    daemon = ScreeningDaemon(
        screener, interval=20, classifier=classifier, training_interval=60, clock=FakeClock()
    )
    daemon._schedule_training(immediately=True)

    with caplog.at_level(logging.ERROR):
        assert daemon.run_once() is True

    assert screener.calls == 1
    assert "Spam training failed" in caplog.text
    assert daemon.status_snapshot()["trainings"] == 0


def test_failed_run_is_reported_in_status():
    daemon = ScreeningDaemon(StubScreener([False]), interval=20, clock=FakeClock())

    assert daemon.run_once() is False
    snapshot = daemon.status_snapshot()

    assert snapshot["last_run_ok"] is False
    assert snapshot["runs"] == 1


def test_run_loops_until_stopped():
    screener = StubScreener()
    classifier = StubClassifier()
    daemon = ScreeningDaemon(screener, interval=0.01, classifier=classifier, training_interval=60)
    screener.on_run = lambda: daemon.stop() if screener.calls >= 2 else None

    daemon.run(initial_training=True)

    assert screener.calls == 2
    assert classifier.trainings == 1
