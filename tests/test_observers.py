"""Tests for progress observers."""

# License: BSD 3 clause

import numpy as np
import pytest
from numpy.testing import assert_array_equal

from tsne_exact import (
    CompositeObserver,
    HistoryObserver,
    ProgressObserver,
    VerboseObserver,
    distances_to_probabilities,
    tsne,
    vectors_to_distances,
)
from tsne_exact._observers import notify


class FailingObserver(ProgressObserver):
    def on_row_progress(self, i, n):
        raise RuntimeError("display gone")

    def on_iteration_cost(self, iteration, cost):
        raise RuntimeError("display gone")


def _conditional_P(n_samples=12):
    X = np.random.RandomState(0).rand(n_samples, 3)
    return distances_to_probabilities(vectors_to_distances(X), perplexity=3.0)


def test_notify_ignores_missing_observer_and_hooks():
    notify(None, "on_row_progress", 0, 10)
    notify(object(), "on_row_progress", 0, 10)


def test_base_observer_hooks_are_no_ops():
    observer = ProgressObserver()

    observer.on_row_progress(0, 1)
    observer.on_calibration_done(1.0, 0)
    observer.on_iteration_cost(10, 0.5)


def test_failing_observer_does_not_change_embedding():
    P = _conditional_P()

    expected = tsne(P, max_iter=30, random_state=0)
    with pytest.warns(UserWarning, match="display gone"):
        Y = tsne(P, max_iter=30, random_state=0, observer=FailingObserver())

    assert_array_equal(Y, expected)


def test_failing_observer_does_not_stop_calibration():
    D = vectors_to_distances(np.random.RandomState(1).rand(8, 2))

    with pytest.warns(UserWarning, match="on_row_progress"):
        P = distances_to_probabilities(D, perplexity=3.0, observer=FailingObserver())

    assert_array_equal(P, distances_to_probabilities(D, perplexity=3.0))


def test_composite_observer_forwards_to_all():
    first, second = HistoryObserver(), HistoryObserver()
    observer = CompositeObserver([first, FailingObserver(), second])

    with pytest.warns(UserWarning):
        observer.on_row_progress(3, 10)
    observer.on_calibration_done(0.5, 1)
    with pytest.warns(UserWarning):
        observer.on_iteration_cost(20, 1.25)

    for history in (first, second):
        assert history.rows == [(3, 10)]
        assert history.calibrations == [(0.5, 1)]
        assert history.costs == [(20, 1.25)]


def test_verbose_observer_messages(capsys):
    observer = VerboseObserver(verbose=2)

    observer.on_row_progress(500, 1000)
    observer.on_calibration_done(1.5, 2)
    observer.on_iteration_cost(30, 0.125)

    out = capsys.readouterr().out
    assert "P-values for point 500 of 1000" in out
    assert "Mean sigma: 1.500000" in out
    assert "2 rows did not reach the perplexity tolerance" in out
    assert "Iteration 30: error is 0.125000" in out


def test_quiet_verbose_observer_only_prints_summary(capsys):
    observer = VerboseObserver(verbose=0)

    observer.on_row_progress(0, 10)
    observer.on_calibration_done(1.0, 3)
    observer.on_iteration_cost(10, 0.5)

    out = capsys.readouterr().out
    assert out.strip() == "Mean sigma: 1.000000"
