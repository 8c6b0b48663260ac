"""Progress observers for the t-SNE pipeline.

The numeric code never prints. It reports to an observer, and observers
decide whether anything is shown. An observer that raises is reported as a
warning and otherwise ignored, so a broken progress display can never
abort or change an embedding.
"""

# License: BSD 3 clause

import warnings

from tqdm import tqdm

__all__ = [
    "ProgressObserver",
    "VerboseObserver",
    "HistoryObserver",
    "CompositeObserver",
    "notify",
]


class ProgressObserver:
    """Base observer. Every hook is a no-op; override the ones you need."""

    def on_row_progress(self, i, n):
        """Called while calibrating row ``i`` of ``n``."""

    def on_calibration_done(self, mean_sigma, n_unconverged):
        """Called once every row has been calibrated.

        Parameters
        ----------
        mean_sigma : float
            ``mean(sqrt(1 / beta))`` over all rows.
        n_unconverged : int
            Number of rows whose binary search stopped at the iteration cap.
        """

    def on_iteration_cost(self, iteration, cost):
        """Called with the KL divergence after ``iteration`` iterations."""


class VerboseObserver(ProgressObserver):
    """Write progress messages through ``tqdm.write``.

    Parameters
    ----------
    verbose : int, default=1
        Row progress and per-iteration costs are shown for ``verbose >= 1``.
        The calibration summary is always shown.
    """

    def __init__(self, verbose=1):
        self.verbose = verbose

    def on_row_progress(self, i, n):
        if self.verbose > 0:
            tqdm.write(f"P-values for point {i} of {n}")

    def on_calibration_done(self, mean_sigma, n_unconverged):
        tqdm.write(f"Mean sigma: {mean_sigma:.6f}")
        if n_unconverged and self.verbose > 1:
            tqdm.write(
                f"{n_unconverged} rows did not reach the perplexity tolerance"
            )

    def on_iteration_cost(self, iteration, cost):
        if self.verbose > 0:
            tqdm.write(f"Iteration {iteration}: error is {cost:.6f}")


class HistoryObserver(ProgressObserver):
    """Record every event in plain lists."""

    def __init__(self):
        self.rows = []
        self.calibrations = []
        self.costs = []

    def on_row_progress(self, i, n):
        self.rows.append((i, n))

    def on_calibration_done(self, mean_sigma, n_unconverged):
        self.calibrations.append((mean_sigma, n_unconverged))

    def on_iteration_cost(self, iteration, cost):
        self.costs.append((iteration, cost))


class CompositeObserver(ProgressObserver):
    """Forward every event to each of ``observers`` in order."""

    def __init__(self, observers):
        self.observers = list(observers)

    def on_row_progress(self, i, n):
        for observer in self.observers:
            notify(observer, "on_row_progress", i, n)

    def on_calibration_done(self, mean_sigma, n_unconverged):
        for observer in self.observers:
            notify(observer, "on_calibration_done", mean_sigma, n_unconverged)

    def on_iteration_cost(self, iteration, cost):
        for observer in self.observers:
            notify(observer, "on_iteration_cost", iteration, cost)


def notify(observer, event, *args):
    """Send ``event`` to ``observer``, turning any exception into a warning.

    ``observer`` may be None, and may lack the hook entirely.
    """
    if observer is None:
        return
    hook = getattr(observer, event, None)
    if hook is None:
        return
    try:
        hook(*args)
    except Exception as e:
        warnings.warn(
            f"Observer {type(observer).__name__}.{event} raised "
            f"{type(e).__name__}: {e}",
            UserWarning,
        )
