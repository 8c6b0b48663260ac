"""Perplexity calibration and input-space probabilities.

Each point gets a Gaussian kernel whose bandwidth is found by binary search
so that the conditional distribution over the other points has the
requested perplexity. The search works on log-perplexity (entropy in nats)
and never exponentiates it.
"""

# License: BSD 3 clause

from typing import Iterator, Optional, Tuple

import numpy as np
from joblib import Parallel, delayed

from ._errors import InternalConsistencyError, ShapeError
from ._observers import notify

__all__ = [
    "perplexity_and_prob",
    "binary_search_perplexity",
    "distances_to_probabilities",
    "joint_probabilities",
]

# Floor applied to joint probabilities so that log(P / Q) stays finite
PROBABILITY_FLOOR = 1e-12

MAX_SEARCH_ITER = 50


def _as_float_array(a):
    a = np.asarray(a)
    if not np.issubdtype(a.dtype, np.floating):
        a = a.astype(np.float64)
    return a


def _check_square(M, name):
    if M.ndim != 2 or M.shape[0] != M.shape[1]:
        raise ShapeError(f"{name} is not square: shape {M.shape}")


def perplexity_and_prob(
    D: np.ndarray, beta: float = 1.0, i: Optional[int] = None
) -> Tuple[float, np.ndarray]:
    """Compute the log-perplexity and the probability row for one beta.

    Parameters
    ----------
    D : ndarray of shape (n_samples,)
        Squared distances from point ``i`` to every point.
    beta : float, default=1.0
        Inverse variance of the Gaussian kernel.
    i : int, default=None
        Index of the point itself. Its weight is forced to zero.

    Returns
    -------
    H : float
        Log-perplexity (Shannon entropy in nats) of the row.
    P : ndarray of shape (n_samples,)
        Normalized probabilities, ``P[i] == 0``.
    """
    D = _as_float_array(D)
    P = np.exp(-D * beta)
    if i is not None:
        P[i] = 0
    tot = P.sum()
    if tot == 0:
        # Every weight underflowed; fall back to a flat row
        P = np.maximum(P, np.finfo(P.dtype).eps)
        if i is not None:
            P[i] = 0
        tot = P.sum()
    H = float(np.log(tot) + beta * np.dot(D, P) / tot)
    P /= tot
    return H, P


def _iter_binary_search(
    Di: np.ndarray, log_perplexity: float, i: Optional[int], max_iter: int
) -> Iterator[Tuple[float, float, float, float, np.ndarray]]:
    """Yield ``(beta, betamin, betamax, H, P)`` for each evaluated beta.

    The first item is the evaluation at ``beta = 1``; each following item
    comes after one bound update. The caller decides when to stop.
    """
    betamin, betamax = -np.inf, np.inf
    beta = 1.0

    H, P = perplexity_and_prob(Di, beta, i)
    yield beta, betamin, betamax, H, P

    for _ in range(max_iter):
        if H > log_perplexity:
            # Kernel too wide: raise beta
            betamin = beta
            if not np.isfinite(betamax):
                beta *= 2
            else:
                beta = (beta + betamax) / 2
        else:
            betamax = beta
            if not np.isfinite(betamin):
                beta /= 2
            else:
                beta = (beta + betamin) / 2

        H, P = perplexity_and_prob(Di, beta, i)
        yield beta, betamin, betamax, H, P


def binary_search_perplexity(
    Di,
    perplexity,
    i=None,
    tolerance=1e-5,
    max_iter=MAX_SEARCH_ITER,
    return_diagnostics=False,
):
    """Find the beta that gives row ``Di`` the requested perplexity.

    The log-perplexity of the row decreases monotonically in beta, so the
    search doubles (or halves) beta until the target is bracketed, then
    bisects. If ``max_iter`` updates are not enough, the last beta is
    returned as is.

    Parameters
    ----------
    Di : ndarray of shape (n_samples,)
        Squared distances from point ``i`` to every point.
    perplexity : float
        Target perplexity.
    i : int, default=None
        Index of the point itself, excluded from its own distribution.
    tolerance : float, default=1e-5
        Maximum allowed ``|H - log(perplexity)|``.
    max_iter : int, default=50
        Maximum number of beta updates.
    return_diagnostics : bool, default=False
        Whether to also return the number of updates and final residual.

    Returns
    -------
    P : ndarray of shape (n_samples,)
        Calibrated probability row, ``P[i] == 0``.
    beta : float
        Bandwidth that produced ``P``.
    n_iter : int
        Number of beta updates. Only returned if ``return_diagnostics``.
    residual : float
        Final ``|H - log(perplexity)|``. Only returned if
        ``return_diagnostics``.
    """
    log_perplexity = np.log(perplexity)

    n_iter = -1
    for beta, _, _, H, P in _iter_binary_search(Di, log_perplexity, i, max_iter):
        n_iter += 1
        if abs(H - log_perplexity) <= tolerance:
            break

    if return_diagnostics:
        return P, beta, n_iter, abs(H - log_perplexity)
    return P, beta


def distances_to_probabilities(
    D,
    tolerance=1e-5,
    perplexity=30.0,
    *,
    observer=None,
    progress_every=500,
    n_jobs=None,
    return_beta=False,
):
    """Convert a squared distance matrix into conditional probabilities.

    Parameters
    ----------
    D : ndarray of shape (n_samples, n_samples)
        Squared pairwise distances.
    tolerance : float, default=1e-5
        Binary search tolerance on the log-perplexity.
    perplexity : float, default=30.0
        Target perplexity of every row.
    observer : ProgressObserver, default=None
        Receives ``on_row_progress`` every ``progress_every`` rows and
        ``on_calibration_done`` at the end.
    progress_every : int, default=500
        Row cadence of progress reports.
    n_jobs : int, default=None
        Number of threads used to calibrate rows. None means 1. Rows are
        independent, so the result does not depend on this.
    return_beta : bool, default=False
        Whether to also return the per-row betas and residuals.

    Returns
    -------
    P : ndarray of shape (n_samples, n_samples)
        Row ``i`` is the distribution of point ``i`` over the others;
        ``P[i, i] == 0``.
    beta : ndarray of shape (n_samples,)
        Only returned if ``return_beta``.
    residuals : ndarray of shape (n_samples,)
        Final ``|H - log(perplexity)|`` per row. Only returned if
        ``return_beta``.

    Raises
    ------
    ShapeError
        If D is not square.
    InternalConsistencyError
        If a calibrated row has the wrong size or a non-zero self entry.
    """
    D = _as_float_array(D)
    _check_square(D, "D")
    n_samples = D.shape[0]

    def calibrate(i):
        return binary_search_perplexity(
            D[i], perplexity, i, tolerance, return_diagnostics=True
        )

    if n_jobs is None or n_jobs == 1:
        results = map(calibrate, range(n_samples))
    else:
        results = Parallel(n_jobs=n_jobs, prefer="threads", return_as="generator")(
            delayed(calibrate)(i) for i in range(n_samples)
        )

    P = np.zeros((n_samples, n_samples), dtype=D.dtype)
    beta = np.ones(n_samples)
    residuals = np.zeros(n_samples)

    for i, (P_row, beta_i, _, residual) in enumerate(results):
        beta[i] = beta_i
        residuals[i] = residual
        if i % progress_every == 0:
            notify(observer, "on_row_progress", i, n_samples)

        if P_row.shape != (n_samples,):
            raise InternalConsistencyError(
                f"P_row {i} has the wrong size: {P_row.shape[0]} != {n_samples}"
            )
        if P_row[i] != 0.0:
            raise InternalConsistencyError(f"P_row {i} diagonal entry was not zero")
        P[i] = P_row

    notify(
        observer,
        "on_calibration_done",
        float(np.mean(np.sqrt(1.0 / beta))),
        int(np.sum(residuals > tolerance)),
    )

    if return_beta:
        return P, beta, residuals
    return P


def joint_probabilities(P):
    """Symmetrize conditional probabilities into a joint distribution.

    Parameters
    ----------
    P : ndarray of shape (n_samples, n_samples)
        Conditional probabilities, one distribution per row.

    Returns
    -------
    P_joint : ndarray of shape (n_samples, n_samples)
        ``P + P.T`` scaled to sum to one, every entry floored at ``1e-12``.
    """
    P = _as_float_array(P)
    _check_square(P, "P")

    P = P + P.T
    sum_P = np.maximum(P.sum(), np.finfo(P.dtype).eps)
    P /= sum_P
    np.maximum(P, PROBABILITY_FLOOR, out=P)
    return P
