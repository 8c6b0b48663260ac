"""Gradient descent on the t-SNE objective.

Exact O(n^2) gradient of KL(P || Q) with a Student-t (one degree of
freedom) output kernel, optimized with momentum, per-coordinate adaptive
gains and an early exaggeration phase.
"""

# License: BSD 3 clause

from typing import Tuple

import numpy as np
from scipy.special import rel_entr
from sklearn.utils import check_random_state
from tqdm import tqdm

from ._distances import vectors_to_distances
from ._errors import DegenerateStateError, ShapeError
from ._observers import notify
from ._perplexity import PROBABILITY_FLOOR, joint_probabilities

__all__ = ["tsne"]

# The cost is evaluated at most once every this many iterations
MIN_COST_EVERY = 10

INIT_SCALE = 1e-4


def _kl_divergence(
    Y: np.ndarray, P: np.ndarray, compute_error: bool = True
) -> Tuple[float, np.ndarray]:
    """KL divergence between P and the Student-t affinities of Y, and its gradient.

    Parameters
    ----------
    Y : ndarray of shape (n_samples, n_components)
        Current embedding.
    P : ndarray of shape (n_samples, n_samples)
        Joint probabilities, floored and possibly exaggerated.
    compute_error : bool, default=True
        Whether to evaluate the divergence. Otherwise NaN is returned.

    Returns
    -------
    kl_divergence : float
    grad : ndarray of shape (n_samples, n_components)
    """
    num = 1.0 / (1.0 + vectors_to_distances(Y))
    np.fill_diagonal(num, 0)
    Q = np.maximum(num / np.sum(num), PROBABILITY_FLOOR)

    if compute_error:
        kl_divergence = float(np.sum(rel_entr(P, Q)))
    else:
        kl_divergence = np.nan

    # grad_i = sum_j (p_ij - q_ij) num_ij (y_i - y_j)
    PQd = (P - Q) * num
    grad = PQd.sum(axis=1)[:, np.newaxis] * Y - PQd @ Y

    return kl_divergence, grad


def _gradient_descent_step(
    Y,
    P,
    update,
    gains,
    momentum,
    learning_rate,
    min_gain,
    compute_error=False,
):
    """Perform one step of gradient descent with momentum and adaptive gains.

    ``Y``, ``update`` and ``gains`` are modified in place. The embedding is
    re-centered after the step.

    Returns
    -------
    error : float
        KL divergence at the start of the step, NaN unless
        ``compute_error``.
    grad : ndarray of shape (n_samples, n_components)
    """
    error, grad = _kl_divergence(Y, P, compute_error=compute_error)

    # Gain grows where the gradient disagrees in sign with the last update
    inc = (grad > 0) != (update > 0)
    gains[inc] += 0.2
    gains[~inc] *= 0.8
    np.clip(gains, min_gain, np.inf, out=gains)

    update *= momentum
    update -= learning_rate * (gains * grad)
    Y += update
    Y -= Y.mean(axis=0)

    return error, grad


def _initial_embedding(init, n_samples, n_components, dtype, random_state):
    if init is None:
        random_state = check_random_state(random_state)
        Y = INIT_SCALE * random_state.standard_normal((n_samples, n_components))
        return Y.astype(dtype, copy=False)

    init = np.asarray(init)
    if init.shape != (n_samples, n_components):
        raise ShapeError(
            f"init.shape={init.shape} but should be "
            f"(n_samples, n_components)=({n_samples}, {n_components})"
        )
    return init.astype(dtype, copy=True)


def tsne(
    P,
    n_components=2,
    *,
    max_iter=1000,
    initial_momentum=0.5,
    final_momentum=0.8,
    momentum_switch_iter=20,
    learning_rate=500.0,
    min_gain=0.01,
    early_exaggeration=4.0,
    exaggeration_cutoff_iter=100,
    init=None,
    random_state=None,
    observer=None,
    cost_every=MIN_COST_EVERY,
    verbose=0,
    return_history=False,
):
    """Embed the points described by ``P`` in ``n_components`` dimensions.

    Parameters
    ----------
    P : ndarray of shape (n_samples, n_samples)
        Conditional or joint input probabilities. They are symmetrized,
        normalized to sum to one and floored before use.

    n_components : int, default=2
        Dimension of the embedded space.

    max_iter : int, default=1000
        Number of iterations. There is no early stopping.

    initial_momentum, final_momentum : float, default=0.5, 0.8
        Momentum before and from ``momentum_switch_iter`` on.

    momentum_switch_iter : int, default=20
        Iteration at which the final momentum takes over.

    learning_rate : float, default=500.0
        Step size applied to the gain-scaled gradient.

    min_gain : float, default=0.01
        Floor of the per-coordinate gains.

    early_exaggeration : float, default=4.0
        Factor applied to P until ``exaggeration_cutoff_iter``.

    exaggeration_cutoff_iter : int, default=100
        Iteration at the end of which P is divided back by
        ``early_exaggeration``.

    init : ndarray of shape (n_samples, n_components), default=None
        Starting embedding. None draws ``1e-4 * N(0, 1)``.

    random_state : int, RandomState instance or None, default=None
        Seed of the random initialization.

    observer : ProgressObserver, default=None
        Receives ``on_iteration_cost`` every ``cost_every`` iterations.

    cost_every : int, default=10
        Iteration cadence of the cost evaluation. Must be at least 10.

    verbose : int, default=0
        Show a tqdm progress bar when greater than 0.

    return_history : bool, default=False
        Whether to also return the final cost and the sampled costs.

    Returns
    -------
    Y : ndarray of shape (n_samples, n_components)
        The embedding, centered on the origin.

    kl_divergence : float
        KL divergence of the final embedding against the un-exaggerated P.
        Only returned if ``return_history``.

    cost_history : ndarray of shape (max_iter // cost_every,)
        Cost after iterations cost_every, 2 * cost_every, ... Only returned if
        ``return_history``.

    Raises
    ------
    ShapeError
        If P is not square or ``init`` has the wrong shape.
    ValueError
        If ``cost_every`` is smaller than 10.
    DegenerateStateError
        If the gradient or the embedding stops being finite.
    """
    if cost_every < MIN_COST_EVERY:
        raise ValueError(
            f"cost_every must be at least {MIN_COST_EVERY}, got {cost_every}"
        )

    P = joint_probabilities(P)
    n_samples = P.shape[0]
    P *= early_exaggeration
    exaggerated = True

    Y = _initial_embedding(init, n_samples, n_components, P.dtype, random_state)
    update = np.zeros_like(Y)
    gains = np.ones_like(Y)
    cost_history = []

    if verbose > 0:
        iterator = tqdm(range(max_iter))
    else:
        iterator = range(max_iter)

    for it in iterator:
        momentum = initial_momentum if it < momentum_switch_iter else final_momentum
        report = (it + 1) % cost_every == 0

        error, grad = _gradient_descent_step(
            Y,
            P,
            update,
            gains,
            momentum=momentum,
            learning_rate=learning_rate,
            min_gain=min_gain,
            compute_error=report,
        )

        if not (np.all(np.isfinite(grad)) and np.all(np.isfinite(Y))):
            raise DegenerateStateError(
                f"Non-finite gradient or embedding at iteration {it}", iteration=it
            )

        if report:
            cost_history.append(error)
            notify(observer, "on_iteration_cost", it + 1, error)

        if it == exaggeration_cutoff_iter:
            P /= early_exaggeration
            exaggerated = False

    if not return_history:
        return Y

    if exaggerated:
        P /= early_exaggeration
    kl_divergence, _ = _kl_divergence(Y, P)
    return Y, kl_divergence, np.array(cost_history)
