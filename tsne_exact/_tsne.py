# License: BSD 3 clause
#
# Exact t-SNE as described in:
# van der Maaten, L.J.P. and Hinton, G.E. (2008). Visualizing High-Dimensional
# Data Using t-SNE. Journal of Machine Learning Research, 9, 2579-2605.

import warnings
from numbers import Integral, Real

import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.decomposition import PCA
from sklearn.utils import check_random_state
from sklearn.utils._param_validation import Interval, StrOptions
from sklearn.utils.validation import check_array, check_is_fitted
from tqdm import tqdm

from ._distances import vectors_to_distances
from ._errors import ShapeError
from ._observers import CompositeObserver, VerboseObserver
from ._optimizer import INIT_SCALE, MIN_COST_EVERY, tsne
from ._perplexity import distances_to_probabilities

__all__ = ["ExactTSNE"]


class ExactTSNE(TransformerMixin, BaseEstimator):
    """Exact t-distributed Stochastic Neighbor Embedding.

    Input similarities come from Gaussian kernels whose bandwidths are
    calibrated per point to a target perplexity. The embedding is found by
    gradient descent on the KL divergence with momentum, adaptive gains
    and early exaggeration. Every pairwise term is computed exactly, so
    time and memory grow with ``n_samples ** 2``.

    Parameters
    ----------
    n_components : int, default=2
        Dimension of the embedded space.

    perplexity : float, default=30.0
        Effective number of neighbors of each point. Must be smaller than
        the number of samples; larger values are replaced by
        ``max(1, (n_samples - 1) / 3)`` with a warning.

    tolerance : float, default=1e-5
        Binary search tolerance on the log-perplexity of each row.

    early_exaggeration : float, default=4.0
        Factor applied to the input probabilities during the first
        ``exaggeration_cutoff_iter`` iterations.

    exaggeration_cutoff_iter : int, default=100
        Iteration at which early exaggeration ends.

    learning_rate : float, default=500.0
        Gradient descent step size.

    max_iter : int, default=1000
        Number of optimization iterations.

    initial_momentum : float, default=0.5
        Momentum used before ``momentum_switch_iter``.

    final_momentum : float, default=0.8
        Momentum used from ``momentum_switch_iter`` on.

    momentum_switch_iter : int, default=20
        Iteration at which the momentum switches.

    min_gain : float, default=0.01
        Lower bound of the adaptive per-coordinate gains.

    metric : {"euclidean", "precomputed"}, default="euclidean"
        "euclidean" computes squared Euclidean distances between the rows
        of X. With "precomputed", X must already be a square matrix of
        squared distances.

    init : {"random", "pca"} or ndarray of shape (n_samples, n_components), \
            default="random"
        Initial embedding. "random" draws ``1e-4 * N(0, 1)``, "pca" uses
        the leading principal components scaled to the same magnitude.

    pca_components : int, default=None
        If set, X is first projected onto this many principal components
        before distances are computed. Ignored when the data already has
        no more features than that, and for precomputed distances.

    verbose : int, default=0
        Verbosity level. 1 prints calibration and cost progress and shows
        a progress bar; 2 also reports rows that did not converge.

    random_state : int, RandomState instance or None, default=None
        Seed of the initialization and of the PCA solvers.

    n_jobs : int, default=None
        Number of threads used to calibrate the perplexities.

    observer : ProgressObserver, default=None
        Extra observer notified of calibration and optimization progress,
        alongside the verbose output.

    progress_every : int, default=500
        Row cadence of calibration progress reports.

    cost_every : int, default=10
        Iteration cadence of the KL divergence reports. At least 10.

    Attributes
    ----------
    embedding_ : ndarray of shape (n_samples, n_components)
        Stores the embedding vectors.

    kl_divergence_ : float
        KL divergence of the final embedding.

    n_iter_ : int
        Number of iterations run.

    cost_history_ : ndarray of shape (n_iter_ // cost_every,)
        KL divergence sampled every ``cost_every`` iterations. Values from
        the early exaggeration phase are measured against the exaggerated P.

    beta_ : ndarray of shape (n_samples,)
        Calibrated inverse variance of every input kernel.

    calibration_residuals_ : ndarray of shape (n_samples,)
        Final ``|H - log(perplexity)|`` of every row.

    effective_perplexity_ : float
        Perplexity actually used.

    n_features_in_ : int
        Number of features seen during :term:`fit`.

    Examples
    --------
    >>> import numpy as np
    >>> from tsne_exact import ExactTSNE
    >>> X = np.array([[0, 0, 0], [0, 1, 1], [1, 0, 1], [1, 1, 1]])
    >>> model = ExactTSNE(perplexity=2, random_state=0)
    >>> Y = model.fit_transform(X)
    >>> Y.shape
    (4, 2)
    """

    _parameter_constraints: dict = {
        "n_components": [Interval(Integral, 1, None, closed="left")],
        "perplexity": [Interval(Real, 0, None, closed="neither")],
        "tolerance": [Interval(Real, 0, None, closed="neither")],
        "early_exaggeration": [Interval(Real, 0, None, closed="neither")],
        "exaggeration_cutoff_iter": [Interval(Integral, 0, None, closed="left")],
        "learning_rate": [Interval(Real, 0, None, closed="neither")],
        "max_iter": [Interval(Integral, 1, None, closed="left")],
        "initial_momentum": [Interval(Real, 0, 1, closed="both")],
        "final_momentum": [Interval(Real, 0, 1, closed="both")],
        "momentum_switch_iter": [Interval(Integral, 0, None, closed="left")],
        "min_gain": [Interval(Real, 0, None, closed="neither")],
        "metric": [StrOptions({"euclidean", "precomputed"})],
        "init": [StrOptions({"random", "pca"}), np.ndarray],
        "pca_components": [None, Interval(Integral, 1, None, closed="left")],
        "verbose": ["verbose"],
        "random_state": ["random_state"],
        "n_jobs": [None, Integral],
        "observer": "no_validation",
        "progress_every": [Interval(Integral, 1, None, closed="left")],
        "cost_every": [Interval(Integral, MIN_COST_EVERY, None, closed="left")],
    }

    def __init__(
        self,
        n_components=2,
        perplexity=30.0,
        tolerance=1e-5,
        early_exaggeration=4.0,
        exaggeration_cutoff_iter=100,
        learning_rate=500.0,
        max_iter=1000,
        initial_momentum=0.5,
        final_momentum=0.8,
        momentum_switch_iter=20,
        min_gain=0.01,
        metric="euclidean",
        init="random",
        pca_components=None,
        verbose=0,
        random_state=None,
        n_jobs=None,
        observer=None,
        progress_every=500,
        cost_every=MIN_COST_EVERY,
    ):
        self.n_components = n_components
        self.perplexity = perplexity
        self.tolerance = tolerance
        self.early_exaggeration = early_exaggeration
        self.exaggeration_cutoff_iter = exaggeration_cutoff_iter
        self.learning_rate = learning_rate
        self.max_iter = max_iter
        self.initial_momentum = initial_momentum
        self.final_momentum = final_momentum
        self.momentum_switch_iter = momentum_switch_iter
        self.min_gain = min_gain
        self.metric = metric
        self.init = init
        self.pca_components = pca_components
        self.verbose = verbose
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.observer = observer
        self.progress_every = progress_every
        self.cost_every = cost_every

    def _check_input(self, X):
        """Validate the input data.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features) or (n_samples, n_samples)
            If the metric is 'precomputed' X must be a square matrix of
            squared distances. Otherwise it contains a sample per row.

        Returns
        -------
        X : ndarray
            The validated input, float32 or float64.
        """
        X = check_array(
            X,
            accept_sparse=False,
            dtype=[np.float64, np.float32],
            ensure_min_samples=2,
        )
        if self.metric == "precomputed":
            if X.shape[0] != X.shape[1]:
                raise ShapeError(
                    f"X should be a square distance matrix but has shape {X.shape}"
                )
            if np.any(X < 0):
                raise ValueError("Precomputed distance contains negative values")
            if isinstance(self.init, str) and self.init == "pca":
                raise ValueError(
                    'The parameter init="pca" cannot be used with '
                    'metric="precomputed".'
                )
        return X

    def _check_params_vs_input(self, X):
        """Pick the perplexity to use for ``X``.

        Parameters
        ----------
        X : ndarray of shape (n_samples, n_features)
            Input data.
        """
        n_samples = X.shape[0]
        if self.perplexity >= n_samples:
            self.effective_perplexity_ = max(1.0, (n_samples - 1) / 3.0)
            warnings.warn(
                f"Perplexity ({self.perplexity}) should be less than "
                f"n_samples ({n_samples}). "
                f"Using perplexity = {self.effective_perplexity_:.3f} instead.",
                UserWarning,
            )
        else:
            self.effective_perplexity_ = float(self.perplexity)

    def _make_observer(self):
        observers = []
        if self.verbose:
            observers.append(VerboseObserver(self.verbose))
        if self.observer is not None:
            observers.append(self.observer)

        if not observers:
            return None
        if len(observers) == 1:
            return observers[0]
        return CompositeObserver(observers)

    def _pairwise_distances(self, X, random_state):
        if self.metric == "precomputed":
            return X

        if self.pca_components is not None and self.pca_components < X.shape[1]:
            pca = PCA(
                n_components=self.pca_components,
                random_state=random_state.randint(0, 2**32 - 1),
            )
            X = pca.fit_transform(X)
            if self.verbose:
                tqdm.write(
                    f"Projected {X.shape[0]} samples onto "
                    f"{self.pca_components} principal components"
                )
        return vectors_to_distances(X)

    def _initial_embedding(self, X, random_state):
        if isinstance(self.init, np.ndarray):
            return self.init
        if self.init == "pca":
            pca = PCA(
                n_components=self.n_components,
                random_state=random_state.randint(0, 2**32 - 1),
            )
            embedding = pca.fit_transform(X)
            std = np.std(embedding[:, 0])
            if not np.isfinite(std) or std == 0:
                # No spread to rescale, e.g. coincident points
                return None
            return embedding / std * INIT_SCALE
        # 'random' is drawn inside the optimizer
        return None

    def fit(self, X, y=None):
        """Fit t-SNE model to X.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features) or (n_samples, n_samples)
            If the metric is 'precomputed' X must be a square matrix of
            squared distances. Otherwise it contains a sample per row.

        y : Ignored
            Not used, present for API consistency by convention.

        Returns
        -------
        self : object
            Returns the instance itself.
        """
        self._validate_params()

        X = self._check_input(X)
        self.n_features_in_ = X.shape[1]
        self._check_params_vs_input(X)

        random_state = check_random_state(self.random_state)
        observer = self._make_observer()

        distances = self._pairwise_distances(X, random_state)
        P, self.beta_, self.calibration_residuals_ = distances_to_probabilities(
            distances,
            tolerance=self.tolerance,
            perplexity=self.effective_perplexity_,
            observer=observer,
            progress_every=self.progress_every,
            n_jobs=self.n_jobs,
            return_beta=True,
        )

        self.embedding_, self.kl_divergence_, self.cost_history_ = tsne(
            P,
            self.n_components,
            max_iter=self.max_iter,
            initial_momentum=self.initial_momentum,
            final_momentum=self.final_momentum,
            momentum_switch_iter=self.momentum_switch_iter,
            learning_rate=self.learning_rate,
            min_gain=self.min_gain,
            early_exaggeration=self.early_exaggeration,
            exaggeration_cutoff_iter=self.exaggeration_cutoff_iter,
            init=self._initial_embedding(X, random_state),
            random_state=random_state,
            observer=observer,
            cost_every=self.cost_every,
            verbose=self.verbose,
            return_history=True,
        )
        self.n_iter_ = self.max_iter

        if self.verbose:
            tqdm.write(
                f"KL divergence after {self.n_iter_} iterations: "
                f"{self.kl_divergence_:.6f}"
            )
        return self

    def fit_transform(self, X, y=None):
        """Fit t-SNE model to X and return the embedding.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features) or (n_samples, n_samples)
            If the metric is 'precomputed' X must be a square matrix of
            squared distances. Otherwise it contains a sample per row.

        y : Ignored
            Not used, present for API consistency by convention.

        Returns
        -------
        embedding : ndarray of shape (n_samples, n_components)
            Embedding of the training data in low-dimensional space.
        """
        self.fit(X)
        return self.embedding_

    def transform(self, X):
        """Transform X to the embedded space.

        t-SNE has no out-of-sample mapping: new points cannot be placed
        without recomputing the whole embedding.

        Raises
        ------
        NotImplementedError
            In all cases.
        """
        check_is_fitted(self)

        raise NotImplementedError(
            "t-SNE does not support the transform method. "
            "Use fit_transform(X) on the full dataset instead."
        )

    def get_feature_names_out(self, input_features=None):
        """Get output feature names for transformation.

        Parameters
        ----------
        input_features : array-like of str or None, default=None
            Ignored.

        Returns
        -------
        feature_names_out : ndarray of str objects
            ``exacttsne0``, ``exacttsne1``, ...
        """
        check_is_fitted(self)
        return np.array(
            [f"exacttsne{i}" for i in range(self.n_components)], dtype=object
        )
