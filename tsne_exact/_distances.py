"""Pairwise squared Euclidean distances between the rows of a matrix."""

# License: BSD 3 clause

import numpy as np

from ._errors import ShapeError

__all__ = ["squared_norms", "vectors_to_distances"]


def squared_norms(X: np.ndarray) -> np.ndarray:
    """Return ``||x_i||^2`` for every row of X."""
    return np.einsum("ij,ij->i", X, X)


def vectors_to_distances(X: np.ndarray) -> np.ndarray:
    """Convert a matrix of points into a matrix of squared distances.

    Uses ``||x_i - x_j||^2 = ||x_i||^2 + ||x_j||^2 - 2 x_i . x_j`` so that
    the only O(n^2 d) work is a single dense product ``X @ X.T``. The upper
    triangle is combined and mirrored into the lower one, and the diagonal
    is exactly zero.

    Parameters
    ----------
    X : ndarray of shape (n_samples, n_features)
        One point per row. Float32 input stays float32.

    Returns
    -------
    D : ndarray of shape (n_samples, n_samples)
        Symmetric matrix with ``D[i, j] = ||x_i - x_j||^2``.

    Raises
    ------
    ShapeError
        If X is not two dimensional.
    """
    X = np.asarray(X)
    if X.ndim != 2:
        raise ShapeError(f"Expected a 2D matrix of points, got shape {X.shape}")
    if not np.issubdtype(X.dtype, np.floating):
        X = X.astype(np.float64)

    n_samples = X.shape[0]
    sum_X = squared_norms(X)
    XXT = X @ X.T

    D = np.zeros((n_samples, n_samples), dtype=X.dtype)
    rows, cols = np.triu_indices(n_samples, k=1)
    upper = sum_X[rows] + sum_X[cols] - 2 * XXT[rows, cols]
    # Round-off can leave tiny negatives for (nearly) coincident points
    np.maximum(upper, 0, out=upper)
    D[rows, cols] = upper
    D[cols, rows] = upper
    return D
