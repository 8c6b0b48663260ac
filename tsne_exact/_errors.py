"""Exceptions raised by the t-SNE pipeline."""

# License: BSD 3 clause

__all__ = [
    "ShapeError",
    "InternalConsistencyError",
    "DegenerateStateError",
]


class ShapeError(ValueError):
    """A matrix handed to the pipeline does not have the required shape.

    Raised when a distance or probability matrix is not square, when the
    point matrix is not two dimensional, or when an initial embedding does
    not match ``(n_samples, n_components)``.
    """


class InternalConsistencyError(RuntimeError):
    """A calibrated probability row violates its own contract.

    The row has the wrong length or a non-zero self entry. This points to
    a bug in the calibration and is never retried.
    """


class DegenerateStateError(FloatingPointError):
    """The optimizer produced a non-finite gradient or embedding."""

    def __init__(self, message, iteration=None):
        super().__init__(message)
        self.iteration = iteration
