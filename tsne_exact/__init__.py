"""Exact t-SNE with momentum gradient descent."""

# License: BSD 3 clause

from ._distances import vectors_to_distances
from ._errors import DegenerateStateError, InternalConsistencyError, ShapeError
from ._observers import (
    CompositeObserver,
    HistoryObserver,
    ProgressObserver,
    VerboseObserver,
)
from ._optimizer import tsne
from ._perplexity import (
    binary_search_perplexity,
    distances_to_probabilities,
    joint_probabilities,
    perplexity_and_prob,
)
from ._tsne import ExactTSNE
from ._version import __version__

__all__ = [
    "ExactTSNE",
    "vectors_to_distances",
    "perplexity_and_prob",
    "binary_search_perplexity",
    "distances_to_probabilities",
    "joint_probabilities",
    "tsne",
    "ProgressObserver",
    "VerboseObserver",
    "HistoryObserver",
    "CompositeObserver",
    "ShapeError",
    "InternalConsistencyError",
    "DegenerateStateError",
    "__version__",
]
