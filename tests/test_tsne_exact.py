"""Tests for the ExactTSNE estimator."""

# License: BSD 3 clause

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal
from sklearn.datasets import load_iris
from sklearn.preprocessing import StandardScaler

from tsne_exact import ExactTSNE, HistoryObserver, ShapeError, vectors_to_distances


def test_exact_tsne_basic():
    """Test basic functionality of ExactTSNE."""
    X = np.array([[0, 0, 0], [0, 1, 1], [1, 0, 1], [1, 1, 1]])

    model = ExactTSNE(n_components=2, perplexity=2, max_iter=50, random_state=42)

    model.fit(X)
    assert model.embedding_.shape == (4, 2)
    assert model.n_iter_ == 50
    assert model.n_features_in_ == 3

    X_embedded = model.fit_transform(X)
    assert X_embedded.shape == (4, 2)

    with pytest.raises(NotImplementedError):
        model.transform(X)


def test_exact_tsne_iris():
    """Test ExactTSNE on the Iris dataset."""
    X = StandardScaler().fit_transform(load_iris().data)

    model = ExactTSNE(perplexity=10, max_iter=250, random_state=42)
    X_embedded = model.fit_transform(X)

    assert X_embedded.shape == (150, 2)
    assert np.all(np.isfinite(X_embedded))
    assert np.isfinite(model.kl_divergence_)
    assert model.cost_history_.shape == (25,)
    assert model.beta_.shape == (150,)
    assert np.all(model.beta_ > 0)


@pytest.mark.parametrize(
    "params",
    [
        {"perplexity": -1},
        {"n_components": 0},
        {"metric": "cosine"},
        {"init": "umap"},
        {"min_gain": 0},
        {"initial_momentum": 1.5},
        {"cost_every": 5},
    ],
)
def test_parameter_validation(params):
    """Invalid parameters are rejected at fit time."""
    X = np.random.RandomState(0).rand(10, 3)

    with pytest.raises(ValueError):
        ExactTSNE(**params).fit(X)


def test_init_options():
    """Test different initialization options."""
    X = np.random.RandomState(0).rand(10, 5)

    model = ExactTSNE(perplexity=3, init="pca", max_iter=20, random_state=42)
    assert model.fit_transform(X).shape == (10, 2)

    model = ExactTSNE(perplexity=3, init="random", max_iter=20, random_state=42)
    assert model.fit_transform(X).shape == (10, 2)

    init_embedding = np.random.RandomState(1).rand(10, 2) * 0.0001
    model = ExactTSNE(perplexity=3, init=init_embedding, max_iter=20, random_state=42)
    assert model.fit_transform(X).shape == (10, 2)


def test_init_with_wrong_shape():
    X = np.random.RandomState(0).rand(10, 5)

    with pytest.raises(ShapeError):
        ExactTSNE(perplexity=3, init=np.zeros((9, 2))).fit(X)


def test_precomputed_matches_euclidean():
    X = np.random.RandomState(2).randn(20, 4)

    Y_euclidean = ExactTSNE(perplexity=5, max_iter=50, random_state=0).fit_transform(X)
    Y_precomputed = ExactTSNE(
        perplexity=5, max_iter=50, random_state=0, metric="precomputed"
    ).fit_transform(vectors_to_distances(X))

    assert_allclose(Y_precomputed, Y_euclidean)


def test_precomputed_must_be_square():
    with pytest.raises(ShapeError):
        ExactTSNE(metric="precomputed").fit(np.ones((5, 4)))


def test_precomputed_rejects_negative_distances():
    D = -np.ones((5, 5))

    with pytest.raises(ValueError, match="negative"):
        ExactTSNE(metric="precomputed", perplexity=2).fit(D)


def test_precomputed_rejects_pca_init():
    D = vectors_to_distances(np.random.RandomState(0).rand(6, 2))

    with pytest.raises(ValueError, match="pca"):
        ExactTSNE(metric="precomputed", init="pca", perplexity=2).fit(D)


def test_large_perplexity_is_reduced():
    X = np.random.RandomState(3).rand(10, 3)
    model = ExactTSNE(perplexity=30.0, max_iter=20, random_state=0)

    with pytest.warns(UserWarning, match="Perplexity"):
        model.fit(X)

    assert model.effective_perplexity_ == 3.0


def test_pca_preprojection():
    X = np.random.RandomState(4).randn(30, 20)

    model = ExactTSNE(perplexity=5, pca_components=5, max_iter=30, random_state=0)

    assert model.fit_transform(X).shape == (30, 2)
    assert model.n_features_in_ == 20


def test_float32_input_is_preserved():
    X = np.random.RandomState(5).rand(15, 4).astype(np.float32)

    Y = ExactTSNE(perplexity=4, max_iter=30, random_state=0).fit_transform(X)

    assert Y.dtype == np.float32


def test_n_jobs_does_not_change_result():
    X = np.random.RandomState(6).rand(25, 3)

    Y1 = ExactTSNE(perplexity=5, max_iter=30, random_state=0).fit_transform(X)
    Y2 = ExactTSNE(perplexity=5, max_iter=30, random_state=0, n_jobs=2).fit_transform(
        X
    )

    assert_array_equal(Y1, Y2)


def test_observer_receives_progress():
    X = np.random.RandomState(7).rand(12, 3)
    observer = HistoryObserver()

    ExactTSNE(
        perplexity=3, max_iter=40, random_state=0, observer=observer, progress_every=5
    ).fit(X)

    assert observer.rows == [(0, 12), (5, 12), (10, 12)]
    assert len(observer.calibrations) == 1
    assert [it for it, _ in observer.costs] == [10, 20, 30, 40]


def test_verbose_output(capsys):
    X = np.random.RandomState(8).rand(12, 3)

    ExactTSNE(perplexity=3, max_iter=20, random_state=0, verbose=1).fit(X)

    out = capsys.readouterr().out
    assert "P-values for point 0 of 12" in out
    assert "Mean sigma" in out
    assert "Iteration 10: error is" in out


def test_get_feature_names_out():
    X = np.random.RandomState(9).rand(8, 3)
    model = ExactTSNE(n_components=3, perplexity=2, max_iter=10).fit(X)

    assert_array_equal(
        model.get_feature_names_out(), ["exacttsne0", "exacttsne1", "exacttsne2"]
    )


def test_pca_init_on_coincident_points():
    """PCA init falls back to the random start when there is no spread."""
    X = np.ones((5, 3))

    Y = ExactTSNE(perplexity=2, init="pca", max_iter=50, random_state=0).fit_transform(
        X
    )

    assert Y.shape == (5, 2)
    assert np.all(np.isfinite(Y))


def test_cost_every_sets_report_cadence():
    X = np.random.RandomState(10).rand(12, 3)
    observer = HistoryObserver()

    model = ExactTSNE(
        perplexity=3, max_iter=60, random_state=0, observer=observer, cost_every=20
    ).fit(X)

    assert [it for it, _ in observer.costs] == [20, 40, 60]
    assert model.cost_history_.shape == (3,)


def test_verbose_messages_go_through_tqdm(capsys):
    X = np.random.RandomState(12).randn(15, 8)

    ExactTSNE(
        perplexity=3, pca_components=4, max_iter=20, random_state=0, verbose=1
    ).fit(X)

    out = capsys.readouterr().out
    assert "Projected 15 samples onto 4 principal components" in out
    assert "KL divergence after 20 iterations" in out
