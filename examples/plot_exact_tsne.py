"""
====================================================
Exact t-SNE on the digits dataset
====================================================

Embeds the 8x8 digits with ExactTSNE and scikit-learn's TSNE side by side,
and plots the KL divergence sampled during the optimization.
"""

# License: BSD 3 clause

import matplotlib.pyplot as plt
import numpy as np
from sklearn.datasets import load_digits
from sklearn.manifold import TSNE

from tsne_exact import ExactTSNE

digits = load_digits()
X = digits.data[:1000]
y = digits.target[:1000]

print("Computing scikit-learn t-SNE embedding...")
X_sklearn = TSNE(n_components=2, init="pca", random_state=42).fit_transform(X)

print("Computing exact t-SNE embedding...")
model = ExactTSNE(
    n_components=2,
    perplexity=30.0,
    pca_components=30,
    max_iter=1000,
    random_state=42,
    verbose=1,
)
X_exact = model.fit_transform(X)

fig, axes = plt.subplots(1, 3, figsize=(18, 6))

scatter = axes[0].scatter(X_sklearn[:, 0], X_sklearn[:, 1], c=y, cmap="tab10", s=8)
axes[0].set_title("scikit-learn t-SNE")

axes[1].scatter(X_exact[:, 0], X_exact[:, 1], c=y, cmap="tab10", s=8)
axes[1].set_title("ExactTSNE")
fig.colorbar(scatter, ax=axes[:2], ticks=range(10), label="Digit")

iterations = 10 * np.arange(1, len(model.cost_history_) + 1)
axes[2].plot(iterations, model.cost_history_)
axes[2].axvline(model.exaggeration_cutoff_iter, color="grey", linestyle="--")
axes[2].set_xlabel("Iteration")
axes[2].set_ylabel("KL divergence")
axes[2].set_title("Cost during optimization")

plt.savefig("exact_tsne_digits.png", dpi=150)
plt.show()
