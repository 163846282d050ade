from __future__ import annotations

import numpy as np


def rbf_kernel(X: np.ndarray, Y: np.ndarray, gamma: float) -> np.ndarray:
    """Exact Gaussian kernel K[i, j] = exp(-gamma * ||X[i] - Y[j]||^2).

    X: [A, D]
    Y: [B, D]
    returns K: [A, B]
    """
    X = np.asarray(X, dtype=np.float64)
    Y = np.asarray(Y, dtype=np.float64)
    if X.ndim != 2 or Y.ndim != 2:
        raise ValueError("X and Y must be 2D")
    if X.shape[1] != Y.shape[1]:
        raise ValueError("X and Y must have same D")

    sq = (
        np.sum(X * X, axis=1)[:, None]
        + np.sum(Y * Y, axis=1)[None, :]
        - 2.0 * (X @ Y.T)
    )
    # Cancellation can leave tiny negatives on the diagonal.
    sq = np.maximum(sq, 0.0)
    return np.exp(-float(gamma) * sq)


def approximate_kernel(Zx: np.ndarray, Zy: np.ndarray) -> np.ndarray:
    """Kernel estimate from random features.

    Features normalised by 1/sqrt(m) give z(x) . z(y) ~= k(x, y) / 2, hence
    the factor 2.
    """
    Zx = np.asarray(Zx, dtype=np.float64)
    Zy = np.asarray(Zy, dtype=np.float64)
    if Zx.ndim != 2 or Zy.ndim != 2:
        raise ValueError("Zx and Zy must be 2D")
    if Zx.shape[1] != Zy.shape[1]:
        raise ValueError("Zx and Zy must have same feature count")
    return 2.0 * (Zx @ Zy.T)
