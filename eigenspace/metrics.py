"""Metric functions for evaluating eigenspaces and reconstructions."""

from __future__ import annotations

import numpy as np
from numpy.linalg import norm, svd


def orth_error(V: np.ndarray) -> float:
    """Compute the orthogonality error ``||I - V^T V||_F``.

    Parameters
    ----------
    V : ndarray of shape (D, K)
        Basis whose columns should be orthonormal.

    Returns
    -------
    gamma : float
        Frobenius norm of the deviation of ``V`` from orthonormality
        (0.0 for an empty basis).
    """
    k = V.shape[1]
    return float(norm(np.eye(k) - V.T @ V, 'fro'))


def relative_error(X: np.ndarray, X_hat: np.ndarray) -> float:
    """Relative Frobenius (or Euclidean) error ``||X - X_hat|| / ||X||``.

    For an all-zero ``X`` the absolute error is returned.
    """
    X = np.asarray(X, dtype=float)
    scale = float(norm(X))
    return float(norm(X - X_hat) / scale) if scale > 0 else float(norm(X_hat))


def principal_angles(V1: np.ndarray, V2: np.ndarray) -> np.ndarray:
    """Principal angles (radians, ascending) between two column spaces.

    Both inputs must have orthonormal columns.  The number of angles is the
    smaller of the two ranks.
    """
    if V1.shape[1] == 0 or V2.shape[1] == 0:
        return np.zeros(0)
    cosines = svd(V1.T @ V2, compute_uv=False)
    return np.arccos(np.clip(cosines, -1.0, 1.0))


def subspace_distance(V1: np.ndarray, V2: np.ndarray) -> float:
    """Projection distance ``||V1 V1^T - V2 V2^T||_F`` between two subspaces.

    The value is invariant to the sign and ordering of the basis vectors, which
    makes it suitable for comparing an incrementally built basis against a batch
    reference.
    """
    P1 = V1 @ V1.T
    P2 = V2 @ V2.T
    return float(norm(P1 - P2, 'fro'))


def explained_variance_ratio(eigenvalues: np.ndarray) -> np.ndarray:
    """Fraction of the retained variance carried by each eigenvalue.

    The ordering of ``eigenvalues`` is preserved; an all-zero or empty
    spectrum yields zeros.
    """
    eigenvalues = np.asarray(eigenvalues, dtype=float)
    total = float(np.sum(eigenvalues))
    if total <= 0.0:
        return np.zeros_like(eigenvalues)
    return eigenvalues / total


def cumulative_energy_rank(eigenvalues: np.ndarray, threshold: float) -> int:
    """Smallest number of leading directions whose energy reaches ``threshold``.

    Parameters
    ----------
    eigenvalues : ndarray of shape (K,)
        Eigenvalues in ascending order.
    threshold : float
        Fraction of the total variance to retain, in ``(0, 1]``.

    Returns
    -------
    k : int
        Number of top directions, or 0 for an empty or all-zero spectrum.
    """
    if not 0.0 < threshold <= 1.0:
        raise ValueError(f"threshold must lie in (0, 1], got {threshold}")
    ratios = explained_variance_ratio(eigenvalues)[::-1]
    if ratios.size == 0 or ratios.sum() == 0.0:
        return 0
    cumulative = np.cumsum(ratios)
    # Smallest k such that energy >= threshold (guarding rounding at 1.0)
    k = int(np.searchsorted(cumulative, threshold - 1e-12) + 1)
    return min(k, len(ratios))
