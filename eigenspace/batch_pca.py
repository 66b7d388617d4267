"""Batch principal component analysis.

Given a data matrix ``X`` of shape (N, D), this module computes

    mean = X.mean(axis=0),   Xc = X - mean,

and the eigenpairs of the sample covariance ``Xc.T @ Xc / (N - ddof)`` from a
decomposition of the centred data.  Two backends are offered:

* ``method="svd"`` – an economy SVD of ``Xc``; its cost is governed by
  ``min(N, D)``.
* ``method="eigh"`` – a symmetric eigendecomposition of the smaller of the two
  Gram matrices, ``Xc.T @ Xc`` (D × D) when ``N >= D`` or ``Xc @ Xc.T``
  (N × N) otherwise.  In the latter case the right singular vectors are
  recovered as ``Xc.T @ u / s``.

Directions whose singular value is numerically zero are discarded, so a
single observation produces an empty basis.  Results are returned with the
eigenvalues in **ascending** order, matching :func:`numpy.linalg.eigh`.

Example
-------

```python
import numpy as np
from eigenspace.batch_pca import batch_pca

X = np.random.randn(100, 8)
mean, V, lam, coeffs = batch_pca(X)
# V[:, -1] is the direction of largest variance, lam[-1] its variance
```
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.linalg import LinAlgError, eigh, svd

from .exceptions import DecompositionError
from .utils import as_matrix

logger = logging.getLogger(__name__)

_METHODS = ("svd", "eigh")


def _right_singular_pairs(Xc: np.ndarray,
                          method: str,
                          tol: float) -> tuple[np.ndarray, np.ndarray]:
    """Return singular values (descending) and right singular vectors of ``Xc``.

    Only the numerically non-zero singular directions are returned.
    """
    n, d = Xc.shape
    try:
        if method == "svd":
            _, s, Vt = svd(Xc, full_matrices=False)
            V = Vt.T
        elif n >= d:
            w, V = eigh(Xc.T @ Xc)
            w, V = w[::-1], V[:, ::-1]
            s = np.sqrt(np.clip(w, 0.0, None))
        else:
            w, U = eigh(Xc @ Xc.T)
            w, U = w[::-1], U[:, ::-1]
            s = np.sqrt(np.clip(w, 0.0, None))
            V = None
    except LinAlgError as exc:
        raise DecompositionError(f"batch {method} decomposition did not converge") from exc

    if s.size == 0:
        return s, np.zeros((d, 0))

    floor = tol * float(s[0])
    # Squaring in the Gram matrix loses half of the significant digits
    if method == "eigh":
        floor = max(floor, 10.0 * float(s[0]) * np.sqrt(max(n, d) * np.finfo(float).eps))
    keep = s > floor

    s = s[keep]
    if V is None:
        V = (Xc.T @ U[:, keep]) / s
    else:
        V = V[:, keep]
    return s, V


def batch_pca(X,
              method: str = "svd",
              tol: float = 1e-10,
              ddof: int = 1,
              max_rank: int | None = None
              ) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Compute the eigenspace of a data matrix in one pass.

    Parameters
    ----------
    X : array_like of shape (N, D)
        Observations in rows.
    method : {'svd', 'eigh'}, optional
        Decomposition backend, see the module docstring.
    tol : float, optional
        Relative tolerance below which a singular value counts as zero.
    ddof : int, optional
        Delta degrees of freedom; eigenvalues are ``s**2 / (N - ddof)``.
    max_rank : int, optional
        If given, only the ``max_rank`` directions of largest variance are kept.

    Returns
    -------
    mean : ndarray of shape (D,)
        Column-wise mean of ``X``.
    eigenvectors : ndarray of shape (D, K)
        Orthonormal principal directions, ordered by ascending variance.
    eigenvalues : ndarray of shape (K,)
        Covariance eigenvalues in ascending order.
    coefficients : ndarray of shape (K, N)
        Coordinates of the centred observations in the returned basis.

    Raises
    ------
    DimensionMismatchError
        If ``X`` is ragged or not 2-D.
    EmptyInputError
        If ``X`` has no rows or columns.
    DecompositionError
        If the NumPy backend fails to converge.
    """
    if method not in _METHODS:
        raise ValueError(f"method must be one of {_METHODS}, got {method!r}")
    X = as_matrix(X)
    n, d = X.shape

    mean = X.mean(axis=0)
    Xc = X - mean

    s, V = _right_singular_pairs(Xc, method, tol)
    eigenvalues = s ** 2 / max(n - ddof, 1)

    # Ascending order: reverse the descending singular ordering
    eigenvalues = eigenvalues[::-1].copy()
    V = V[:, ::-1].copy()

    if max_rank is not None and len(eigenvalues) > max_rank:
        drop = len(eigenvalues) - max_rank
        eigenvalues = eigenvalues[drop:]
        V = V[:, drop:]

    coefficients = V.T @ Xc.T
    logger.info("batch PCA (%s) on %d x %d data: rank %d", method, n, d, V.shape[1])
    return mean, V, eigenvalues, coefficients
