"""Incremental (robust subspace) update of a PCA eigenspace.

This module folds a single observation ``x`` into an eigenspace

    mean,  V (D × K, orthonormal),  lam (K, ascending),  n samples,

without touching historical data, following the robust subspace approach of
[Skočaj, 2003].  The new sample is centred on the current mean and split into
its in-subspace coefficients ``c = V.T @ a`` and an orthogonal residual ``g``.
If the residual carries genuine energy, ``g / ||g||`` is appended to the basis.
The covariance of the next step, restricted to the (possibly augmented)
basis, is then exactly

    R = diag(lam) * (n - ddof) / (n' - ddof)
        + c c^T * n / (n' * (n' - ddof)),          n' = n + 1,

so the update reduces to an eigendecomposition of a ``K × K`` or
``(K+1) × (K+1)`` matrix followed by a rotation of the basis.  The cost is
``O(D K^2 + K^3)`` when ``D >> K``.  With ``ddof=0`` the scalings are the
population ones ``n/n'`` and ``n/n'^2``; with ``ddof=1`` the result matches a
batch PCA of the same samples normalised by ``N - 1``.

The routine is a pure function: it returns new arrays and never modifies its
inputs, which makes it straightforward for callers to commit the result
atomically.

Example
-------

```python
import numpy as np
from eigenspace.batch_pca import batch_pca
from eigenspace.incremental_pca import incremental_update

X = np.random.randn(50, 6)
mean, V, lam, _ = batch_pca(X[:-1])
mean, V, lam, _, info = incremental_update(mean, V, lam, 49, X[-1])
```
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.linalg import LinAlgError, eigh, norm, qr

from .exceptions import DecompositionError
from .metrics import orth_error

logger = logging.getLogger(__name__)


def incremental_update(mean: np.ndarray,
                       V: np.ndarray,
                       lam: np.ndarray,
                       n: int,
                       x: np.ndarray,
                       *,
                       coefficients: np.ndarray | None = None,
                       tol: float = 1e-10,
                       ddof: int = 1,
                       max_rank: int | None = None,
                       reorth_tol: float = 1e-8
                       ) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray | None, dict]:
    """Fold one observation into an existing eigenspace.

    Parameters
    ----------
    mean : ndarray of shape (D,)
        Current mean.
    V : ndarray of shape (D, K)
        Current orthonormal basis, columns ordered by ascending variance.
    lam : ndarray of shape (K,)
        Current eigenvalues (ascending).
    n : int
        Number of samples already folded in (``n >= 1``).
    x : ndarray of shape (D,)
        New observation.
    coefficients : ndarray of shape (K, n), optional
        Coordinates of the previous samples in ``V`` relative to ``mean``.  If
        given, the updated coordinates of all ``n + 1`` samples are returned.
    tol : float, optional
        A residual norm ``rho`` is treated as zero when
        ``rho <= tol * max(||x - mean||, sqrt(lam[-1]))`` (and always when
        ``rho`` is exactly zero).
    ddof : int, optional
        Delta degrees of freedom of the covariance normalisation (0 or 1).
    max_rank : int, optional
        Maximum number of directions kept after the update.  The
        lowest-eigenvalue directions are dropped first.
    reorth_tol : float, optional
        If ``||I - V^T V||_F`` of the rotated basis exceeds this value, the
        basis is re-orthonormalised with a QR factorisation.

    Returns
    -------
    mean_new : ndarray of shape (D,)
    V_new : ndarray of shape (D, K')
    lam_new : ndarray of shape (K',)
    coefficients_new : ndarray of shape (K', n + 1) or None
    info : dict
        Diagnostics with keys ``rank``, ``residual_norm``, ``grown``,
        ``truncated`` and ``orth_error``.

    Raises
    ------
    DecompositionError
        If the small eigendecomposition does not converge.
    """
    d, k = V.shape
    n_new = n + 1

    a = x - mean
    c = V.T @ a
    g = a - V @ c
    rho = float(norm(g))

    # Noise floor relative to the sample and to the spread of the data
    scale = max(float(norm(a)), float(np.sqrt(lam[-1])) if k else 0.0)
    grown = k < d and rho > 0.0 and rho > tol * scale
    if grown:
        V_aug = np.hstack((V, (g / rho)[:, None]))
        c_aug = np.concatenate((c, [rho]))
        lam_aug = np.concatenate((lam, [0.0]))
    else:
        V_aug, c_aug, lam_aug = V, c, lam

    # Covariance of the augmented basis after the update
    old_scale = (n - ddof) / (n_new - ddof)
    new_scale = n / (n_new * (n_new - ddof))
    R = np.diag(lam_aug * old_scale) + new_scale * np.outer(c_aug, c_aug)

    try:
        w, U = eigh(R) if R.size else (np.zeros(0), np.zeros((0, 0)))
    except LinAlgError as exc:
        raise DecompositionError("eigendecomposition of the update matrix did not converge") from exc

    V_new = V_aug @ U
    lam_new = np.clip(w, 0.0, None)
    mean_new = mean + a / n_new

    coeffs_new = None
    if coefficients is not None:
        A = coefficients
        if grown:
            A = np.vstack((A, np.zeros((1, A.shape[1]))))
        A = np.hstack((A, c_aug[:, None]))
        # Re-centre on the new mean, then rotate into the new basis
        coeffs_new = U.T @ (A - (c_aug / n_new)[:, None])

    gamma = orth_error(V_new)
    if gamma > reorth_tol:
        logger.warning("orthogonality drift %.3e exceeds %.1e, re-orthonormalising", gamma, reorth_tol)
        Q, Rq = qr(V_new, mode="reduced")
        # Keep the column orientation of V_new
        V_new = Q * np.sign(np.where(np.diag(Rq) == 0, 1.0, np.diag(Rq)))
        gamma = orth_error(V_new)

    truncated = 0
    if max_rank is not None and len(lam_new) > max_rank:
        truncated = len(lam_new) - max_rank
        V_new = V_new[:, truncated:]
        lam_new = lam_new[truncated:]
        if coeffs_new is not None:
            coeffs_new = coeffs_new[truncated:]
        gamma = orth_error(V_new)

    info = {
        "rank": len(lam_new),
        "residual_norm": rho,
        "grown": bool(grown),
        "truncated": truncated,
        "orth_error": float(gamma),
    }
    logger.debug("incremental update n=%d -> %d: %s", n, n_new, info)
    return mean_new, V_new, lam_new, coeffs_new, info
