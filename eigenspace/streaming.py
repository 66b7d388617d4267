"""Streaming drivers and the batch reference.

This module runs a :class:`~eigenspace.model.SubspaceModel` over a stream of
observations and records per-step diagnostics, and compares the resulting
eigenspace against a batch PCA of the same data.  The batch fit serves as an
oracle for approximation quality: when no rank truncation happens the
incremental and batch eigenspaces agree up to rounding and the signs of the
basis vectors.

All drivers expose a common output: a dictionary of time series, one entry
per folded observation.
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.linalg import norm

from .metrics import cumulative_energy_rank, principal_angles, subspace_distance
from .model import SubspaceModel
from .utils import as_matrix, timer

logger = logging.getLogger(__name__)


def run_stream(model: SubspaceModel, X) -> dict[str, list]:
    """Fold the rows of ``X`` into ``model`` one at a time.

    Parameters
    ----------
    model : SubspaceModel
        Model to update in place (fitted or not).
    X : array_like of shape (T, D)
        Stream of observations.

    Returns
    -------
    results : dict
        Dictionary with keys ``'rank'`` (basis rank after each step),
        ``'eigenvalues'`` (ascending spectrum after each step),
        ``'residual_norm'`` (norm of the out-of-subspace component of each
        sample) and ``'orth_error'``.
    """
    X = as_matrix(X)
    ranks: list[int] = []
    spectra: list[np.ndarray] = []
    residuals: list[float] = []
    orth_errors: list[float] = []

    with timer(f"streamed {X.shape[0]} samples"):
        for x in X:
            info = model.update(x)
            ranks.append(info["rank"])
            spectra.append(model.eigenvalues)
            residuals.append(info["residual_norm"])
            orth_errors.append(info["orth_error"])

    return {'rank': ranks, 'eigenvalues': spectra,
            'residual_norm': residuals, 'orth_error': orth_errors}


def batch_reference(X,
                    max_rank: int | None = None,
                    ddof: int = 1,
                    method: str = "svd",
                    tol: float = 1e-10) -> SubspaceModel:
    """Fit a fresh model on the whole of ``X`` in one pass."""
    return SubspaceModel(max_rank=max_rank, ddof=ddof, tol=tol).fit(X, method=method)


def compare_to_batch(model: SubspaceModel, X, energy: float = 0.99) -> dict[str, float]:
    """Compare an incrementally built model with the batch PCA of ``X``.

    The reference is fitted with the same ``max_rank``, ``ddof`` and ``tol``
    as ``model``.  Eigenvalues are compared over the common top directions.

    Parameters
    ----------
    model : SubspaceModel
        Fitted model, typically built with :func:`run_stream`.
    X : array_like of shape (T, D)
        The data the model was built from.
    energy : float, optional
        Variance fraction used for the ``'energy_rank'`` entries.

    Returns
    -------
    report : dict
        ``'mean_error'`` (Euclidean distance of the means),
        ``'eigenvalue_error'`` (max relative eigenvalue discrepancy),
        ``'subspace_distance'`` (projection distance of the bases),
        ``'max_principal_angle'`` (largest angle between the bases, radians),
        the two ranks ``'rank'`` / ``'reference_rank'`` and the number of top
        directions reaching ``energy`` in each, ``'energy_rank'`` /
        ``'reference_energy_rank'``.
    """
    cfg = model.config
    ref = batch_reference(X, max_rank=cfg.max_rank, ddof=cfg.ddof, tol=cfg.tol)

    lam, lam_ref = model.eigenvalues, ref.eigenvalues
    k = min(len(lam), len(lam_ref))
    if k:
        top, top_ref = lam[-k:], lam_ref[-k:]
        eig_err = float(np.max(np.abs(top - top_ref)) / max(1e-300, float(np.max(np.abs(top_ref)))))
    else:
        eig_err = 0.0
    angles = principal_angles(model.eigenvectors, ref.eigenvectors)

    report = {
        'mean_error': float(norm(model.mean - ref.mean)),
        'eigenvalue_error': eig_err,
        'subspace_distance': subspace_distance(model.eigenvectors, ref.eigenvectors),
        'max_principal_angle': float(np.max(angles)) if angles.size else 0.0,
        'rank': model.rank,
        'reference_rank': ref.rank,
        'energy_rank': cumulative_energy_rank(lam, energy),
        'reference_energy_rank': cumulative_energy_rank(lam_ref, energy),
    }
    logger.info("incremental vs batch: %s", report)
    return report
