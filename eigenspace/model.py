"""Stateful PCA eigenspace.

This module defines :class:`SubspaceModel`, which owns the current eigenspace
of a data stream (mean, eigenvectors, eigenvalues and sample count) and
exposes batch fitting, incremental updates, projection, reconstruction and
persistence.  The numerical work is delegated to
:func:`eigenspace.batch_pca.batch_pca` and
:func:`eigenspace.incremental_pca.incremental_update`; this class validates
inputs, applies the configuration and commits results atomically, so a
failed call never leaves a partially updated model behind.

Eigenvalues are stored in ascending order, hence the directions of largest
variance are the *last* columns of :attr:`SubspaceModel.eigenvectors`.
:meth:`SubspaceModel.project` and :meth:`SubspaceModel.reconstruct` work with
coefficients ordered from the largest variance down.
"""

from __future__ import annotations

import logging

import numpy as np

from .batch_pca import batch_pca
from .config import ModelConfig
from .exceptions import DimensionMismatchError, InvalidRankError, NotFittedError
from .incremental_pca import incremental_update
from .metrics import explained_variance_ratio, orth_error, relative_error
from .utils import as_matrix, as_vector

logger = logging.getLogger(__name__)


class SubspaceModel:
    """Batch and incremental PCA eigenspace.

    Parameters
    ----------
    max_rank : int, optional
        Maximum basis rank ``Kmax``.  After each fit or update the
        lowest-variance directions beyond this rank are dropped.
    tol : float, optional
        Relative numerical-zero tolerance for residual-driven basis growth.
    ddof : int, optional
        Covariance normalisation ``N - ddof`` (0 or 1).
    keep_coefficients : bool, optional
        If ``True``, keep the coordinates of every folded observation in
        :attr:`coefficients`.
    reorth_tol : float, optional
        Orthogonality drift that triggers QR re-orthonormalisation.

    Notes
    -----
    The model is a plain mutable object without internal locking.  Callers
    that share it across threads must serialise access themselves.
    """

    def __init__(self,
                 max_rank: int | None = None,
                 tol: float = 1e-10,
                 ddof: int = 1,
                 keep_coefficients: bool = False,
                 reorth_tol: float = 1e-8) -> None:
        self.config = ModelConfig(max_rank=max_rank, tol=tol, ddof=ddof,
                                  keep_coefficients=keep_coefficients,
                                  reorth_tol=reorth_tol)
        self.reset()

    @classmethod
    def from_config(cls, config: ModelConfig | dict) -> "SubspaceModel":
        if isinstance(config, dict):
            config = ModelConfig.from_dict(config)
        return cls(**config.to_dict())

    def reset(self) -> None:
        """Forget all data and return to the unfitted state."""
        self._mean: np.ndarray | None = None
        self._V: np.ndarray | None = None
        self._lam: np.ndarray | None = None
        self._coefficients: np.ndarray | None = None
        self._n = 0

    def _commit(self, mean, V, lam, n, coefficients=None) -> None:
        self._mean = mean
        self._V = V
        self._lam = lam
        self._n = int(n)
        self._coefficients = coefficients if self.config.keep_coefficients else None

    def _require_fitted(self, what: str) -> None:
        if not self.fitted:
            raise NotFittedError(f"SubspaceModel.{what}: no eigenspace available, fit or update first")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def fitted(self) -> bool:
        return self._n > 0

    @property
    def sample_count(self) -> int:
        return self._n

    @property
    def mean(self) -> np.ndarray:
        self._require_fitted("mean")
        return self._mean.copy()

    @property
    def eigenvectors(self) -> np.ndarray:
        """Orthonormal basis of shape (D, K), columns by ascending variance."""
        self._require_fitted("eigenvectors")
        return self._V.copy()

    @property
    def eigenvalues(self) -> np.ndarray:
        """Eigenvalues of shape (K,) in ascending order."""
        self._require_fitted("eigenvalues")
        return self._lam.copy()

    @property
    def coefficients(self) -> np.ndarray | None:
        """Coordinates (K, N) of the folded observations, if kept."""
        self._require_fitted("coefficients")
        return None if self._coefficients is None else self._coefficients.copy()

    @property
    def rank(self) -> int:
        self._require_fitted("rank")
        return self._V.shape[1]

    @property
    def n_features(self) -> int:
        self._require_fitted("n_features")
        return self._mean.shape[0]

    @property
    def explained_variance_ratio(self) -> np.ndarray:
        self._require_fitted("explained_variance_ratio")
        return explained_variance_ratio(self._lam)

    def orthogonality_error(self) -> float:
        self._require_fitted("orthogonality_error")
        return orth_error(self._V)

    # ------------------------------------------------------------------
    # Fitting
    # ------------------------------------------------------------------

    def fit(self, X, method: str = "svd") -> "SubspaceModel":
        """Replace the eigenspace with a batch PCA of ``X``.

        Parameters
        ----------
        X : array_like of shape (N, D)
            Observations in rows.
        method : {'svd', 'eigh'}, optional
            Decomposition backend, see :mod:`eigenspace.batch_pca`.

        Returns
        -------
        self : SubspaceModel
        """
        cfg = self.config
        mean, V, lam, coeffs = batch_pca(X, method=method, tol=cfg.tol,
                                         ddof=cfg.ddof, max_rank=cfg.max_rank)
        self._commit(mean, V, lam, coeffs.shape[1], coeffs)
        return self

    def update(self, x) -> dict:
        """Fold a single observation into the eigenspace.

        The first observation only establishes the mean (rank 0).  Later ones
        rotate, possibly grow and re-truncate the basis, see
        :func:`eigenspace.incremental_pca.incremental_update`.

        A sample equal to the current mean leaves the mean and the
        eigenvectors unchanged, but the eigenvalues are still rescaled by
        ``(n - ddof) / (n + 1 - ddof)``: the covariance of the enlarged sample
        set is smaller, and the result stays equal to a batch fit.

        Parameters
        ----------
        x : array_like of shape (D,)
            New observation.

        Returns
        -------
        info : dict
            Diagnostics: ``rank``, ``residual_norm``, ``grown``,
            ``truncated`` and ``orth_error``.
        """
        if not self.fitted:
            x = as_vector(x)
            d = x.shape[0]
            self._commit(x.copy(), np.zeros((d, 0)), np.zeros(0), 1, np.zeros((0, 1)))
            logger.debug("first sample establishes dimension %d", d)
            return {"rank": 0, "residual_norm": 0.0, "grown": False,
                    "truncated": 0, "orth_error": 0.0}

        x = as_vector(x, self._mean.shape[0])
        cfg = self.config
        mean, V, lam, coeffs, info = incremental_update(
            self._mean, self._V, self._lam, self._n, x,
            coefficients=self._coefficients,
            tol=cfg.tol, ddof=cfg.ddof, max_rank=cfg.max_rank,
            reorth_tol=cfg.reorth_tol,
        )
        self._commit(mean, V, lam, self._n + 1, coeffs)
        return info

    def partial_fit(self, X) -> "SubspaceModel":
        """Fold every row of ``X`` in turn.

        The call is atomic: if any row fails, the model is restored to the
        state it had before the call.
        """
        X = as_matrix(X)
        if self.fitted and X.shape[1] != self._mean.shape[0]:
            raise DimensionMismatchError(
                f"expected dimension {self._mean.shape[0]}, got {X.shape[1]}")
        snapshot = (self._mean, self._V, self._lam, self._n, self._coefficients)
        try:
            for row in X:
                self.update(row)
        except Exception:
            self._mean, self._V, self._lam, self._n, self._coefficients = snapshot
            raise
        return self

    # ------------------------------------------------------------------
    # Projection / reconstruction
    # ------------------------------------------------------------------

    def _top(self, k: int | None, what: str) -> np.ndarray:
        """Return the ``k`` highest-variance directions, largest first."""
        self._require_fitted(what)
        K = self._V.shape[1]
        if k is None:
            k = K
        if isinstance(k, bool) or int(k) != k or not 1 <= k <= K:
            raise InvalidRankError(f"SubspaceModel.{what}: k must lie in [1, {K}], got {k}")
        return self._V[:, ::-1][:, :int(k)]

    def project(self, x, k: int | None = None) -> np.ndarray:
        """Coefficients of ``x - mean`` on the top ``k`` directions.

        Parameters
        ----------
        x : array_like of shape (D,) or (N, D)
            Vector or rows to project.
        k : int, optional
            Number of directions, ``1 <= k <= K``.  Defaults to ``K``.

        Returns
        -------
        p : ndarray of shape (k,) or (N, k)
            Coefficients ordered from the largest variance down.
        """
        W = self._top(k, "project")
        d = self._mean.shape[0]
        x = np.asarray(x, dtype=float)
        if x.ndim == 2:
            if x.shape[1] != d:
                raise DimensionMismatchError(f"expected dimension {d}, got {x.shape[1]}")
            return (x - self._mean) @ W
        x = as_vector(x, d)
        return W.T @ (x - self._mean)

    def reconstruct(self, p) -> np.ndarray:
        """Map coefficients produced by :meth:`project` back to data space.

        Parameters
        ----------
        p : array_like of shape (k,) or (N, k)
            Coefficients on the top ``k`` directions, largest variance first.

        Returns
        -------
        x_hat : ndarray of shape (D,) or (N, D)
        """
        self._require_fitted("reconstruct")
        p = np.asarray(p, dtype=float)
        if p.ndim not in (1, 2):
            raise DimensionMismatchError(f"coefficients must be 1-D or 2-D, got shape {p.shape}")
        W = self._top(p.shape[-1], "reconstruct")
        if p.ndim == 2:
            return self._mean + p @ W.T
        return self._mean + W @ p

    def reconstruction_error(self, x, k: int | None = None) -> float:
        """Relative error of reconstructing ``x`` from its top-``k`` projection."""
        x_hat = self.reconstruct(self.project(x, k))
        return relative_error(x, x_hat)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> dict:
        """Serialise the eigenspace into an ordered key/value record."""
        from .persistence import to_record
        return to_record(self)

    def load(self, record: dict) -> "SubspaceModel":
        """Replace the eigenspace with the content of ``record``."""
        from .persistence import from_record
        return from_record(record, model=self)

    def __repr__(self) -> str:
        if not self.fitted:
            return f"SubspaceModel(unfitted, max_rank={self.config.max_rank})"
        return (f"SubspaceModel(n_features={self.n_features}, rank={self.rank}, "
                f"sample_count={self._n}, max_rank={self.config.max_rank})")
