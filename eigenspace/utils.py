"""Miscellaneous helpers: input coercion, seeding, timing and YAML I/O."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

import numpy as np
import yaml

from .exceptions import DimensionMismatchError, EmptyInputError

logger = logging.getLogger(__name__)


def as_matrix(X) -> np.ndarray:
    """Coerce ``X`` to a float matrix of shape (N, D) with N, D >= 1.

    Raises
    ------
    DimensionMismatchError
        If the rows of ``X`` have different lengths or ``X`` is not 2-D.
    EmptyInputError
        If ``X`` has no rows or no columns.
    """
    try:
        X = np.asarray(X, dtype=float)
    except (ValueError, TypeError) as exc:
        raise DimensionMismatchError(f"data rows must share one length: {exc}") from exc
    if X.size == 0:
        raise EmptyInputError(f"cannot fit on empty data of shape {X.shape}")
    if X.ndim != 2:
        raise DimensionMismatchError(
            f"data must be 2-D (n_samples, n_features), got shape {X.shape}")
    return X


def as_vector(v, dim: int | None = None) -> np.ndarray:
    """Coerce ``v`` to a 1-D float vector, optionally checking its length."""
    try:
        v = np.asarray(v, dtype=float)
    except (ValueError, TypeError) as exc:
        raise DimensionMismatchError(f"input is not a numeric vector: {exc}") from exc
    if v.ndim != 1 or v.size == 0:
        raise DimensionMismatchError(f"expected a non-empty 1-D vector, got shape {v.shape}")
    if dim is not None and v.shape[0] != dim:
        raise DimensionMismatchError(f"expected dimension {dim}, got {v.shape[0]}")
    return v


def set_seed(seed: int | None) -> np.random.Generator:
    """Return a NumPy generator seeded with ``seed``.

    Parameters
    ----------
    seed : int or None
        Seed for the random number generator.  If ``None``, a random seed is
        drawn from the operating system.
    """
    if seed is None:
        seed = np.random.SeedSequence().entropy
    return np.random.default_rng(seed)


def make_low_rank_data(n_samples: int,
                       n_features: int,
                       rank: int,
                       noise: float = 0.0,
                       offset: float = 0.0,
                       seed: int | None = None) -> np.ndarray:
    """Draw ``n_samples`` points near an affine subspace of dimension ``rank``.

    The latent coordinates have geometrically decaying scales so that the
    population eigenvalues are well separated.

    Parameters
    ----------
    n_samples, n_features : int
        Shape of the returned matrix.
    rank : int
        Dimension of the subspace the points are drawn from.
    noise : float, optional
        Standard deviation of isotropic Gaussian noise added to every entry.
    offset : float, optional
        Scale of the random mean vector added to every row.
    seed : int, optional
        Seed passed to :func:`set_seed`.

    Returns
    -------
    X : ndarray of shape (n_samples, n_features)
    """
    rng = set_seed(seed)
    basis, _ = np.linalg.qr(rng.standard_normal(size=(n_features, rank)))
    scales = 2.0 ** -np.arange(rank)
    latent = rng.standard_normal(size=(n_samples, rank)) * scales
    X = latent @ basis.T + offset * rng.standard_normal(size=n_features)
    if noise > 0:
        X += noise * rng.standard_normal(size=X.shape)
    return X


@contextmanager
def timer(message: str | None = None):
    """A context manager for timing a block of code.

    Parameters
    ----------
    message : str, optional
        If provided, this string is logged at debug level together with the
        elapsed time upon exit.
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if message:
            logger.debug("%s: %.3f s", message, elapsed)


def load_config(config_path: str) -> dict:
    """Load a YAML file into a dictionary.

    Parameters
    ----------
    config_path : str
        Path to a YAML file.

    Returns
    -------
    cfg : dict
        Parsed mapping (empty if the file is empty).
    """
    with open(config_path, 'r', encoding='utf-8') as f:
        cfg = yaml.safe_load(f)
    return cfg if cfg is not None else {}


def save_results(path: str, results: dict) -> None:
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(results, f, sort_keys=False)
