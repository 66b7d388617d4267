"""Serialisation of :class:`~eigenspace.model.SubspaceModel` eigenspaces.

A model is mapped to an ordered key/value record

    mean          -> vector (D,)
    eigenvectors  -> matrix (D, K)
    eigenvalues   -> vector (K,)
    sampleCount   -> integer >= 1
    coefficients  -> matrix (K, N)     (only when the model keeps them)

and back.  :func:`save_model` and :func:`load_model` store the same record as
a YAML document, with arrays written as nested lists of floats.
"""

from __future__ import annotations

import logging
import numbers

import numpy as np

from .exceptions import CorruptStateError
from .model import SubspaceModel
from .utils import load_config, save_results

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("mean", "eigenvectors", "eigenvalues", "sampleCount")


def to_record(model: SubspaceModel) -> dict:
    """Map a fitted model to a record of NumPy arrays.

    Raises
    ------
    NotFittedError
        If the model holds no eigenspace.
    """
    record = {
        "mean": model.mean,
        "eigenvectors": model.eigenvectors,
        "eigenvalues": model.eigenvalues,
        "sampleCount": model.sample_count,
    }
    coefficients = model.coefficients
    if coefficients is not None:
        record["coefficients"] = coefficients
    return record


def _array(record: dict, key: str, ndim: int) -> np.ndarray:
    try:
        value = np.asarray(record[key], dtype=float)
    except (ValueError, TypeError) as exc:
        raise CorruptStateError(f"record entry {key!r} is not numeric: {exc}") from exc
    # An empty basis is stored by YAML as a list of empty rows (or nothing)
    if ndim == 2 and value.ndim == 1 and value.size == 0:
        value = value.reshape(0, 0)
    if value.ndim != ndim:
        raise CorruptStateError(f"record entry {key!r} must be {ndim}-D, got shape {value.shape}")
    if not np.all(np.isfinite(value)):
        raise CorruptStateError(f"record entry {key!r} contains non-finite values")
    return value


def validate_record(record) -> tuple[np.ndarray, np.ndarray, np.ndarray, int, np.ndarray | None]:
    """Check the structure of a record and return its arrays.

    Returns
    -------
    mean, eigenvectors, eigenvalues, sample_count, coefficients

    Raises
    ------
    CorruptStateError
        On missing keys, non-numeric entries or inconsistent shapes.
    """
    if not hasattr(record, "keys"):
        raise CorruptStateError(f"record must be a mapping, got {type(record).__name__}")
    missing = [key for key in REQUIRED_KEYS if key not in record]
    if missing:
        raise CorruptStateError(f"record is missing keys: {missing}")

    mean = _array(record, "mean", 1)
    V = _array(record, "eigenvectors", 2)
    lam = _array(record, "eigenvalues", 1)
    d = mean.shape[0]
    if d == 0:
        raise CorruptStateError("record mean is empty")
    if V.shape == (0, 0):
        V = V.reshape(d, 0)

    if V.shape[1] != lam.shape[0]:
        raise CorruptStateError(
            f"eigenvectors have {V.shape[1]} columns but there are {lam.shape[0]} eigenvalues")
    if V.shape[0] != d:
        raise CorruptStateError(
            f"mean has dimension {d} but eigenvectors have {V.shape[0]} rows")
    if V.shape[1] > d:
        raise CorruptStateError(f"rank {V.shape[1]} exceeds dimension {d}")
    if np.any(np.diff(lam) < 0):
        raise CorruptStateError("eigenvalues are not in ascending order")

    n = record["sampleCount"]
    if isinstance(n, bool) or not isinstance(n, numbers.Integral) or n < 1:
        raise CorruptStateError(f"sampleCount must be an integer >= 1, got {n!r}")

    coefficients = None
    if record.get("coefficients") is not None:
        coefficients = _array(record, "coefficients", 2)
        if coefficients.shape == (0, 0):
            coefficients = coefficients.reshape(0, int(n))
        if coefficients.shape != (V.shape[1], int(n)):
            raise CorruptStateError(
                f"coefficients must have shape {(V.shape[1], int(n))}, got {coefficients.shape}")
    return mean, V, lam, int(n), coefficients


def from_record(record, model: SubspaceModel | None = None) -> SubspaceModel:
    """Restore a record into ``model`` (or a new default model).

    The record is fully validated before the model is touched.
    """
    mean, V, lam, n, coefficients = validate_record(record)
    if model is None:
        model = SubspaceModel(keep_coefficients=coefficients is not None)
    if model.config.keep_coefficients and coefficients is None:
        logger.info("record carries no coefficients, model will not track them")
    model._commit(mean, V, lam, n, coefficients)
    return model


def save_model(model: SubspaceModel, path: str) -> None:
    """Write a fitted model to a YAML file."""
    record = {
        key: value.tolist() if isinstance(value, np.ndarray) else int(value)
        for key, value in to_record(model).items()
    }
    save_results(path, record)
    logger.info("saved eigenspace of rank %d to %s", model.rank, path)


def load_model(path: str, model: SubspaceModel | None = None) -> SubspaceModel:
    """Read a model previously written by :func:`save_model`."""
    model = from_record(load_config(path), model=model)
    logger.info("loaded eigenspace of rank %d from %s", model.rank, path)
    return model
