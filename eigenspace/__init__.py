"""Batch and incremental PCA eigenspaces.

This package maintains a low-rank summary (mean, eigenvectors, eigenvalues) of
a batch or stream of high-dimensional vectors.  The main components include:

* :mod:`batch_pca` – one-shot PCA by SVD or Gram-matrix eigendecomposition;
* :mod:`incremental_pca` – the robust subspace update folding one sample into
  an existing eigenspace, with residual-driven basis growth and truncation;
* :mod:`model` – :class:`SubspaceModel`, the stateful owner of the eigenspace,
  with projection and reconstruction;
* :mod:`persistence` – record and YAML serialisation of models;
* :mod:`config` – the :class:`ModelConfig` dataclass;
* :mod:`streaming` – stream drivers and comparison against batch PCA;
* :mod:`metrics` – orthogonality, reconstruction and subspace diagnostics;
* :mod:`utils` – input coercion, seeding, timers and YAML helpers.

The top-level API exports the most used names for convenience.

"""

from .config import ModelConfig  # noqa: F401
from .exceptions import (  # noqa: F401
    CorruptStateError,
    DecompositionError,
    DimensionMismatchError,
    EigenspaceError,
    EmptyInputError,
    InvalidRankError,
    NotFittedError,
)
from .model import SubspaceModel  # noqa: F401
from .persistence import from_record, load_model, save_model, to_record  # noqa: F401

__all__ = [
    "SubspaceModel",
    "ModelConfig",
    "to_record",
    "from_record",
    "save_model",
    "load_model",
    "EigenspaceError",
    "NotFittedError",
    "DimensionMismatchError",
    "InvalidRankError",
    "EmptyInputError",
    "DecompositionError",
    "CorruptStateError",
]
