"""Model configuration."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields

from .utils import load_config


@dataclass
class ModelConfig:
    """Tunable parameters of a :class:`~eigenspace.model.SubspaceModel`.

    Attributes
    ----------
    max_rank : int or None
        Maximum number of directions kept after a fit or update.  ``None``
        lets the basis grow up to the data dimension.
    tol : float
        Relative tolerance separating genuine residual energy from rounding
        noise, both for basis growth and for batch rank detection.
    ddof : int
        Delta degrees of freedom; covariance eigenvalues are normalised by
        ``N - ddof``.  Must be 0 or 1.
    keep_coefficients : bool
        Whether the model keeps the coordinates of every folded observation.
    reorth_tol : float
        Orthogonality drift ``||I - V^T V||_F`` above which the basis is
        re-orthonormalised after an update.
    """

    max_rank: int | None = None
    tol: float = 1e-10
    ddof: int = 1
    keep_coefficients: bool = False
    reorth_tol: float = 1e-8

    def __post_init__(self) -> None:
        if self.max_rank is not None:
            if int(self.max_rank) < 1:
                raise ValueError(f"max_rank must be a positive integer or None, got {self.max_rank}")
            self.max_rank = int(self.max_rank)
        self.tol = float(self.tol)
        if self.tol < 0:
            raise ValueError(f"tol must be non-negative, got {self.tol}")
        if self.ddof not in (0, 1):
            raise ValueError(f"ddof must be 0 or 1, got {self.ddof}")
        self.ddof = int(self.ddof)
        self.keep_coefficients = bool(self.keep_coefficients)
        self.reorth_tol = float(self.reorth_tol)
        if self.reorth_tol <= 0:
            raise ValueError(f"reorth_tol must be positive, got {self.reorth_tol}")

    @classmethod
    def from_dict(cls, cfg: dict) -> "ModelConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(cfg) - known
        if unknown:
            raise ValueError(f"unknown configuration keys: {sorted(unknown)}")
        return cls(**cfg)

    @classmethod
    def from_yaml(cls, path: str) -> "ModelConfig":
        """Read a configuration from a YAML mapping file."""
        return cls.from_dict(load_config(path))

    def to_dict(self) -> dict:
        return asdict(self)
