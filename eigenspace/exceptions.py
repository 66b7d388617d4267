"""Exception hierarchy for the eigenspace package.

Every failure raised by the package derives from :class:`EigenspaceError`.
Input-shaped problems additionally derive from :class:`ValueError` and
state/numerical problems from :class:`RuntimeError`, so that callers can
catch either the package base class or the usual builtin.
"""

from __future__ import annotations


class EigenspaceError(Exception):
    """Base class for all errors raised by :mod:`eigenspace`."""


class NotFittedError(EigenspaceError, RuntimeError):
    """A read or transform was attempted before any fit, update or load."""


class DimensionMismatchError(EigenspaceError, ValueError):
    """An input vector or matrix does not have the established dimension."""


class InvalidRankError(EigenspaceError, ValueError):
    """A requested number of components lies outside ``[1, K]``."""


class EmptyInputError(EigenspaceError, ValueError):
    """A batch fit was requested on a matrix without rows or columns."""


class DecompositionError(EigenspaceError, RuntimeError):
    """The NumPy decomposition backend failed to converge."""


class CorruptStateError(EigenspaceError, ValueError):
    """A persisted record failed structural validation on load."""
