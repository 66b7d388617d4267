import numpy as np
import pytest

from eigenspace.utils import make_low_rank_data


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def full_rank_data(rng):
    """Tall matrix with well separated column scales (N > D)."""
    scales = np.array([5.0, 3.0, 2.0, 1.0, 0.5])
    return rng.standard_normal(size=(30, 5)) * scales + np.array([1.0, -2.0, 0.5, 3.0, 0.0])


@pytest.fixture
def wide_data(rng):
    """Fewer samples than features (N < D)."""
    return rng.standard_normal(size=(8, 12)) * np.linspace(3.0, 0.5, 12)


@pytest.fixture
def low_rank_data():
    """Noise-free points on a 3-dimensional affine subspace of R^10."""
    return make_low_rank_data(40, 10, rank=3, offset=2.0, seed=7)


def assert_orthonormal(V, atol=1e-10):
    np.testing.assert_allclose(V.T @ V, np.eye(V.shape[1]), atol=atol)


def assert_ascending(lam):
    assert np.all(np.diff(lam) >= 0)


def assert_same_directions(V1, V2, atol=1e-6):
    """Columns agree one by one up to sign."""
    assert V1.shape == V2.shape
    np.testing.assert_allclose(np.abs(np.sum(V1 * V2, axis=0)), np.ones(V1.shape[1]), atol=atol)
