import numpy as np
import pytest
from numpy.linalg import LinAlgError

from conftest import assert_ascending, assert_orthonormal, assert_same_directions
from eigenspace import incremental_pca as incremental_module
from eigenspace.batch_pca import batch_pca
from eigenspace.exceptions import DecompositionError
from eigenspace.incremental_pca import incremental_update
from eigenspace.metrics import subspace_distance


@pytest.mark.parametrize("ddof", [0, 1])
def test_single_step_matches_batch(full_rank_data, ddof):
    X = full_rank_data
    mean, V, lam, _ = batch_pca(X[:-1], ddof=ddof)
    mean_new, V_new, lam_new, _, info = incremental_update(
        mean, V, lam, X.shape[0] - 1, X[-1], ddof=ddof)

    mean_ref, V_ref, lam_ref, _ = batch_pca(X, ddof=ddof)
    np.testing.assert_allclose(mean_new, mean_ref, rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(lam_new, lam_ref, rtol=1e-10)
    assert_same_directions(V_new, V_ref)
    assert info["rank"] == 5
    assert not info["grown"]


def test_population_scaling_constants():
    # One sample already folded (K = 0), then a second one along e1
    mean = np.zeros(3)
    V = np.zeros((3, 0))
    lam = np.zeros(0)
    x = np.array([2.0, 0.0, 0.0])

    mean_new, V_new, lam_new, _, info = incremental_update(mean, V, lam, 1, x, ddof=0)

    # Two points 0 and 2 on a line: population variance 1, mean 1
    np.testing.assert_allclose(mean_new, [1.0, 0.0, 0.0])
    np.testing.assert_allclose(lam_new, [1.0])
    np.testing.assert_allclose(np.abs(V_new[:, 0]), [1.0, 0.0, 0.0])
    assert info["grown"]
    assert info["residual_norm"] == pytest.approx(2.0)


def test_inputs_are_not_modified(full_rank_data):
    mean, V, lam, coeffs = batch_pca(full_rank_data[:10])
    copies = [a.copy() for a in (mean, V, lam, coeffs)]

    incremental_update(mean, V, lam, 10, full_rank_data[10], coefficients=coeffs)

    for original, copy in zip((mean, V, lam, coeffs), copies):
        np.testing.assert_array_equal(original, copy)


def test_in_span_sample_does_not_grow(low_rank_data):
    mean, V, lam, _ = batch_pca(low_rank_data[:20])
    _, V_new, lam_new, _, info = incremental_update(mean, V, lam, 20, low_rank_data[20])

    assert not info["grown"]
    assert V_new.shape == V.shape
    assert info["residual_norm"] < 1e-8
    assert subspace_distance(V_new, V) < 1e-8


def test_orthogonal_sample_grows_basis(low_rank_data):
    mean, V, lam, _ = batch_pca(low_rank_data[:20])
    direction = np.linalg.svd(V.T)[2][-1]   # unit vector orthogonal to span(V)
    x = mean + 3.0 * direction

    _, V_new, lam_new, _, info = incremental_update(mean, V, lam, 20, x)

    assert info["grown"]
    assert info["residual_norm"] == pytest.approx(3.0)
    assert V_new.shape == (10, 4)
    assert_orthonormal(V_new)
    assert_ascending(lam_new)


def test_full_basis_never_grows(full_rank_data):
    mean, V, lam, _ = batch_pca(full_rank_data[:10])
    assert V.shape[1] == 5
    _, V_new, _, _, info = incremental_update(mean, V, lam, 10, full_rank_data[10] * 10)
    assert not info["grown"]
    assert V_new.shape == (5, 5)


def test_truncation_drops_lowest_directions(full_rank_data):
    mean, V, lam, _ = batch_pca(full_rank_data[:10])
    x = full_rank_data[10]

    _, V_all, lam_all, _, _ = incremental_update(mean, V, lam, 10, x)
    _, V_cut, lam_cut, _, info = incremental_update(mean, V, lam, 10, x, max_rank=2)

    assert info["truncated"] == 3
    assert info["rank"] == 2
    np.testing.assert_allclose(lam_cut, lam_all[-2:])
    np.testing.assert_allclose(V_cut, V_all[:, -2:])
    assert_orthonormal(V_cut)


def test_coefficients_follow_the_basis(full_rank_data):
    X = full_rank_data
    mean, V, lam, coeffs = batch_pca(X[:12])
    for i in range(12, 20):
        mean, V, lam, coeffs, _ = incremental_update(mean, V, lam, i, X[i], coefficients=coeffs)

    assert coeffs.shape == (5, 20)
    np.testing.assert_allclose(coeffs, V.T @ (X[:20] - mean).T, atol=1e-9)


def test_zero_rank_sample_at_mean():
    mean = np.array([1.0, 2.0])
    mean_new, V_new, lam_new, coeffs, info = incremental_update(
        mean, np.zeros((2, 0)), np.zeros(0), 1, mean.copy(), coefficients=np.zeros((0, 1)))

    np.testing.assert_array_equal(mean_new, mean)
    assert V_new.shape == (2, 0)
    assert lam_new.shape == (0,)
    assert coeffs.shape == (0, 2)
    assert info["rank"] == 0


def test_reorthonormalisation_restores_basis(full_rank_data):
    mean, V, lam, _ = batch_pca(full_rank_data[:10])
    V_drifted = V + 1e-6 * np.random.default_rng(0).standard_normal(V.shape)

    _, V_new, _, _, info = incremental_update(mean, V_drifted, lam, 10, full_rank_data[10])

    assert info["orth_error"] < 1e-12
    assert_orthonormal(V_new)


def test_eigensolver_failure_is_wrapped(full_rank_data, monkeypatch):
    mean, V, lam, _ = batch_pca(full_rank_data[:10])

    def failing_eigh(*args, **kwargs):
        raise LinAlgError("Eigenvalues did not converge")

    monkeypatch.setattr(incremental_module, "eigh", failing_eigh)
    with pytest.raises(DecompositionError):
        incremental_update(mean, V, lam, 10, full_rank_data[10])


@pytest.mark.parametrize("scale", [1e-11, 1.0, 1e11])
def test_growth_decision_ignores_units(low_rank_data, scale):
    X = low_rank_data * scale
    mean, V, lam, _ = batch_pca(X[:20])
    direction = np.linalg.svd(V.T)[2][-1]

    *_, in_span = incremental_update(mean, V, lam, 20, X[20])
    *_, off_span = incremental_update(mean, V, lam, 20, mean + 1e-3 * scale * direction)

    assert not in_span["grown"]
    assert off_span["grown"]
    assert off_span["rank"] == 4
