import numpy as np
import pytest
import yaml

from eigenspace.exceptions import CorruptStateError, NotFittedError
from eigenspace.model import SubspaceModel
from eigenspace.persistence import (
    REQUIRED_KEYS,
    from_record,
    load_model,
    save_model,
    to_record,
    validate_record,
)


@pytest.fixture
def model(full_rank_data):
    return SubspaceModel().fit(full_rank_data)


def assert_models_equal(a, b):
    np.testing.assert_array_equal(a.mean, b.mean)
    np.testing.assert_allclose(a.eigenvectors, b.eigenvectors, atol=1e-15)
    np.testing.assert_array_equal(a.eigenvalues, b.eigenvalues)
    assert a.sample_count == b.sample_count


def test_record_keys(model):
    record = model.save()
    assert list(record) == list(REQUIRED_KEYS)
    assert record["sampleCount"] == 30


def test_save_load_round_trip(model):
    restored = SubspaceModel().load(model.save())
    assert_models_equal(restored, model)


def test_record_is_a_copy(model):
    record = to_record(model)
    record["mean"][:] = 0.0
    assert np.any(model.mean != 0.0)


def test_from_record_builds_new_model(model):
    restored = from_record(to_record(model))
    assert isinstance(restored, SubspaceModel)
    assert_models_equal(restored, model)


def test_load_replaces_state(model, wide_data):
    other = SubspaceModel().fit(wide_data)
    other.load(model.save())
    assert_models_equal(other, model)


def test_key_order_is_irrelevant(model):
    record = to_record(model)
    shuffled = {key: record[key] for key in reversed(list(record))}
    assert_models_equal(from_record(shuffled), model)


def test_yaml_round_trip(model, tmp_path):
    path = tmp_path / "model.yaml"
    save_model(model, str(path))

    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    assert set(raw) == set(REQUIRED_KEYS)

    assert_models_equal(load_model(str(path)), model)


def test_yaml_round_trip_rank_zero(tmp_path):
    model = SubspaceModel()
    model.update([1.0, 2.0, 3.0])
    path = tmp_path / "single.yaml"
    save_model(model, str(path))

    restored = load_model(str(path))
    assert restored.rank == 0
    assert restored.n_features == 3
    np.testing.assert_array_equal(restored.mean, [1.0, 2.0, 3.0])


def test_coefficients_round_trip(full_rank_data, tmp_path):
    model = SubspaceModel(keep_coefficients=True).fit(full_rank_data)
    path = tmp_path / "coeffs.yaml"
    save_model(model, str(path))

    restored = load_model(str(path))
    assert restored.config.keep_coefficients
    np.testing.assert_allclose(restored.coefficients, model.coefficients)

    restored.update(full_rank_data[0])
    assert restored.coefficients.shape == (5, 31)


def test_save_requires_fit():
    with pytest.raises(NotFittedError):
        to_record(SubspaceModel())


@pytest.mark.parametrize("key", REQUIRED_KEYS)
def test_missing_key(model, key):
    record = to_record(model)
    del record[key]
    with pytest.raises(CorruptStateError):
        validate_record(record)


def test_column_count_must_match_eigenvalues(model):
    record = to_record(model)
    record["eigenvalues"] = record["eigenvalues"][1:]
    with pytest.raises(CorruptStateError):
        from_record(record)


def test_mean_dimension_must_match_rows(model):
    record = to_record(model)
    record["mean"] = np.append(record["mean"], 0.0)
    with pytest.raises(CorruptStateError):
        from_record(record)


@pytest.mark.parametrize("count", [0, -3, 2.5, "30", True])
def test_sample_count_validated(model, count):
    record = to_record(model)
    record["sampleCount"] = count
    with pytest.raises(CorruptStateError):
        from_record(record)


def test_non_numeric_entry(model):
    record = to_record(model)
    record["eigenvalues"] = ["a", "b", "c", "d", "e"]
    with pytest.raises(CorruptStateError):
        from_record(record)


def test_descending_eigenvalues_rejected(model):
    record = to_record(model)
    record["eigenvalues"] = record["eigenvalues"][::-1]
    with pytest.raises(CorruptStateError):
        from_record(record)


def test_not_a_mapping():
    with pytest.raises(CorruptStateError):
        from_record([1, 2, 3])


def test_failed_load_leaves_state(model, wide_data):
    other = SubspaceModel().fit(wide_data)
    mean_before = other.mean
    record = to_record(model)
    del record["eigenvectors"]
    with pytest.raises(CorruptStateError):
        other.load(record)
    np.testing.assert_array_equal(other.mean, mean_before)
    assert other.sample_count == 8
