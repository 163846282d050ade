from __future__ import annotations

import math

import numpy as np
import pytest

from rfmap.core.errors import DimensionMismatchError, InvalidParameterError
from rfmap.core.random_feature import RandomFeature, RandomFeatureConfig


class FixedSampler:
    """Returns preset values in order, reshaped to the requested shape."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def __call__(self, shape):
        self.calls += 1
        n = int(np.prod(shape))
        out, self.values = self.values[:n], self.values[n:]
        return np.asarray(out, dtype=np.float64).reshape(shape)


def test_concrete_basis_and_transform():
    normal = FixedSampler([0.1, -0.2, 0.3, 0.05, -0.15, 0.25])
    uniform = FixedSampler([0.0, 0.25, 0.5])
    rf = RandomFeature(2, 3, 0.5, normal=normal, uniform=uniform)

    # scale = sqrt(2 * 0.5) = 1
    np.testing.assert_allclose(rf.W, [[0.1, -0.2], [0.3, 0.05], [-0.15, 0.25]])
    np.testing.assert_allclose(rf.b, [0.0, math.pi / 2, math.pi])
    assert normal.calls == 1 and uniform.calls == 1

    z = rf.transform([1.0, 1.0])
    raw = np.array([0.1 - 0.2 + 0.0, 0.3 + 0.05 + math.pi / 2, -0.15 + 0.25 + math.pi])
    np.testing.assert_allclose(z, np.cos(raw) / math.sqrt(3.0))
    assert z[0] == pytest.approx(0.5736, abs=2e-3)


def test_projection_scale_follows_gamma():
    normal = FixedSampler([1.0, -2.0])
    uniform = FixedSampler([0.5])
    rf = RandomFeature(2, 1, 2.0, normal=normal, uniform=uniform)
    np.testing.assert_allclose(rf.W, [[2.0, -4.0]])
    np.testing.assert_allclose(rf.b, [math.pi])


@pytest.mark.parametrize("n,m", [(1, 1), (3, 5), (7, 2), (0, 4), (4, 0), (0, 0)])
def test_shape_invariant_after_construction_and_setters(n, m):
    rf = RandomFeature(n, m, 1.0, seed=0)
    assert rf.W.shape == (m, n)
    assert rf.b.shape == (m,)

    rf.set_domain_size(n + 2)
    assert rf.W.shape == (m, n + 2)
    rf.set_co_domain_size(m + 3)
    assert rf.W.shape == (m + 3, n + 2)
    assert rf.b.shape == (m + 3,)
    rf.set_gamma(0.25)
    assert rf.W.shape == (rf.co_domain_size, rf.domain_size)
    assert rf.b.shape == (rf.co_domain_size,)


def test_phases_lie_in_zero_two_pi():
    rf = RandomFeature(3, 500, 1.0, seed=1)
    assert float(rf.b.min()) >= 0.0
    assert float(rf.b.max()) < 2.0 * math.pi


def test_transform_is_deterministic_for_fixed_basis():
    rf = RandomFeature(4, 16, 0.3, seed=2)
    x = np.random.default_rng(0).standard_normal(4)
    z1 = rf.transform(x)
    z2 = rf.transform(x)
    assert np.array_equal(z1, z2)
    assert z1.shape == (16,)
    assert z1.dtype == np.float64


def test_same_seed_same_basis():
    a = RandomFeature(3, 8, 1.0, seed=5)
    b = RandomFeature(3, 8, 1.0, seed=5)
    assert np.array_equal(a.W, b.W)
    assert np.array_equal(a.b, b.b)


@pytest.mark.parametrize("bad_len", [0, 2, 4, 7])
def test_transform_rejects_wrong_length(bad_len):
    rf = RandomFeature(3, 5, 1.0, seed=0)
    with pytest.raises(DimensionMismatchError):
        rf.transform(np.ones(bad_len))
    assert rf.sample_count == 0


def test_dimension_mismatch_is_a_value_error():
    rf = RandomFeature(2, 2, 1.0, seed=0)
    with pytest.raises(ValueError):
        rf.transform([1.0, 2.0, 3.0])


def test_empty_domain_produces_phase_only_features():
    rf = RandomFeature(0, 4, 1.0, seed=0)
    z = rf.transform(np.zeros(0))
    np.testing.assert_allclose(z, np.cos(rf.b) / 2.0)


def test_empty_co_domain_produces_empty_output():
    rf = RandomFeature(3, 0, 1.0, seed=0)
    z = rf.transform(np.ones(3))
    assert z.shape == (0,)
    assert rf.transform_batch(np.ones((5, 3))).shape == (5, 0)
    with pytest.raises(DimensionMismatchError):
        rf.transform(np.ones(2))


@pytest.mark.parametrize("setter,value", [
    ("set_gamma", 1.0),
    ("set_gamma", 0.7),
    ("set_domain_size", 3),
    ("set_co_domain_size", 6),
])
def test_setters_regenerate_basis(setter, value):
    rf = RandomFeature(3, 6, 1.0, seed=3)
    W0, b0 = rf.W.copy(), rf.b.copy()
    getattr(rf, setter)(value)
    changed_w = rf.W.shape != W0.shape or not np.array_equal(rf.W, W0)
    changed_b = not np.array_equal(rf.b, b0)
    assert changed_w or changed_b


def test_each_setter_call_resets_once():
    normal = FixedSampler(np.linspace(-1.0, 1.0, 1000))
    uniform = FixedSampler(np.linspace(0.0, 0.9, 1000))
    rf = RandomFeature(2, 2, 1.0, normal=normal, uniform=uniform)
    assert normal.calls == 1

    rf.set_domain_size(3)
    rf.set_co_domain_size(3)
    rf.set_gamma(0.5)
    assert normal.calls == 4
    assert uniform.calls == 4


@pytest.mark.parametrize("gamma", [-0.1, float("nan"), float("inf"), 1e308, "1.0", True, None])
def test_invalid_gamma_leaves_state_untouched(gamma):
    rf = RandomFeature(2, 3, 0.5, seed=0)
    W0, b0 = rf.W.copy(), rf.b.copy()
    with pytest.raises(InvalidParameterError):
        rf.set_gamma(gamma)
    assert rf.gamma == 0.5
    assert np.array_equal(rf.W, W0)
    assert np.array_equal(rf.b, b0)


@pytest.mark.parametrize("size", [-1, 2.5, "3", True])
def test_invalid_sizes_leave_state_untouched(size):
    rf = RandomFeature(2, 3, 0.5, seed=0)
    W0 = rf.W.copy()
    with pytest.raises(InvalidParameterError):
        rf.set_domain_size(size)
    with pytest.raises(InvalidParameterError):
        rf.set_co_domain_size(size)
    assert (rf.domain_size, rf.co_domain_size) == (2, 3)
    assert np.array_equal(rf.W, W0)


def test_constructor_rejects_invalid_parameters():
    with pytest.raises(InvalidParameterError):
        RandomFeature(-1, 2, 1.0)
    with pytest.raises(InvalidParameterError):
        RandomFeature(2, -1, 1.0)
    with pytest.raises(InvalidParameterError):
        RandomFeature(2, 2, -1.0)


def test_numpy_integer_sizes_are_accepted():
    rf = RandomFeature(np.int64(3), np.int32(4), np.float32(0.5), seed=0)
    assert rf.W.shape == (4, 3)
    assert isinstance(rf.domain_size, int)


def test_zero_gamma_gives_constant_features():
    rf = RandomFeature(3, 10, 0.0, seed=0)
    assert np.all(rf.W == 0.0)
    x = np.random.default_rng(1).standard_normal(3)
    np.testing.assert_allclose(rf.transform(x), rf.transform(np.zeros(3)))


def test_batch_matches_single_rows():
    rf = RandomFeature(5, 32, 0.4, seed=7)
    X = np.random.default_rng(3).standard_normal((6, 5))
    Z = rf.transform_batch(X)
    assert Z.shape == (6, 32)
    for i in range(X.shape[0]):
        np.testing.assert_allclose(Z[i], rf.transform(X[i]), rtol=1e-12, atol=1e-12)


def test_batch_rejects_bad_shapes():
    rf = RandomFeature(3, 4, 1.0, seed=0)
    with pytest.raises(DimensionMismatchError):
        rf.transform_batch(np.ones(3))
    with pytest.raises(DimensionMismatchError):
        rf.transform_batch(np.ones((2, 4)))


def test_sample_count_tracks_transforms_and_resets():
    rf = RandomFeature(2, 3, 1.0, seed=0)
    rf.transform([0.0, 1.0])
    rf.transform_batch(np.zeros((4, 2)))
    assert rf.sample_count == 5
    rf.set_gamma(2.0)
    assert rf.sample_count == 0


def test_config_builds_seeded_transformer():
    cfg = RandomFeatureConfig(domain_size=3, co_domain_size=7, gamma=0.25, seed=11)
    a = cfg.build()
    b = cfg.build()
    assert (a.domain_size, a.co_domain_size, a.gamma) == (3, 7, 0.25)
    assert np.array_equal(a.W, b.W)
    assert np.array_equal(a.b, b.b)


def test_transform_rejects_matrix_input_of_matching_size():
    rf = RandomFeature(4, 3, 1.0, seed=0)
    with pytest.raises(DimensionMismatchError):
        rf.transform(np.ones((2, 2)))
    with pytest.raises(DimensionMismatchError):
        rf.transform(np.ones((4, 1)))
    assert rf.sample_count == 0


def test_transform_accepts_single_row_matrix():
    rf = RandomFeature(4, 3, 1.0, seed=0)
    x = np.linspace(-1.0, 1.0, 4)
    assert np.array_equal(rf.transform(x[None, :]), rf.transform(x))
