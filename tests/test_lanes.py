"""Counting strategies must agree exactly with each other and with selection."""

import numpy as np
import pytest

from pyspherefit import SphereModel
from pyspherefit import lanes


def _shell_points(rng, n, center, radius, spread):
    directions = rng.normal(size=(n, 3))
    directions /= np.linalg.norm(directions, axis=1, keepdims=True)
    radii = radius + rng.uniform(-spread, spread, size=n)
    return np.asarray(center) + directions * radii[:, None]


@pytest.mark.parametrize("n_points", list(range(0, 10)) + [257, 1000, 1003])
def test_strategies_agree_for_every_tail_length(n_points):
    rng = np.random.default_rng(n_points)
    center = np.array([0.3, -1.2, 4.0])
    xyz = _shell_points(rng, n_points, center, 2.5, 0.2)
    coeffs = np.array([0.3, -1.2, 4.0, 2.5])

    for threshold in [0.0, 0.01, 0.05, 0.1, 0.2, 1.0]:
        scalar = lanes.count_standard(xyz, coeffs, threshold)
        assert lanes.count_lanes4(xyz, coeffs, threshold) == scalar
        assert lanes.count_lanes8(xyz, coeffs, threshold) == scalar


def test_strategies_agree_on_boundary_points():
    # residuals land exactly on the threshold
    xyz = np.array([[2.0, 0.0, 0.0], [0.0, 0.5, 0.0], [0.0, 0.0, 1.5]] * 7)
    coeffs = [0.0, 0.0, 0.0, 1.0]
    for threshold in [0.0, 0.5, 1.0]:
        expected = int(np.count_nonzero(np.abs(np.linalg.norm(xyz, axis=1) - 1.0) <= threshold))
        assert lanes.count_standard(xyz, coeffs, threshold) == expected
        assert lanes.count_lanes4(xyz, coeffs, threshold) == expected
        assert lanes.count_lanes8(xyz, coeffs, threshold) == expected


def test_strategies_skip_non_finite_points():
    xyz = np.array(
        [
            [1.0, 0.0, 0.0],
            [np.nan, 0.0, 0.0],
            [np.inf, 0.0, 0.0],
            [0.0, 1.0, 0.0],
            [0.0, 0.0, 1.0],
            [0.0, -np.inf, 0.0],
            [-1.0, 0.0, 0.0],
            [0.0, -1.0, 0.0],
            [0.0, 0.0, np.nan],
        ]
    )
    coeffs = [0.0, 0.0, 0.0, 1.0]
    assert lanes.count_standard(xyz, coeffs, 0.01) == 5
    assert lanes.count_lanes4(xyz, coeffs, 0.01) == 5
    assert lanes.count_lanes8(xyz, coeffs, 0.01) == 5


def test_start_offset_is_honoured():
    rng = np.random.default_rng(21)
    xyz = _shell_points(rng, 50, [0.0, 0.0, 0.0], 1.0, 0.1)
    coeffs = [0.0, 0.0, 0.0, 1.0]
    for start in [0, 1, 3, 8, 13, 49, 50]:
        expected = lanes.count_standard(xyz, coeffs, 0.05, start=start)
        assert expected == lanes.count_standard(xyz[start:], coeffs, 0.05)
        assert lanes.count_lanes(xyz, coeffs, 0.05, 4, start=start) == expected
        assert lanes.count_lanes(xyz, coeffs, 0.05, 8, start=start) == expected


def test_model_paths_agree_with_selection():
    rng = np.random.default_rng(99)
    xyz = np.vstack(
        [
            _shell_points(rng, 1001, [5.0, 5.0, 5.0], 3.0, 0.05),
            rng.uniform(0.0, 10.0, size=(300, 3)),
        ]
    )
    model = SphereModel(xyz)
    coeffs = np.array([5.0, 5.0, 5.0, 3.0])

    for threshold in [0.0, 0.005, 0.02, 0.049, 0.5]:
        selected = len(model.select_within_distance(coeffs, threshold))
        assert model.count_within_distance(coeffs, threshold) == selected
        assert model.count_within_distance_standard(coeffs, threshold) == selected
        assert model.count_within_distance_lanes(coeffs, threshold, 4) == selected
        assert model.count_within_distance_lanes(coeffs, threshold, 8) == selected


@pytest.mark.parametrize(
    "features, width",
    [
        ({'SSE': True, 'SSE2': True, 'SSE41': True, 'AVX': True, 'AVX2': True}, 8),
        ({'SSE': True, 'SSE2': True, 'SSE41': True, 'AVX': True, 'AVX2': False}, 4),
        ({'SSE': True, 'SSE2': True, 'SSE41': False}, 1),
        ({'ASIMD': True, 'NEON': True}, 4),
        ({}, 1),
    ],
)
def test_width_for_features(features, width):
    assert lanes.width_for_features(features) == width


def test_detected_width_is_stable():
    width = lanes.detect_vector_width()
    assert width in (1, 4, 8)
    assert lanes.detect_vector_width() == width
    assert lanes.DETECTED_WIDTH == width
    assert lanes.select_strategy() is lanes.STRATEGIES[width]


@pytest.mark.parametrize("width", [0, 1, 3, 16])
def test_lane_counter_rejects_unsupported_width(width):
    xyz = np.ones((10, 3))
    coeffs = [0.0, 0.0, 0.0, 1.0]
    with pytest.raises(ValueError):
        lanes.count_lanes(xyz, coeffs, 0.1, width)
    with pytest.raises(ValueError):
        SphereModel(xyz).count_within_distance_lanes(coeffs, 0.1, width)


def test_select_strategy_by_width():
    assert lanes.select_strategy(1) is lanes.count_standard
    assert lanes.select_strategy(4) is lanes.count_lanes4
    assert lanes.select_strategy(8) is lanes.count_lanes8
    with pytest.raises(ValueError):
        lanes.select_strategy(16)
