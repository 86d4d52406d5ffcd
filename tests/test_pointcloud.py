import numpy as np
import pytest

from pyspherefit import PointCloud
from pyspherefit.synthetic import generate_sphere_point_cloud


def test_points_are_read_only_copies():
    source = np.array([[0.0, 1.0, 2.0], [3.0, 4.0, 5.0]])
    cloud = PointCloud(source)

    source[0, 0] = 99.0
    assert cloud[0] == (0.0, 1.0, 2.0)
    with pytest.raises(ValueError):
        cloud.to_numpy()[0, 0] = 1.0
    assert len(cloud) == 2


@pytest.mark.parametrize("bad", [np.zeros((4, 2)), np.zeros(3), np.zeros((2, 3, 1))])
def test_rejects_wrong_shape(bad):
    with pytest.raises(ValueError):
        PointCloud(bad)


def test_field_length_must_match():
    with pytest.raises(ValueError):
        PointCloud(np.zeros((3, 3)), {'normals': np.zeros((2, 3))})


def test_select_keeps_order_and_fields():
    points = np.arange(15, dtype=float).reshape(5, 3)
    labels = np.array([10, 11, 12, 13, 14])
    cloud = PointCloud(points, {'label': labels})

    subset = cloud.select([4, 1])

    np.testing.assert_array_equal(subset.to_numpy(), points[[4, 1]])
    np.testing.assert_array_equal(subset.field('label'), [14, 11])
    assert cloud.select([4, 1], copy_data_fields=False).field_names == ()
    assert cloud.has_field('label')
    assert cloud.normals_numpy() is None


def test_with_points_keeps_fields():
    cloud = PointCloud(np.zeros((2, 3)), {'label': [1, 2]})
    moved = cloud.with_points(np.ones((2, 3)))
    np.testing.assert_array_equal(moved.to_numpy(), np.ones((2, 3)))
    np.testing.assert_array_equal(moved.field('label'), [1, 2])


def test_synthetic_cloud_layout():
    cloud = generate_sphere_point_cloud([1.0, 1.0, 1.0], 0.5, n_points=300, noise=0.001, outliers=40, seed=3)

    assert len(cloud) == 340
    flags = cloud.field('is_outlier')
    assert flags.sum() == 40
    assert not flags[:300].any()
    radial = np.linalg.norm(cloud.to_numpy()[:300] - 1.0, axis=1)
    assert np.all(np.abs(radial - 0.5) < 0.01)


def test_open3d_round_trip(tmp_path):
    pytest.importorskip("open3d")
    points = np.array([[0.0, 0.0, 1.0], [0.0, 1.0, 0.0], [1.0, 0.0, 0.0]])
    normals = points.copy()
    cloud = PointCloud(points, {'normals': normals})

    pcd = cloud.to_open3d()
    back = PointCloud.from_open3d(pcd)
    np.testing.assert_allclose(back.to_numpy(), points)
    np.testing.assert_allclose(back.normals_numpy(), normals)

    path = str(tmp_path / "cloud.ply")
    import open3d as o3d
    assert o3d.io.write_point_cloud(path, pcd)
    loaded = PointCloud.from_file(path)
    np.testing.assert_allclose(loaded.to_numpy(), points, atol=1e-6)
