"""
Synthetic point cloud generator for spheres.
"""
import numpy as np

from .pointcloud import PointCloud
from .utils import fibonacci_sphere


def generate_sphere_point_cloud(center, radius, n_points=2000, noise=0.002, outliers=0,
                                outlier_extent=None, rng=None, seed=None, as_open3d=False):
    """
    Generate a synthetic sphere point cloud.
    Args:
        center: (3,) center of the sphere
        radius: float
        n_points: int, number of points on the surface
        noise: float, stddev of Gaussian noise along the radial direction
        outliers: int, number of uniformly scattered points appended at the end
        outlier_extent: half-width of the outlier cube around the center
            (defaults to 3 * radius)
        rng: numpy Generator; one is created from ``seed`` when omitted
        seed: seed for the generator created when ``rng`` is None
        as_open3d: return an open3d.geometry.PointCloud instead
    Returns:
        PointCloud with an 'is_outlier' boolean field
    """
    if rng is None:
        rng = np.random.default_rng(seed)
    center = np.asarray(center, dtype=np.float64)

    directions = fibonacci_sphere(n_points)
    # Random rotation so consecutive runs do not share the same lattice
    q, _ = np.linalg.qr(rng.normal(size=(3, 3)))
    directions = directions @ q.T
    radii = radius + rng.normal(scale=noise, size=n_points) if noise > 0 else np.full(n_points, float(radius))
    surface = center + directions * radii[:, None]

    if outlier_extent is None:
        outlier_extent = 3.0 * radius
    scattered = center + rng.uniform(-outlier_extent, outlier_extent, size=(outliers, 3))

    pts = np.vstack([surface, scattered])
    is_outlier = np.concatenate([np.zeros(n_points, dtype=bool), np.ones(outliers, dtype=bool)])
    cloud = PointCloud(pts, {'is_outlier': is_outlier})
    if as_open3d:
        return cloud.to_open3d()
    return cloud
