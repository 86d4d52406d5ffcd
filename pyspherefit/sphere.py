"""
SphereModel: 3D sphere primitive for sample-consensus fitting.

Model coefficients are a float64 array [center.x, center.y, center.z, radius].
"""
import math

import numpy as np

from .lanes import count_lanes, count_standard, select_strategy
from .logger import get_logger
from .model import PrimitiveModel, SacModel
from .utils import (
    project_points_onto_sphere,
    radial_residuals,
    refine_sphere_least_squares,
    sample_degeneracy,
    sphere_from_four_points,
)


class SphereModel(PrimitiveModel):
    sample_size = 4
    model_size = 4
    model_name = "SphereModel"

    def __init__(self, cloud, indices=None, config=None):
        """
        Args:
            cloud: PointCloud (or (N, 3) array-like) to fit against
            indices: Subset of the cloud to consider; defaults to every point
            config: SphereModelConfig with radius limits and solver settings
        """
        super().__init__(cloud, indices, config)
        self._count = select_strategy()

    def model_type(self):
        return SacModel.SPHERE

    def _sample_points(self, samples):
        samples = np.asarray(samples, dtype=np.intp).reshape(-1)
        return self._cloud.to_numpy()[samples]

    def is_sample_good(self, samples):
        """
        Check whether 4 indices describe a usable sphere sample.

        The edges p1-p0, p2-p0, p3-p0 must span a volume: coincident,
        collinear and coplanar points all give a normalised determinant at or
        below ``config.sample_epsilon`` and are rejected.

        Args:
            samples: Sequence of 4 point indices
        Returns:
            bool: True if coefficients can be computed reliably
        """
        logger = get_logger()
        if len(samples) != self.sample_size:
            logger.error(
                f"[is_sample_good] Invalid number of samples given ({len(samples)}), expected {self.sample_size}"
            )
            return False
        if len(set(int(s) for s in samples)) != self.sample_size:
            logger.debug("[is_sample_good] Sample contains repeated indices")
            return False
        if any(not 0 <= int(s) < len(self._cloud) for s in samples):
            logger.error("[is_sample_good] Sample index outside the point cloud")
            return False

        pts = self._sample_points(samples)
        if not np.all(np.isfinite(pts)):
            logger.debug("[is_sample_good] Sample contains non-finite coordinates")
            return False
        degeneracy = sample_degeneracy(pts)
        if degeneracy <= self._config.sample_epsilon:
            logger.debug(
                f"[is_sample_good] Sample points too similar, collinear or coplanar "
                f"(normalised determinant {degeneracy:.3g})"
            )
            return False
        return True

    def compute_model_coefficients(self, samples):
        """
        Compute the sphere passing through 4 sample points.

        Args:
            samples: Sequence of 4 point indices
        Returns:
            numpy.ndarray [cx, cy, cz, r], or None when the sample is degenerate
        """
        if not self.is_sample_good(samples):
            return None
        logger = get_logger()
        try:
            coeffs = sphere_from_four_points(self._sample_points(samples))
        except np.linalg.LinAlgError:
            logger.debug("[compute_model_coefficients] Singular system for sample")
            return None
        if not np.all(np.isfinite(coeffs)):
            logger.debug("[compute_model_coefficients] Non-finite solution for sample")
            return None
        logger.debug(
            f"[compute_model_coefficients] Model is ({coeffs[0]:g}, {coeffs[1]:g}, {coeffs[2]:g}, {coeffs[3]:g})"
        )
        return coeffs

    def is_model_valid(self, model_coefficients):
        """
        Reject coefficients of the wrong size, with non-finite values, with a
        negative radius, or with a radius outside the configured limits.
        """
        if not super().is_model_valid(model_coefficients):
            return False
        radius = float(np.asarray(model_coefficients, dtype=np.float64).reshape(-1)[3])
        radius_min, radius_max = self._config.radius_limits
        if radius < 0.0 or radius < radius_min or radius > radius_max:
            get_logger().debug(
                f"[is_model_valid] Radius {radius:g} rejected (limits [{radius_min:g}, {radius_max:g}])"
            )
            return False
        return True

    def _check_coefficients(self, model_coefficients, caller):
        if self.is_model_valid(model_coefficients):
            return True
        get_logger().error(f"[{caller}] Given model is invalid!")
        return False

    @staticmethod
    def _check_threshold(threshold):
        threshold = float(threshold)
        if threshold < 0.0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")
        return threshold

    def get_distances_to_model(self, model_coefficients):
        """
        Radial residual |distance(p, center) - r| for every considered point.

        Returns:
            (len(indices),) array in index order; empty for invalid coefficients
        """
        if not self._check_coefficients(model_coefficients, "get_distances_to_model"):
            return np.empty(0)
        return radial_residuals(self._xyz, model_coefficients)

    def select_within_distance(self, model_coefficients, threshold):
        """
        Indices of the points whose residual is <= threshold.

        The squared residuals of the selected points are kept in
        ``error_sqr_dists``.

        Returns:
            numpy.ndarray of cloud indices, ascending in index order
        """
        threshold = self._check_threshold(threshold)
        if not self._check_coefficients(model_coefficients, "select_within_distance"):
            self.error_sqr_dists = np.empty(0)
            return np.empty(0, dtype=np.intp)
        residuals = radial_residuals(self._xyz, model_coefficients)
        mask = residuals <= threshold
        self.error_sqr_dists = residuals[mask] ** 2
        return self._indices[mask]

    def count_within_distance(self, model_coefficients, threshold):
        """Number of considered points whose residual is <= threshold."""
        threshold = self._check_threshold(threshold)
        if not self._check_coefficients(model_coefficients, "count_within_distance"):
            return 0
        return self._count(self._xyz, model_coefficients, threshold)

    def count_within_distance_standard(self, model_coefficients, threshold, start=0):
        """Scalar counting path; not meant for normal use."""
        return count_standard(self._xyz, model_coefficients, self._check_threshold(threshold), start)

    def count_within_distance_lanes(self, model_coefficients, threshold, width, start=0):
        """Vector-lane counting path with 4 or 8 lanes; not meant for normal use."""
        return count_lanes(self._xyz, model_coefficients, self._check_threshold(threshold), width, start)

    def optimize_model_coefficients(self, inliers, model_coefficients):
        """
        Refine sphere coefficients on their inliers.

        Runs Levenberg-Marquardt on the radial residuals starting from
        ``model_coefficients``. Whenever refinement is impossible (invalid
        start, fewer than 4 inliers, solver failure or no convergence) the
        starting coefficients are returned unchanged.

        Args:
            inliers: Cloud indices supporting the model
            model_coefficients: Initial guess [cx, cy, cz, r]
        Returns:
            numpy.ndarray: refined (or original) coefficients, always a new array
        """
        logger = get_logger()
        original = np.array(model_coefficients, dtype=np.float64).reshape(-1)

        if not self.is_model_valid(original):
            logger.error("[optimize_model_coefficients] Given model is invalid!")
            return original
        inliers = np.asarray(inliers, dtype=np.intp).reshape(-1)
        if len(inliers) < self.sample_size:
            logger.debug(
                f"[optimize_model_coefficients] Not enough inliers to refine the model ({len(inliers)}); "
                f"returning the same coefficients"
            )
            return original

        points = self._cloud.to_numpy()[inliers]
        try:
            refined, _ = refine_sphere_least_squares(
                points,
                original,
                max_evaluations=int(self._config.refine_max_evaluations),
                tolerance=self._config.refine_tolerance,
            )
        except (ValueError, np.linalg.LinAlgError) as e:
            logger.warning(f"[optimize_model_coefficients] Refinement failed: {str(e)}")
            return original

        if refined is None or refined[3] < 0.0:
            logger.debug("[optimize_model_coefficients] No usable solution; returning the same coefficients")
            return original

        logger.debug(
            f"[optimize_model_coefficients] Initial solution: {np.round(original, 6)} "
            f"Final solution: {np.round(refined, 6)}"
        )
        return refined

    def project_points(self, inliers, model_coefficients, copy_data_fields=True):
        """
        Project points onto the sphere surface.

        Args:
            inliers: Cloud indices to project
            model_coefficients: Sphere coefficients [cx, cy, cz, r]
            copy_data_fields: Carry non-positional fields (normals, colors, ...)
        Returns:
            PointCloud with one point per index in ``inliers``. A point at the
            center is left where it is; with invalid coefficients every point
            is left where it is.
        """
        selected = self._cloud.select(inliers, copy_data_fields=copy_data_fields)
        if not self._check_coefficients(model_coefficients, "project_points"):
            return selected
        return selected.with_points(project_points_onto_sphere(selected.to_numpy(), model_coefficients))

    def do_samples_verify_model(self, indices, model_coefficients, threshold):
        """
        True iff every point in ``indices`` lies within ``threshold`` of the sphere.
        Stops at the first point that does not.
        """
        threshold = self._check_threshold(threshold)
        coeffs = np.asarray(model_coefficients, dtype=np.float64).reshape(-1)
        if coeffs.size != self.model_size:
            get_logger().error(
                f"[do_samples_verify_model] Invalid number of model coefficients given ({coeffs.size})"
            )
            return False
        cx, cy, cz, r = (float(c) for c in coeffs)
        xyz = self._cloud.to_numpy()
        for index in indices:
            x, y, z = xyz[int(index)].tolist()
            dx = x - cx
            dy = y - cy
            dz = z - cz
            if not abs(math.sqrt(dx * dx + dy * dy + dz * dz) - r) <= threshold:
                return False
        return True

    def __repr__(self):
        return (
            f"SphereModel(n_points={len(self._indices)}, "
            f"radius_limits={self.get_radius_limits()})"
        )
