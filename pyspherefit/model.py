"""
PrimitiveModel: the contract a sample-consensus driver relies on.

A driver only ever talks to this interface: it draws ``sample_size`` indices,
asks the model whether they form a good sample, estimates coefficients,
scores them with ``count_within_distance`` and finally refines the winner.
Concrete shapes (see ``sphere.SphereModel``) fill in the geometry.
"""
import copy
from abc import ABC, abstractmethod
from enum import Enum

import numpy as np

from .config import SphereModelConfig
from .pointcloud import PointCloud


class SacModel(Enum):
    """Identifiers for primitive model types."""
    PLANE = 0
    LINE = 1
    CIRCLE2D = 2
    CIRCLE3D = 3
    SPHERE = 4
    CYLINDER = 5


class PrimitiveModel(ABC):
    sample_size = 0
    model_size = 0
    model_name = "PrimitiveModel"

    def __init__(self, cloud, indices=None, config=None):
        """
        Args:
            cloud: PointCloud (or (N, 3) array-like) the model is evaluated on
            indices: Subset of the cloud to consider; defaults to every point
            config: SphereModelConfig; defaults to unbounded radius limits
        """
        if not isinstance(cloud, PointCloud):
            cloud = PointCloud(cloud)
        self._cloud = cloud
        self._config = config if config is not None else SphereModelConfig()

        if indices is None:
            indices = np.arange(len(cloud), dtype=np.intp)
        else:
            indices = np.array(indices, dtype=np.intp).reshape(-1)
            if len(indices) and (indices.min() < 0 or indices.max() >= len(cloud)):
                raise ValueError("indices reference points outside the cloud")
        indices.setflags(write=False)
        self._indices = indices
        # Positions of the considered subset, gathered once
        self._xyz = cloud.to_numpy()[indices]
        # Squared residuals of the inliers found by the last selection
        self.error_sqr_dists = np.empty(0)

    @property
    def cloud(self):
        return self._cloud

    @property
    def indices(self):
        return self._indices

    @property
    def config(self):
        return self._config

    def get_radius_limits(self):
        return self._config.radius_limits

    def clone(self):
        """Independent copy of this model; the cloud and config are shared read-only."""
        other = copy.copy(self)
        other._indices = self._indices.copy()
        other._indices.setflags(write=False)
        other._xyz = self._xyz.copy()
        other.error_sqr_dists = self.error_sqr_dists.copy()
        return other

    def with_radius_limits(self, radius_min=-np.inf, radius_max=np.inf):
        """Clone of this model with different radius bounds."""
        other = self.clone()
        other._config = self._config.with_radius_limits(radius_min, radius_max)
        return other

    def is_model_valid(self, model_coefficients):
        """Coefficients must have ``model_size`` entries, all finite."""
        coeffs = np.asarray(model_coefficients, dtype=np.float64).reshape(-1)
        if coeffs.size != self.model_size:
            return False
        return bool(np.all(np.isfinite(coeffs)))

    @abstractmethod
    def model_type(self):
        """Return the SacModel member for this shape."""

    @abstractmethod
    def is_sample_good(self, samples):
        """Return True if ``samples`` can define a non-degenerate model."""

    @abstractmethod
    def compute_model_coefficients(self, samples):
        """Estimate coefficients from a minimal sample, or None on failure."""

    @abstractmethod
    def get_distances_to_model(self, model_coefficients):
        """Residual of every considered point, in index order."""

    @abstractmethod
    def select_within_distance(self, model_coefficients, threshold):
        """Cloud indices of all considered points with residual <= threshold."""

    @abstractmethod
    def count_within_distance(self, model_coefficients, threshold):
        """Number of considered points with residual <= threshold."""

    @abstractmethod
    def optimize_model_coefficients(self, inliers, model_coefficients):
        """Refine coefficients on ``inliers``; returns the input on failure."""

    @abstractmethod
    def project_points(self, inliers, model_coefficients, copy_data_fields=True):
        """PointCloud of ``inliers`` moved onto the model surface."""

    @abstractmethod
    def do_samples_verify_model(self, indices, model_coefficients, threshold):
        """True iff every point in ``indices`` is within ``threshold``."""
