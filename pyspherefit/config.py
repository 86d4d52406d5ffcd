"""
Configuration for sphere models.
"""
import math
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class SphereModelConfig:
    """
    Immutable settings consumed by a SphereModel.

    Args:
        radius_min: Smallest radius a model may have (-inf means unbounded)
        radius_max: Largest radius a model may have (+inf means unbounded)
        sample_epsilon: A 4-point sample is rejected when its normalised
            determinant |det(M)| / (|a||b||c|) is at or below this value
        refine_max_evaluations: Cap on residual evaluations during refinement
        refine_tolerance: xtol/ftol/gtol handed to the least-squares solver
    """
    radius_min: float = -math.inf
    radius_max: float = math.inf
    sample_epsilon: float = 1e-6
    refine_max_evaluations: int = 1000
    refine_tolerance: float = 1e-8

    def __post_init__(self):
        if math.isnan(self.radius_min) or math.isnan(self.radius_max):
            raise ValueError("radius limits must not be NaN")
        if self.radius_min > self.radius_max:
            raise ValueError(
                f"radius_min ({self.radius_min}) must not exceed radius_max ({self.radius_max})"
            )
        if not self.sample_epsilon > 0:
            raise ValueError("sample_epsilon must be positive")
        if int(self.refine_max_evaluations) < 1:
            raise ValueError("refine_max_evaluations must be at least 1")
        if not self.refine_tolerance > 0:
            raise ValueError("refine_tolerance must be positive")

    @property
    def radius_limits(self):
        return self.radius_min, self.radius_max

    def with_radius_limits(self, radius_min=-math.inf, radius_max=math.inf):
        """Return a copy of this config with new radius bounds."""
        return replace(self, radius_min=float(radius_min), radius_max=float(radius_max))
