"""
Utility functions for sphere math: minimal solve, residuals, refinement,
projection and direction generation.
"""
import numpy as np
from scipy.optimize import least_squares

from .logger import get_logger


def fibonacci_sphere(samples=100):
    """Generate evenly distributed unit directions (samples, 3)."""
    if samples < 1:
        return np.empty((0, 3))
    if samples == 1:
        return np.array([[0.0, 1.0, 0.0]])
    i = np.arange(samples, dtype=np.float64)
    phi = np.pi * (3. - np.sqrt(5.))  # golden angle
    y = 1 - (i / float(samples - 1)) * 2  # y goes from 1 to -1
    radius = np.sqrt(np.clip(1 - y * y, 0.0, None))
    theta = phi * i
    return np.column_stack((np.cos(theta) * radius, y, np.sin(theta) * radius))


def sample_degeneracy(P):
    """
    Normalised volume spanned by a 4-point sample.

    Returns |det([p1-p0, p2-p0, p3-p0])| / (|p1-p0| |p2-p0| |p3-p0|), which is
    scale invariant and 0 for coincident, collinear or coplanar points (at
    most 1, for mutually orthogonal edges).

    Args:
        P: (4, 3) array of sample points
    """
    P = np.asarray(P, dtype=np.float64)
    edges = P[1:] - P[0]
    lengths = np.linalg.norm(edges, axis=1)
    scale = np.prod(lengths)
    if not np.isfinite(scale) or scale == 0.0:
        return 0.0
    return float(abs(np.linalg.det(edges)) / scale)


def sphere_from_four_points(P):
    """
    Closed-form sphere through 4 points.

    Writing the sphere as x^2+y^2+z^2 + Dx + Ey + Fz + G = 0 and subtracting
    the equation of p0 from those of p1..p3 leaves a 3x3 linear system whose
    solution is the center c = -(D, E, F)/2. Solving for the offset
    u = c - p0 keeps the right-hand side free of large absolute coordinates:

        2 d_i . u = |d_i|^2,   d_i = p_i - p0,   i = 1, 2, 3

    so c = p0 + u and the radius is |u|.

    Args:
        P: (4, 3) array of points
    Returns:
        (4,) array [cx, cy, cz, r]
    Raises:
        numpy.linalg.LinAlgError: if the system is singular
    """
    P = np.asarray(P, dtype=np.float64)
    p0 = P[0]
    d = P[1:] - p0
    u = np.linalg.solve(2.0 * d, np.sum(d * d, axis=1))
    center = p0 + u
    radius = np.linalg.norm(u)
    return np.array([center[0], center[1], center[2], radius])


def radial_residuals(points, coeffs):
    """
    |distance(p, center) - r| for every row of ``points``.

    Evaluated as sqrt((dx*dx + dy*dy) + dz*dz) so the result matches the
    scalar and lane counters in ``lanes`` bit for bit. NaN/inf coordinates
    propagate.
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    cx, cy, cz, r = (float(c) for c in coeffs[:4])
    dx = points[:, 0] - cx
    dy = points[:, 1] - cy
    dz = points[:, 2] - cz
    with np.errstate(invalid='ignore'):
        return np.abs(np.sqrt(dx * dx + dy * dy + dz * dz) - r)


def _signed_residuals(x, points):
    return np.linalg.norm(points - x[:3], axis=1) - x[3]


def _residual_jacobian(x, points):
    diff = points - x[:3]
    dist = np.linalg.norm(diff, axis=1)
    # Points sitting on the center have no defined gradient; leave them flat
    safe = np.where(dist > 0.0, dist, 1.0)
    jac = np.empty((len(points), 4))
    jac[:, :3] = np.where(dist[:, None] > 0.0, -diff / safe[:, None], 0.0)
    jac[:, 3] = -1.0
    return jac


def refine_sphere_least_squares(points, coeffs, max_evaluations=1000, tolerance=1e-8):
    """
    Levenberg-Marquardt fit of [cx, cy, cz, r] minimising
    sum((|p - c| - r)^2), started from ``coeffs``.

    Args:
        points: (N, 3) array, N >= 4
        coeffs: Initial guess [cx, cy, cz, r]
        max_evaluations: Cap on residual evaluations
        tolerance: xtol, ftol and gtol for the solver
    Returns:
        (refined coefficients, solver result), or (None, result) when the
        solver stopped without converging
    Raises:
        ValueError: if the residuals are not finite at the initial guess
    """
    points = np.asarray(points, dtype=np.float64)
    x0 = np.asarray(coeffs, dtype=np.float64)[:4]
    result = least_squares(
        _signed_residuals,
        x0,
        jac=_residual_jacobian,
        args=(points,),
        method='lm',
        xtol=tolerance,
        ftol=tolerance,
        gtol=tolerance,
        max_nfev=max_evaluations,
    )
    logger = get_logger()
    logger.debug(
        f"[refine_sphere_least_squares] status={result.status} nfev={result.nfev} "
        f"cost={result.cost:.6g} ({result.message})"
    )
    # status 0: evaluation cap hit, -1: improper input
    if result.status <= 0 or not np.all(np.isfinite(result.x)):
        return None, result
    return result.x.copy(), result


def project_points_onto_sphere(points, coeffs):
    """
    Move every point radially onto the sphere surface.

    A point exactly at the center has no radial direction and is returned
    unmoved. NaN coordinates propagate.

    Args:
        points: (N, 3) array
        coeffs: [cx, cy, cz, r]
    Returns:
        (N, 3) array of projected points
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    center = np.asarray(coeffs[:3], dtype=np.float64)
    radius = float(coeffs[3])
    diff = points - center
    dist = np.linalg.norm(diff, axis=1)
    scale = np.divide(radius, dist, out=np.zeros_like(dist), where=(dist != 0.0))
    projected = center + diff * scale[:, None]
    at_center = dist == 0.0
    projected[at_center] = points[at_center]
    return projected
