"""
Inlier counting strategies for sphere models.

Three implementations share one contract: count the points whose radial
residual |sqrt(dx*dx + dy*dy + dz*dz) - r| is <= threshold.

    scalar  one point per step
    lanes4  the first multiple of 4 points in one numpy call, scalar tail
    lanes8  the first multiple of 8 points in one numpy call, scalar tail

The lane paths do not loop block by block: every full block goes through a
single vectorised numpy expression, and the width only decides where the
scalar tail begins. The 4 and 8 follow the float register widths of
numpy's own SIMD kernels; this code never steps through points 4 or 8 at a
time.

Every path evaluates the same float64 expression in the same order, so they
return identical counts. The lane width is picked once, from the SIMD
features numpy's runtime dispatcher reports for this CPU.
"""
import math

import numpy as np

from .logger import get_logger

SCALAR_WIDTH = 1
SSE_WIDTH = 4
AVX_WIDTH = 8
LANE_WIDTHS = (SSE_WIDTH, AVX_WIDTH)

# Filled in by the first call to detect_vector_width()
DETECTED_WIDTH = None


def _numpy_cpu_features():
    """Feature table (name -> bool) from numpy's runtime CPU dispatcher."""
    try:
        from numpy._core._multiarray_umath import __cpu_features__
    except ImportError:
        # numpy < 2.0 keeps the extension module under numpy.core
        from numpy.core._multiarray_umath import __cpu_features__
    return dict(__cpu_features__)


def width_for_features(features):
    """
    Map a CPU feature table to the widest usable lane count.

    AVX+AVX2 gives 8 float lanes; SSE/SSE2/SSE4.1 (x86) or ASIMD (ARM NEON)
    gives 4; anything else falls back to scalar.
    """
    if features.get('AVX') and features.get('AVX2'):
        return AVX_WIDTH
    if features.get('SSE') and features.get('SSE2') and features.get('SSE41'):
        return SSE_WIDTH
    if features.get('ASIMD'):
        return SSE_WIDTH
    return SCALAR_WIDTH


def detect_vector_width():
    """Probe the CPU once per process and return 1, 4 or 8."""
    global DETECTED_WIDTH
    if DETECTED_WIDTH is not None:
        return DETECTED_WIDTH
    logger = get_logger()
    try:
        features = _numpy_cpu_features()
    except ImportError:
        logger.debug("[detect_vector_width] numpy exposes no CPU feature table, using scalar counting")
        DETECTED_WIDTH = SCALAR_WIDTH
        return DETECTED_WIDTH
    DETECTED_WIDTH = width_for_features(features)
    logger.debug(f"[detect_vector_width] Detected {DETECTED_WIDTH}-wide vector lanes")
    return DETECTED_WIDTH


def _unpack(coeffs):
    return float(coeffs[0]), float(coeffs[1]), float(coeffs[2]), float(coeffs[3])


def count_standard(xyz, coeffs, threshold, start=0):
    """
    Count inliers one point at a time, beginning at row ``start``.

    Args:
        xyz: (N, 3) float64 array of the points under consideration
        coeffs: Sphere coefficients [cx, cy, cz, r]
        threshold: Inclusive residual cutoff
        start: First row to examine
    """
    cx, cy, cz, r = _unpack(coeffs)
    threshold = float(threshold)
    count = 0
    for x, y, z in xyz[start:].tolist():
        dx = x - cx
        dy = y - cy
        dz = z - cz
        # NaN compares False, so non-finite points are never counted
        if abs(math.sqrt(dx * dx + dy * dy + dz * dz) - r) <= threshold:
            count += 1
    return count


def count_lanes(xyz, coeffs, threshold, width, start=0):
    """
    Count the first multiple of ``width`` points with one numpy expression,
    then finish the remainder with ``count_standard``.

    Raises:
        ValueError: if ``width`` is not 4 or 8
    """
    if width not in LANE_WIDTHS:
        raise ValueError(f"unsupported lane width {width}; expected one of {LANE_WIDTHS}")
    cx, cy, cz, r = _unpack(coeffs)
    n_blocks = (len(xyz) - start) // width
    stop = start + n_blocks * width

    block = xyz[start:stop].reshape(n_blocks, width, 3)
    dx = block[..., 0] - cx
    dy = block[..., 1] - cy
    dz = block[..., 2] - cz
    with np.errstate(invalid='ignore'):
        residual = np.abs(np.sqrt(dx * dx + dy * dy + dz * dz) - r)
        count = int(np.count_nonzero(residual <= float(threshold)))

    return count + count_standard(xyz, coeffs, threshold, start=stop)


def count_lanes4(xyz, coeffs, threshold, start=0):
    return count_lanes(xyz, coeffs, threshold, SSE_WIDTH, start)


def count_lanes8(xyz, coeffs, threshold, start=0):
    return count_lanes(xyz, coeffs, threshold, AVX_WIDTH, start)


STRATEGIES = {
    SCALAR_WIDTH: count_standard,
    SSE_WIDTH: count_lanes4,
    AVX_WIDTH: count_lanes8,
}


def select_strategy(width=None):
    """
    Return the counting function for ``width`` lanes.

    Args:
        width: 1, 4 or 8; None uses the detected hardware width
    """
    if width is None:
        width = detect_vector_width()
    try:
        return STRATEGIES[width]
    except KeyError:
        raise ValueError(f"unsupported lane width {width}; expected one of {sorted(STRATEGIES)}")
