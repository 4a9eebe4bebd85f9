"""
Intensity normalization.

Each GTC file stores one affine transform per normalization bin. Raw bead
intensities are normalized by, in this order:

    1. translate by (-offset_x, -offset_y)
    2. rotate by theta
    3. remove shear from X
    4. divide by (scale_x, scale_y)
    5. optionally clamp negatives to zero

The order is part of the algorithm; reordering changes the numbers.
"""

from __future__ import annotations
import math
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True)
class NormalizationTransform:
    """
    Affine normalization parameters for one bin.

    Attributes:
        version: Transform record version
        offset_x, offset_y: Background offsets
        scale_x, scale_y: Channel scale factors
        shear: Shear applied to the rotated X axis
        theta: Rotation angle in radians
    """
    version: int
    offset_x: float
    offset_y: float
    scale_x: float
    scale_y: float
    shear: float
    theta: float

    def normalize_intensities(self, x: float, y: float, threshold: bool = True) -> tuple[float, float]:
        """
        Normalize one raw (x, y) intensity pair.

        Returns (nan, nan) when both intensities are zero, meaning no signal.

        Example:
            >>> nt = NormalizationTransform(1, 0.0, 0.0, 1.0, 1.0, 0.0, 0.0)
            >>> nt.normalize_intensities(100, 50)
            (100.0, 50.0)
        """
        if x == 0 and y == 0:
            return math.nan, math.nan

        # Translation happens in single precision, as the instrument does it.
        tempx = float(np.float32(x) - np.float32(self.offset_x))
        tempy = float(np.float32(y) - np.float32(self.offset_y))

        cos_t = math.cos(self.theta)
        sin_t = math.sin(self.theta)
        tempx2 = cos_t * tempx + sin_t * tempy
        tempy2 = -sin_t * tempx + cos_t * tempy

        tempx3 = tempx2 - self.shear * tempy2
        tempy3 = tempy2

        # A zero scale gives inf or nan, matching apply_transforms.
        with np.errstate(divide="ignore", invalid="ignore"):
            xn = float(np.float64(tempx3) / np.float64(self.scale_x))
            yn = float(np.float64(tempy3) / np.float64(self.scale_y))

        if threshold:
            xn = max(xn, 0.0)
            yn = max(yn, 0.0)

        return float(np.float32(xn)), float(np.float32(yn))

    def normalize_arrays(self, xs: np.ndarray, ys: np.ndarray, threshold: bool = True) -> tuple[np.ndarray, np.ndarray]:
        """Vectorized normalize_intensities; returns float32 arrays."""
        return apply_transforms(
            np.asarray(xs), np.asarray(ys), [self], np.zeros(len(xs), dtype=np.intp), threshold
        )

    @staticmethod
    def rect_to_polar(x: float, y: float) -> tuple[float, float]:
        """
        Convert normalized (x, y) to (R, theta).

        R is x + y and theta is the angle scaled to [0, 1] for the first
        quadrant. (0, 0) has no angle and returns (nan, nan).
        """
        if x == 0 and y == 0:
            return math.nan, math.nan
        return float(np.float32(x) + np.float32(y)), math.atan2(y, x) * 2.0 / math.pi


def apply_transforms(
    raw_x: np.ndarray,
    raw_y: np.ndarray,
    transforms: list[NormalizationTransform],
    lookup_ids: np.ndarray,
    threshold: bool = True,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Normalize parallel raw intensity arrays.

    Locus i uses transforms[lookup_ids[i]]. Uses the same operation order as
    NormalizationTransform.normalize_intensities.

    Args:
        raw_x, raw_y: Raw intensities (any integer or float dtype)
        transforms: Per-bin transforms from the GTC file
        lookup_ids: Per-locus index into `transforms`
        threshold: Clamp negative results to zero

    Returns:
        (normalized_x, normalized_y) as float32 arrays
    """
    params = np.array(
        [[t.offset_x, t.offset_y, t.scale_x, t.scale_y, t.shear, t.theta] for t in transforms],
        dtype=np.float32,
    ).reshape(-1, 6)
    per_locus = params[np.asarray(lookup_ids, dtype=np.intp)]
    offset_x, offset_y, scale_x, scale_y, shear, theta = (per_locus[:, i] for i in range(6))

    x = np.asarray(raw_x, dtype=np.float32)
    y = np.asarray(raw_y, dtype=np.float32)

    tempx = (x - offset_x).astype(np.float64)
    tempy = (y - offset_y).astype(np.float64)
    theta = theta.astype(np.float64)
    cos_t = np.cos(theta)
    sin_t = np.sin(theta)

    tempx2 = cos_t * tempx + sin_t * tempy
    tempy2 = -sin_t * tempx + cos_t * tempy
    tempx3 = tempx2 - shear.astype(np.float64) * tempy2

    with np.errstate(divide="ignore", invalid="ignore"):
        xn = tempx3 / scale_x.astype(np.float64)
        yn = tempy2 / scale_y.astype(np.float64)

    if threshold:
        xn = np.where(xn < 0, 0.0, xn)
        yn = np.where(yn < 0, 0.0, yn)

    no_signal = (x == 0) & (y == 0)
    xn[no_signal] = np.nan
    yn[no_signal] = np.nan
    return xn.astype(np.float32), yn.astype(np.float32)
