"""Lens-frame decomposition of shear and flexion for a single lens-source pair.

The bearing ``phi`` is the polar angle of the source seen from the lens.
A spin-``s`` quantity with catalog components ``(c1, c2)`` is rotated as

    e = -cos(s*phi) * c1 - sin(s*phi) * c2
    b = -sin(s*phi) * c1 + cos(s*phi) * c2

with ``s = 2`` for shear, ``s = 1`` for flexion F and ``s = 3`` for
flexion G. Flexion G uses ``-cos(3*phi) * g2`` in its B-mode, the opposite
sign to the other two. Both flexions are divided by the calibration constant
afterwards. Uncertainties are carried over from the catalog components
unchanged (E from component 1, B from component 2), not propagated through
the rotation.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from GALGAL.config import Config
from GALGAL.src.core.types import Components, Lens, Measurement, Modes, PairResult, Source

SHEAR_SPIN = 2
FLEXION_F_SPIN = 1
FLEXION_G_SPIN = 3


def rotate(components: Components, spin: int, bearing: float, scale: float = 1.0, b_sign: float = 1.0) -> Modes:
    """Rotate catalog components into E/B modes about ``bearing``.

    ``b_sign`` is the sign of the cosine term of the B-mode (``-1`` for
    flexion G). Both values are divided by ``scale``.
    """
    angle = spin * bearing
    c, s = math.cos(angle), math.sin(angle)
    one, two = components
    e_val = -c * one.value - s * two.value
    b_val = -s * one.value + b_sign * c * two.value
    return Modes(
        Measurement(e_val / scale, one.uncertainty),
        Measurement(b_val / scale, two.uncertainty),
    )


def in_window(separation: float, config: Config) -> bool:
    return config.MIN_SEPARATION < separation < config.MAX_SEPARATION


def transform_pair(lens: Lens, source: Source, config: Config) -> Optional[PairResult]:
    """Return the decomposed pair, or ``None`` if the separation is out of range."""
    delta_x = source.x - lens.x
    delta_y = source.y - lens.y
    separation = math.sqrt(delta_x * delta_x + delta_y * delta_y)
    if not in_window(separation, config):
        return None

    bearing = math.atan2(delta_y, delta_x)
    calibration = config.FLEXION_CALIBRATION
    return PairResult(
        lens=lens,
        source=source,
        separation=separation,
        delta_x=delta_x,
        delta_y=delta_y,
        bearing=bearing,
        shear=rotate(source.shear, SHEAR_SPIN, bearing),
        flexion_f=rotate(source.flexion_f, FLEXION_F_SPIN, bearing, scale=calibration),
        flexion_g=rotate(source.flexion_g, FLEXION_G_SPIN, bearing, scale=calibration, b_sign=-1.0),
    )


def separation_mask(lens: Lens, xs: np.ndarray, ys: np.ndarray, config: Config) -> np.ndarray:
    """Indices of sources whose separation from ``lens`` falls inside the window.

    Uses the same arithmetic as ``transform_pair`` so the two agree on every
    pair; it only saves the per-pair Python call for rejected sources.
    """
    dx = xs - lens.x
    dy = ys - lens.y
    sep = np.sqrt(dx * dx + dy * dy)
    return np.flatnonzero((sep > config.MIN_SEPARATION) & (sep < config.MAX_SEPARATION))
