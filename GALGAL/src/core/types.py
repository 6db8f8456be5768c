"""Shared catalog and pair records used across parsing, scanning and output."""

from __future__ import annotations

from typing import NamedTuple, Optional


class Measurement(NamedTuple):
    """A catalog value with its 1-sigma uncertainty."""

    value: float
    uncertainty: float


ZERO_MEASUREMENT = Measurement(0.0, 0.0)


class Components(NamedTuple):
    """Two-component distortion in the catalog (Cartesian) frame."""

    one: Measurement
    two: Measurement


ZERO_COMPONENTS = Components(ZERO_MEASUREMENT, ZERO_MEASUREMENT)


class Modes(NamedTuple):
    """Distortion rotated into the lens frame."""

    e_mode: Measurement
    b_mode: Measurement


class Lens(NamedTuple):
    id: int
    x: float
    y: float


class Source(NamedTuple):
    id: int
    x: float
    y: float
    shear: Components = ZERO_COMPONENTS
    flexion_f: Components = ZERO_COMPONENTS
    flexion_g: Components = ZERO_COMPONENTS


class PairResult(NamedTuple):
    """One qualifying lens-source pair with its rotated signals."""

    lens: Lens
    source: Source
    separation: float
    delta_x: float
    delta_y: float
    bearing: float
    shear: Modes
    flexion_f: Modes
    flexion_g: Modes


class ParseError(ValueError):
    """A catalog column could not be read as a finite float."""

    def __init__(self, object_id: str, raw: str, field: str):
        self.object_id = object_id
        self.raw = raw
        self.field = field
        super().__init__(f"object {object_id}: could not parse `{raw}` as {field}")


class SchemaError(ValueError):
    pass


class SchedulerError(RuntimeError):
    pass


class ChannelClosedError(SchedulerError):
    pass


class ScanError(RuntimeError):
    """The pair scan stopped because a producer or the sink failed."""

    def __init__(self, message: str, lens: Optional[Lens] = None):
        self.lens = lens
        super().__init__(message)
