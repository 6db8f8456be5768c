"""Text catalog input and pair-result output."""

from __future__ import annotations

import math
import threading
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Iterator, List, TextIO

from GALGAL.src.core.types import Measurement, Modes, PairResult


def read_lines(stream: TextIO) -> Iterator[str]:
    for line in stream:
        yield line.rstrip("\r\n")


def format_general(value: float) -> str:
    """Shortest round-trip rendering of ``value`` in the compact ``%g`` style.

    Fixed notation is used while the decimal exponent is in ``[-4, 6)``,
    scientific notation with a signed, at least two-digit exponent otherwise.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0.0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    sign, digits, exponent = Decimal(repr(float(value))).normalize().as_tuple()
    mantissa = "".join(str(d) for d in digits)
    exp = len(digits) + exponent - 1
    prefix = "-" if sign else ""

    if exp < -4 or exp >= 6:
        head, tail = mantissa[0], mantissa[1:]
        body = f"{head}.{tail}" if tail else head
        return f"{prefix}{body}e{'-' if exp < 0 else '+'}{abs(exp):02d}"

    if exp < 0:
        return f"{prefix}0.{'0' * (-exp - 1)}{mantissa}"
    point = exp + 1
    if point >= len(mantissa):
        return f"{prefix}{mantissa}{'0' * (point - len(mantissa))}"
    return f"{prefix}{mantissa[:point]}.{mantissa[point:]}"


def _measurement_cols(m: Measurement) -> List[str]:
    return [format_general(m.value), format_general(m.uncertainty)]


def _modes_cols(modes: Modes) -> List[str]:
    return _measurement_cols(modes.e_mode) + _measurement_cols(modes.b_mode)


def format_result(result: PairResult) -> str:
    """One output row; the two literal ``0`` columns are reserved."""
    cols = [
        str(result.lens.id),
        str(result.source.id),
        format_general(result.lens.x),
        format_general(result.lens.y),
        format_general(result.source.x),
        format_general(result.source.y),
        "0",
        "0",
        format_general(result.separation),
        format_general(result.delta_x),
        format_general(result.delta_y),
        format_general(result.bearing),
    ]
    cols += _modes_cols(result.shear)
    cols += _modes_cols(result.flexion_f)
    cols += _modes_cols(result.flexion_g)
    return " ".join(cols)


class ResultSink(ABC):
    @abstractmethod
    def write(self, result: PairResult) -> None: pass
    @abstractmethod
    def close(self) -> None: pass


class StreamSink(ResultSink):
    """Writes one formatted line per result to a text stream."""

    def __init__(self, stream: TextIO):
        self.stream = stream

    def write(self, result: PairResult) -> None:
        self.stream.write(format_result(result) + "\n")

    def close(self) -> None:
        self.stream.flush()


class MemorySink(ResultSink):
    """Collects results in memory, safe to share between threads."""

    def __init__(self):
        self.results: List[PairResult] = []
        self._lock = threading.Lock()

    def write(self, result: PairResult) -> None:
        with self._lock:
            self.results.append(result)

    def close(self) -> None:
        return None
