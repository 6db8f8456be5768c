"""Typed field extraction from tokenized catalog lines."""

from __future__ import annotations

import logging
import math
import re
from typing import Optional, Sequence

from GALGAL.src.core.schema import FIELD_LABELS, ColumnSchema
from GALGAL.src.core.types import Components, Measurement, ParseError

logger = logging.getLogger(__name__)

INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def _parse_float(fields: Sequence[str], column: int, object_id: str, label: str) -> float:
    raw = fields[column] if column < len(fields) else ""
    if "_" in raw:
        raise ParseError(object_id, raw, label)
    try:
        value = float(raw)
    except ValueError:
        raise ParseError(object_id, raw, label) from None
    if not math.isfinite(value):
        raise ParseError(object_id, raw, label)
    return value


def parse_measurement(
    fields: Sequence[str],
    name: str,
    value_column: int,
    error_column: Optional[int] = None,
    object_id: Optional[str] = None,
) -> Measurement:
    """Read one measurement from a tokenized line.

    ``error_column=None`` means the field has no uncertainty column and the
    uncertainty is reported as ``0``. ``object_id`` defaults to the first
    token and is only used to label a ``ParseError``.
    """
    if object_id is None:
        object_id = fields[0] if fields else ""
    value = _parse_float(fields, value_column, object_id, name)
    if error_column is None:
        return Measurement(value, 0.0)
    uncertainty = _parse_float(fields, error_column, object_id, f"{name} error")
    return Measurement(value, uncertainty)


class FieldParser:
    """Schema-driven accessors for the catalog fields."""

    def __init__(self, schema: ColumnSchema):
        self.schema = schema

    def _raw_id(self, fields: Sequence[str]) -> str:
        column = self.schema["id"].value
        return fields[column] if column < len(fields) else ""

    def object_id(self, fields: Sequence[str]) -> int:
        raw = self._raw_id(fields)
        if INTEGER_RE.fullmatch(raw):
            return int(raw)
        logger.warning("object %s: could not parse `%s` as id, using 0", raw, raw)
        return 0

    def measurement(self, fields: Sequence[str], name: str) -> Measurement:
        cols = self.schema[name]
        return parse_measurement(
            fields, FIELD_LABELS[name], cols.value, cols.error, object_id=self._raw_id(fields)
        )

    def position(self, fields: Sequence[str]) -> tuple[float, float]:
        return self.measurement(fields, "x").value, self.measurement(fields, "y").value

    def components(self, fields: Sequence[str], prefix: str) -> Components:
        """Read ``<prefix>1`` and ``<prefix>2`` as a catalog-frame pair."""
        return Components(
            self.measurement(fields, f"{prefix}1"),
            self.measurement(fields, f"{prefix}2"),
        )
