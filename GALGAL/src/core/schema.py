"""Named column layout of the input catalog."""

from __future__ import annotations

from typing import Dict, Mapping, NamedTuple, Optional

from GALGAL.config import Config
from GALGAL.src.core.types import SchemaError

# Human-readable names used in parse warnings.
FIELD_LABELS: Dict[str, str] = {
    "id": "id",
    "x": "x position",
    "y": "y position",
    "flux": "flux",
    "shear1": "shear 1",
    "shear2": "shear 2",
    "flexion_f1": "flexion F 1",
    "flexion_f2": "flexion F 2",
    "flexion_g1": "flexion G 1",
    "flexion_g2": "flexion G 2",
}

REQUIRED_FIELDS = tuple(FIELD_LABELS)


class FieldColumns(NamedTuple):
    value: int
    error: Optional[int] = None


def _as_index(name: str, raw) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise SchemaError(f"column for '{name}' must be an integer, got {raw!r}")
    if raw < 0:
        raise SchemaError(f"column for '{name}' must be non-negative, got {raw}")
    return raw


class ColumnSchema:
    """Maps each catalog field to its value column and optional error column.

    The schema is validated on construction so a bad layout is reported
    before any input is read.
    """

    def __init__(self, columns: Mapping[str, FieldColumns]):
        self._columns: Dict[str, FieldColumns] = dict(columns)
        self.validate()

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, object]) -> "ColumnSchema":
        """Build a schema from ``{name: value_col}`` or ``{name: [value_col, error_col]}``."""
        columns: Dict[str, FieldColumns] = {}
        for name, entry in mapping.items():
            if isinstance(entry, (list, tuple)):
                if not 1 <= len(entry) <= 2:
                    raise SchemaError(f"column entry for '{name}' must have one or two items")
                value = _as_index(name, entry[0])
                error = entry[1] if len(entry) == 2 else None
                if error is not None:
                    error = _as_index(f"{name} error", error)
            else:
                value = _as_index(name, entry)
                error = None
            columns[str(name)] = FieldColumns(value, error)
        return cls(columns)

    @classmethod
    def from_config(cls, config: Config) -> "ColumnSchema":
        return cls.from_mapping(config.COLUMNS)

    def validate(self) -> None:
        missing = [name for name in REQUIRED_FIELDS if name not in self._columns]
        if missing:
            raise SchemaError(f"missing column(s): {', '.join(missing)}")
        unknown = sorted(set(self._columns) - set(REQUIRED_FIELDS))
        if unknown:
            raise SchemaError(f"unknown column(s): {', '.join(unknown)}")

        owners: Dict[int, str] = {}
        for name, cols in self._columns.items():
            for index, label in ((cols.value, name), (cols.error, f"{name} error")):
                if index is None:
                    continue
                _as_index(label, index)
                if index in owners:
                    raise SchemaError(f"column {index} used by both '{owners[index]}' and '{label}'")
                owners[index] = label

    def __getitem__(self, name: str) -> FieldColumns:
        return self._columns[name]
