"""Catalog ingestion: split objects into lenses and sources by flux."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from GALGAL.config import Config
from GALGAL.src.core.parsing import FieldParser
from GALGAL.src.core.schema import ColumnSchema
from GALGAL.src.core.types import ZERO_COMPONENTS, Components, Lens, ParseError, Source

logger = logging.getLogger(__name__)

SHAPE_GROUPS = ("shear", "flexion_f", "flexion_g")


@dataclass
class Catalog:
    lenses: list[Lens] = field(default_factory=list)
    sources: list[Source] = field(default_factory=list)
    skipped_lines: int = 0
    warnings: int = 0

    def summary(self) -> str:
        return f"count lens: {len(self.lenses)}; count source: {len(self.sources)}"


class CatalogClassifier:
    """Parses catalog lines and accumulates the lens and source sets.

    Lines whose flux cannot be read are skipped. Position and shape fields
    are best-effort: an unreadable group is logged and zeroed, unless
    ``MALFORMED_SHAPE_POLICY`` is ``"drop"``, in which case a source with
    an unreadable shape group is discarded.
    """

    def __init__(self, config: Config, schema: Optional[ColumnSchema] = None):
        self.config = config
        self.parser = FieldParser(schema or ColumnSchema.from_config(config))
        self.catalog = Catalog()

    def _warn(self, err: Exception) -> None:
        self.catalog.warnings += 1
        logger.warning("%s", err)

    def _position(self, fields: list[str]) -> tuple[float, float]:
        try:
            return self.parser.position(fields)
        except ParseError as err:
            self._warn(err)
            return 0.0, 0.0

    def _shape(self, fields: list[str], prefix: str) -> Optional[Components]:
        try:
            return self.parser.components(fields, prefix)
        except ParseError as err:
            self._warn(err)
            return None

    def make_lens(self, fields: list[str]) -> Lens:
        x, y = self._position(fields)
        return Lens(self.parser.object_id(fields), x, y)

    def make_source(self, fields: list[str]) -> Optional[Source]:
        object_id = self.parser.object_id(fields)
        x, y = self._position(fields)
        shapes = {prefix: self._shape(fields, prefix) for prefix in SHAPE_GROUPS}
        if any(v is None for v in shapes.values()):
            if self.config.MALFORMED_SHAPE_POLICY == "drop":
                return None
            shapes = {k: ZERO_COMPONENTS if v is None else v for k, v in shapes.items()}
        return Source(object_id, x, y, **shapes)

    def classify_line(self, line: str) -> Union[Lens, Source, None]:
        """Classify one raw line and add it to the catalog.

        Returns the new record, or ``None`` for comments, blank lines and
        skipped lines.
        """
        if line.startswith("#"):
            return None
        fields = line.split()
        if not fields:
            return None

        try:
            flux = self.parser.measurement(fields, "flux")
        except ParseError as err:
            self._warn(err)
            self.catalog.skipped_lines += 1
            return None

        if flux.value > self.config.FLUX_THRESHOLD:
            lens = self.make_lens(fields)
            self.catalog.lenses.append(lens)
            return lens

        source = self.make_source(fields)
        if source is None:
            self.catalog.skipped_lines += 1
            return None
        self.catalog.sources.append(source)
        return source

    def ingest(self, lines: Iterable[str]) -> Catalog:
        for line in lines:
            self.classify_line(line)
        logger.info(
            "Ingested %d lenses and %d sources (%d lines skipped)",
            len(self.catalog.lenses),
            len(self.catalog.sources),
            self.catalog.skipped_lines,
        )
        return self.catalog
