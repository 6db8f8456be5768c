"""Pipeline configuration with simple JSON persistence."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, get_type_hints

logger = logging.getLogger(__name__)

SHAPE_POLICIES = ("zero", "drop")

# field name -> [value column, error column or None]
DEFAULT_COLUMNS: Dict[str, List[Optional[int]]] = {
    "id": [0, None],
    "x": [1, None],
    "y": [2, None],
    "flux": [3, 4],
    "shear1": [13, 14],
    "shear2": [15, 16],
    "flexion_f1": [17, 18],
    "flexion_f2": [19, 20],
    "flexion_g1": [21, 22],
    "flexion_g2": [23, 24],
}


@dataclass
class Config:
    # Classification
    FLUX_THRESHOLD: float = 1011.830
    MALFORMED_SHAPE_POLICY: str = "zero"  # zero, drop

    # Pair selection
    MIN_SEPARATION: float = 37.0
    MAX_SEPARATION: float = 54838.0

    # Flexion F and G are divided by this after rotation
    FLEXION_CALIBRATION: float = 0.186

    # Scheduling
    QUEUE_SIZE: int = 1024
    MAX_WORKERS: Optional[int] = None

    # Catalog layout
    # entries are [value, error] or a bare value column index
    COLUMNS: Dict[str, Any] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_COLUMNS.items()}
    )

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        cfg = cls()
        if path is None:
            return cfg
        cfg_path = Path(path)
        if not cfg_path.exists():
            logger.warning("Config file not found, using defaults: %s", cfg_path)
            return cfg

        try:
            data = json.loads(cfg_path.read_text())
        except Exception:
            logger.exception("Failed to read config file: %s", cfg_path)
            return cfg
        if not isinstance(data, dict):
            logger.error("Config file must contain a JSON object: %s", cfg_path)
            return cfg

        hints = get_type_hints(cls)
        for f in fields(cfg):
            if f.name not in data:
                continue
            raw = data[f.name]
            kind = hints[f.name]
            try:
                if raw is None and kind == Optional[int]:
                    val = None
                elif kind is int or kind == Optional[int]:
                    val = int(raw)
                elif kind is float:
                    val = float(raw)
                elif kind is str:
                    val = str(raw)
                elif f.name == "COLUMNS":
                    if not isinstance(raw, dict):
                        raise TypeError("COLUMNS must be an object")
                    val = {str(k): list(v) if isinstance(v, (list, tuple)) else v for k, v in raw.items()}
                else:
                    val = raw
                setattr(cfg, f.name, val)
            except Exception:
                logger.warning("Ignoring invalid config value for %s", f.name)

        cfg.normalize()
        return cfg

    def save(self, path: Path) -> None:
        Path(path).write_text(json.dumps(asdict(self), indent=2, sort_keys=True))

    def normalize(self) -> None:
        if self.MIN_SEPARATION > self.MAX_SEPARATION:
            self.MIN_SEPARATION, self.MAX_SEPARATION = self.MAX_SEPARATION, self.MIN_SEPARATION
        policy = self.MALFORMED_SHAPE_POLICY.lower()
        if policy not in SHAPE_POLICIES:
            logger.warning("Unknown MALFORMED_SHAPE_POLICY '%s'. Falling back to 'zero'.", policy)
            policy = "zero"
        self.MALFORMED_SHAPE_POLICY = policy
        if self.QUEUE_SIZE < 1:
            self.QUEUE_SIZE = 1
        if self.MAX_WORKERS is not None and self.MAX_WORKERS < 1:
            self.MAX_WORKERS = None

    def validate(self) -> None:
        """Reject values that cannot be normalized into something usable."""
        if not math.isfinite(self.FLEXION_CALIBRATION) or self.FLEXION_CALIBRATION <= 0:
            raise ValueError(f"FLEXION_CALIBRATION must be positive, got {self.FLEXION_CALIBRATION}")
