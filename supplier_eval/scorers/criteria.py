"""Criterion Catalog - scorable criteria and their rating vocabulary.

Four weighted criteria are rated on a four-level scale:
- quality: quality of the delivered service
- availability: operational availability and collaboration
- timeliness: delivery date compliance
- price: price relative to the competition

The optional field-safety criterion is rated A/B/C, carries no weight and
never enters the weighted sum. It can only downgrade the final tier
(see supplier_eval.scorers.classifier).

Persisted records store a textual label per criterion (e.g. "Sobresaliente"),
not the level; parse_rating_label() maps those texts back to levels.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional, Union

if TYPE_CHECKING:
    from supplier_eval.scorers.model_registry import EvaluationModel


class Level(str, Enum):
    """Rating level for a weighted criterion."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    VERY_LOW = "VERY_LOW"


class FieldSafetyLevel(str, Enum):
    """Rating for the field-safety criterion (A = full compliance)."""

    A = "A"
    B = "B"
    C = "C"


class Tier(str, Enum):
    """Final supplier classification."""

    A = "A"
    B = "B"
    C = "C"


QUALITY = "quality"
AVAILABILITY = "availability"
TIMELINESS = "timeliness"
PRICE = "price"
FIELD_SAFETY = "field_safety"

# Weighted criteria, in display order
WEIGHTED_CRITERIA = (QUALITY, AVAILABILITY, TIMELINESS, PRICE)

CRITERION_NAMES = {
    QUALITY: "Quality",
    AVAILABILITY: "Operational availability and collaboration",
    TIMELINESS: "Delivery date compliance",
    PRICE: "Price relative to competition",
    FIELD_SAFETY: "Field safety",
}

# Level names used by older records
LEGACY_LEVEL_NAMES = {
    "ALTO": Level.HIGH,
    "MEDIO": Level.MEDIUM,
    "BAJO": Level.LOW,
    "MUY_BAJO": Level.VERY_LOW,
}

# Fragments found in free-text ratings written before the labels were fixed.
# Checked in order, so longer/more negative fragments come first.
_LEGACY_FRAGMENTS: dict[str, list[tuple[str, Level]]] = {
    TIMELINESS: [
        ("GENERALMENTE SE RETRASA", Level.VERY_LOW),
        ("GENERALMENTE RETRASA", Level.VERY_LOW),
        ("RETRASA OCASIONAL", Level.LOW),
        ("ADELANTADO", Level.HIGH),
        ("CUMPLE", Level.MEDIUM),
    ],
    PRICE: [
        ("MUY ELEVADO", Level.VERY_LOW),
        ("MAL PRECIO", Level.VERY_LOW),
        ("ELEVADO", Level.LOW),
        ("MUY BUEN", Level.HIGH),
        ("MERCADO", Level.MEDIUM),
        ("BUEN PRECIO", Level.MEDIUM),
    ],
}

_GENERIC_FRAGMENTS: list[tuple[str, Level]] = [
    ("SOBRESALIENTE", Level.HIGH),
    ("EXCELENTE", Level.HIGH),
    ("DEFICIENTE", Level.VERY_LOW),
    ("NULA", Level.VERY_LOW),
    ("MALA", Level.VERY_LOW),
    ("REGULAR", Level.LOW),
    ("MEDIANA", Level.LOW),
    ("BUENA", Level.MEDIUM),
    ("BUENO", Level.MEDIUM),
    ("ALTA", Level.MEDIUM),
]


@dataclass(frozen=True)
class CriterionRating:
    """A level assigned to one criterion."""

    criterion_id: str
    level: Union[Level, FieldSafetyLevel]

    @property
    def is_field_safety(self) -> bool:
        return self.criterion_id == FIELD_SAFETY


def is_weighted_criterion(criterion_id: str) -> bool:
    return criterion_id in WEIGHTED_CRITERIA


def parse_level(value: Union[str, Level, None]) -> Optional[Level]:
    """Parse a level name (HIGH/MEDIUM/LOW/VERY_LOW or legacy ALTO/MEDIO/BAJO/MUY_BAJO)."""
    if value is None:
        return None
    if isinstance(value, Level):
        return value
    key = str(value).strip().upper().replace(" ", "_")
    if key in Level.__members__:
        return Level[key]
    return LEGACY_LEVEL_NAMES.get(key)


def parse_field_safety(value: Union[str, FieldSafetyLevel, None]) -> Optional[FieldSafetyLevel]:
    """Parse an A/B/C field-safety rating. Anything else is treated as absent."""
    if value is None:
        return None
    if isinstance(value, FieldSafetyLevel):
        return value
    key = str(value).strip().upper()
    if key in FieldSafetyLevel.__members__:
        return FieldSafetyLevel[key]
    return None


def parse_rating_label(
    criterion_id: str,
    text: Optional[str],
    models: Iterable["EvaluationModel"] = (),
) -> Optional[Level]:
    """Map a persisted rating text back to a level.

    Resolution order:
    1. Level names (HIGH..., ALTO...)
    2. Exact (case-insensitive) match against the labels of every given model
    3. Legacy fragments for the criterion, then generic fragments

    Returns None when the text is empty or unrecognized.
    """
    if not text or not text.strip():
        return None

    direct = parse_level(text)
    if direct is not None:
        return direct

    normalized = text.strip().upper()
    for model in models:
        criterion = model.criteria.get(criterion_id)
        if criterion is None:
            continue
        for level, label in criterion.labels.items():
            if label.upper() == normalized:
                return level

    for fragment, level in _LEGACY_FRAGMENTS.get(criterion_id, []) + _GENERIC_FRAGMENTS:
        if fragment in normalized:
            return level
    return None
