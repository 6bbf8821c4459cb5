"""
Score Calculator - weighted percentage score for a set of criterion ratings.

    score = round(sum(weight_i * value_i(level_i)) / normalizer * 100)

Only weighted criteria with a rating contribute; the field-safety criterion
never does. With no contributing rating the score is undefined (None).

CRITICAL: Pure and deterministic. Arithmetic runs on Decimal built from the
published constants and rounds half-up, so the same ratings always give the
same integer (e.g. when a report is regenerated from persisted ratings).
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from supplier_eval.constants import PERCENT_SCALE
from supplier_eval.scorers.criteria import CriterionRating, Level, parse_level
from supplier_eval.scorers.model_registry import EvaluationModel


@dataclass(frozen=True)
class ScoreTerm:
    """One contributing criterion: weight x value."""

    criterion_id: str
    level: Level
    weight: float
    value: float
    product: float


@dataclass
class ScoreBreakdown:
    """How a score was computed, for display and audit."""

    epoch: str
    terms: list[ScoreTerm] = field(default_factory=list)
    numerator: float = 0.0
    normalizer: float = 0.0
    score_percent: int = 0

    @property
    def formula(self) -> str:
        """Human-readable formula, e.g. '(0.400 × 0.528 + ...) / 0.4493 × 100 ≈ 100%'."""
        products = " + ".join(f"{t.value:.3f} × {t.weight:.3f}" for t in self.terms)
        return f"({products}) / {self.normalizer} × 100 ≈ {self.score_percent}%"


def _contributing_terms(model: EvaluationModel, ratings: Iterable[CriterionRating]) -> list[tuple[ScoreTerm, Decimal]]:
    # Last rating wins when a criterion is rated twice
    latest: dict[str, Level] = {}
    for rating in ratings:
        if rating.is_field_safety:
            continue
        level = parse_level(rating.level)
        if level is None:
            continue
        latest[rating.criterion_id] = level

    terms = []
    for criterion_id, criterion in model.criteria.items():
        level = latest.get(criterion_id)
        if level is None or level not in criterion.values:
            continue
        exact = Decimal(str(criterion.weight)) * Decimal(str(criterion.values[level]))
        term = ScoreTerm(
            criterion_id=criterion_id,
            level=level,
            weight=criterion.weight,
            value=criterion.values[level],
            product=float(exact),
        )
        terms.append((term, exact))
    return terms


def _to_percent(numerator: Decimal, normalizer: float) -> int:
    ratio = numerator / Decimal(str(normalizer)) * PERCENT_SCALE
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_score(model: EvaluationModel, ratings: Iterable[CriterionRating]) -> Optional[int]:
    """Compute the percentage score (0-100) or None when nothing is rated yet."""
    terms = _contributing_terms(model, ratings)
    if not terms:
        return None
    numerator = sum((exact for _, exact in terms), Decimal(0))
    return _to_percent(numerator, model.normalizer)


def explain_score(model: EvaluationModel, ratings: Iterable[CriterionRating]) -> Optional[ScoreBreakdown]:
    """Same computation as compute_score(), keeping every term."""
    terms = _contributing_terms(model, ratings)
    if not terms:
        return None
    numerator = sum((exact for _, exact in terms), Decimal(0))
    return ScoreBreakdown(
        epoch=model.epoch,
        terms=[t for t, _ in terms],
        numerator=float(numerator),
        normalizer=model.normalizer,
        score_percent=_to_percent(numerator, model.normalizer),
    )
