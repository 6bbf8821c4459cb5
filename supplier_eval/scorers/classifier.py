"""Tier classification and field-safety override.

Thresholds on c = score_percent / 100:
- A: c > 0.764
- B: 0.5 <= c <= 0.764
- C: otherwise

The boundary 0.764 belongs to B. Integer scores therefore split at 76 (B) / 77 (A).

The field-safety rating can only downgrade: the final tier is the worse of
the weighted tier and the field-safety rating.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Union

from supplier_eval.constants import (
    DEFAULT_STATUS_TEXTS,
    PERCENT_SCALE,
    TIER_A_THRESHOLD,
    TIER_B_THRESHOLD,
    TIER_RANK,
)
from supplier_eval.scorers.criteria import CriterionRating, FieldSafetyLevel, Tier, parse_field_safety
from supplier_eval.scorers.model_registry import EvaluationModel
from supplier_eval.scorers.score_calculator import compute_score

_A_THRESHOLD = Decimal(str(TIER_A_THRESHOLD))
_B_THRESHOLD = Decimal(str(TIER_B_THRESHOLD))


@dataclass(frozen=True)
class Evaluation:
    """Derived result for a rating set. All fields are None until something is rated."""

    score_percent: Optional[int]
    base_tier: Optional[Tier]
    tier: Optional[Tier]
    status: Optional[str]

    @property
    def score_fraction(self) -> Optional[float]:
        """Score as the persisted 0-1 fraction (2 decimals)."""
        if self.score_percent is None:
            return None
        return round(self.score_percent / PERCENT_SCALE, 2)


def classify(score_percent: Union[int, float]) -> Tier:
    """Map a percentage score to a tier."""
    compliance = Decimal(str(score_percent)) / PERCENT_SCALE
    if compliance > _A_THRESHOLD:
        return Tier.A
    if compliance >= _B_THRESHOLD:
        return Tier.B
    return Tier.C


def apply_field_safety(
    base_tier: Union[Tier, str],
    field_level: Union[FieldSafetyLevel, str, None] = None,
) -> Tier:
    """Downgrade the tier to the field-safety rating when that rating is worse."""
    base = Tier(base_tier)
    field_safety = parse_field_safety(field_level)
    if field_safety is None:
        return base
    if TIER_RANK[field_safety.value] < TIER_RANK[base.value]:
        return Tier(field_safety.value)
    return base


def status_for_tier(tier: Union[Tier, str, None], model: Optional[EvaluationModel] = None) -> Optional[str]:
    """Display status for a tier, using the model's published texts when given."""
    if tier is None:
        return None
    key = Tier(tier).value
    if model is not None and key in model.status_texts:
        return model.status_texts[key]
    return DEFAULT_STATUS_TEXTS[key]


def evaluate_ratings(
    model: EvaluationModel,
    ratings: Iterable[CriterionRating],
    field_level: Union[FieldSafetyLevel, str, None] = None,
) -> Evaluation:
    """Derive score, weighted tier, final tier and status in one step.

    The field-safety level may be passed explicitly or as a field_safety rating.
    """
    ratings = list(ratings)
    if field_level is None:
        field_level = next((r.level for r in ratings if r.is_field_safety), None)
    score = compute_score(model, ratings)
    if score is None:
        return Evaluation(score_percent=None, base_tier=None, tier=None, status=None)
    base_tier = classify(score)
    tier = apply_field_safety(base_tier, field_level)
    return Evaluation(
        score_percent=score,
        base_tier=base_tier,
        tier=tier,
        status=status_for_tier(tier, model),
    )
