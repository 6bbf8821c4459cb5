"""Deterministic scoring modules for supplier evaluations."""

from supplier_eval.scorers.classifier import (
    Evaluation,
    apply_field_safety,
    classify,
    evaluate_ratings,
    status_for_tier,
)
from supplier_eval.scorers.criteria import (
    FIELD_SAFETY,
    WEIGHTED_CRITERIA,
    CriterionRating,
    FieldSafetyLevel,
    Level,
    Tier,
    parse_field_safety,
    parse_rating_label,
)
from supplier_eval.scorers.model_registry import (
    EvaluationModel,
    get_model,
    list_models,
    resolve_model_for_date,
    resolve_model_for_year,
)
from supplier_eval.scorers.score_calculator import ScoreBreakdown, compute_score, explain_score

__all__ = [
    # Catalog
    "CriterionRating",
    "FieldSafetyLevel",
    "Level",
    "Tier",
    "FIELD_SAFETY",
    "WEIGHTED_CRITERIA",
    "parse_field_safety",
    "parse_rating_label",
    # Registry
    "EvaluationModel",
    "get_model",
    "list_models",
    "resolve_model_for_date",
    "resolve_model_for_year",
    # Calculator
    "ScoreBreakdown",
    "compute_score",
    "explain_score",
    # Classifier
    "Evaluation",
    "apply_field_safety",
    "classify",
    "evaluate_ratings",
    "status_for_tier",
]
