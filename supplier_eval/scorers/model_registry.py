"""Formula Registry - versioned evaluation models.

Each published model (keyed by epoch) defines per-criterion weights, a
level -> value table, the persisted label for each level, and the
normalizer (the weighted sum of a perfect rating set). Models are selected
by the year of the evaluation date so historical records stay reproducible
under the formula that was active when they were evaluated.

Usage:
    from supplier_eval.scorers.model_registry import get_model, resolve_model_for_date

    model = get_model("2025")
    model.criteria["quality"].weight  # 0.528
    resolve_model_for_date(date(2026, 3, 1)).epoch  # "current"
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

import yaml

from supplier_eval.config import get_models_config_path
from supplier_eval.constants import DEFAULT_STATUS_TEXTS, NORMALIZER_TOLERANCE
from supplier_eval.errors import ModelConfigError, ModelNotFoundError
from supplier_eval.scorers.criteria import WEIGHTED_CRITERIA, Level

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CriterionDefinition:
    """Weight, value table and persisted labels for one weighted criterion."""

    id: str
    weight: float
    values: dict[Level, float] = field(default_factory=dict)
    labels: dict[Level, str] = field(default_factory=dict)


@dataclass(frozen=True)
class EvaluationModel:
    """A published, immutable scoring formula."""

    epoch: str
    normalizer: float
    criteria: dict[str, CriterionDefinition]
    description: str = ""
    valid_from_year: Optional[int] = None
    valid_to_year: Optional[int] = None
    status_texts: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_STATUS_TEXTS))

    def covers_year(self, year: int) -> bool:
        if self.valid_from_year is not None and year < self.valid_from_year:
            return False
        if self.valid_to_year is not None and year > self.valid_to_year:
            return False
        return True

    def label_for(self, criterion_id: str, level: Level) -> Optional[str]:
        """Persisted text for a level, or None if the criterion is not part of this model."""
        criterion = self.criteria.get(criterion_id)
        if criterion is None:
            return None
        return criterion.labels.get(level)


# Module-level cache
_registry_cache: Optional[dict] = None


def _load_registry() -> dict:
    """Load and cache model definitions from YAML."""
    global _registry_cache
    if _registry_cache is not None:
        return _registry_cache

    config_path = get_models_config_path()
    if not config_path.exists():
        logger.warning(f"Evaluation models config not found at {config_path}, using default model")
        _registry_cache = _build_default_registry()
        return _registry_cache

    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    _registry_cache = _build_registry(raw)
    logger.info(f"Loaded {len(_registry_cache['models'])} evaluation models (default={_registry_cache['default_epoch']})")
    return _registry_cache


def _build_default_registry() -> dict:
    """Fallback: single open-ended model with equal weights and level names as labels."""
    weight = 1.0 / len(WEIGHTED_CRITERIA)
    values = {Level.HIGH: 1.0, Level.MEDIUM: 0.6, Level.LOW: 0.3, Level.VERY_LOW: 0.0}
    default = EvaluationModel(
        epoch="current",
        description="Default fallback",
        normalizer=1.0,
        criteria={
            cid: CriterionDefinition(id=cid, weight=weight, values=dict(values), labels={lvl: lvl.value for lvl in Level})
            for cid in WEIGHTED_CRITERIA
        },
    )
    validate_model(default)
    return {"models": {default.epoch: default}, "default_epoch": default.epoch}


def _build_registry(raw: dict) -> dict:
    models: dict[str, EvaluationModel] = {}
    for epoch, data in (raw.get("models") or {}).items():
        model = _parse_model(str(epoch), data or {})
        validate_model(model)
        models[model.epoch] = model

    if not models:
        raise ModelConfigError("No evaluation models defined")
    _validate_year_ranges(list(models.values()))

    default_epoch = str(raw.get("default_epoch") or next(reversed(models)))
    if default_epoch not in models:
        raise ModelConfigError(f"Default epoch '{default_epoch}' is not a defined model")

    return {"models": models, "default_epoch": default_epoch}


def _parse_model(epoch: str, data: dict) -> EvaluationModel:
    criteria: dict[str, CriterionDefinition] = {}
    for criterion_id, definition in (data.get("criteria") or {}).items():
        try:
            values = {Level[k]: float(v) for k, v in (definition.get("values") or {}).items()}
            labels = {Level[k]: str(v) for k, v in (definition.get("labels") or {}).items()}
        except KeyError as e:
            raise ModelConfigError(f"Model {epoch} criterion {criterion_id} has unknown level {e}") from e
        criteria[criterion_id] = CriterionDefinition(
            id=criterion_id,
            weight=float(definition.get("weight", 0)),
            values=values,
            labels=labels,
        )

    status_texts = dict(DEFAULT_STATUS_TEXTS)
    status_texts.update({str(k): str(v) for k, v in (data.get("status_texts") or {}).items()})

    return EvaluationModel(
        epoch=epoch,
        description=data.get("description", ""),
        valid_from_year=data.get("valid_from_year"),
        valid_to_year=data.get("valid_to_year"),
        normalizer=float(data.get("normalizer", 0)),
        criteria=criteria,
        status_texts=status_texts,
    )


def validate_model(model: EvaluationModel) -> None:
    """Validate a model's criteria, value tables and normalizer invariant.

    The weighted sum of the HIGH values must equal the normalizer, and HIGH
    must be the strictly best level, so 100% is reachable only by a perfect
    rating set.
    """
    missing = set(WEIGHTED_CRITERIA) - set(model.criteria)
    if missing:
        raise ModelConfigError(f"Model {model.epoch} missing criteria: {sorted(missing)}")
    extra = set(model.criteria) - set(WEIGHTED_CRITERIA)
    if extra:
        raise ModelConfigError(f"Model {model.epoch} has unexpected criteria: {sorted(extra)}")
    if model.normalizer <= 0:
        raise ModelConfigError(f"Model {model.epoch} normalizer must be positive, got {model.normalizer}")

    perfect = Decimal(0)
    for criterion in model.criteria.values():
        if criterion.weight <= 0:
            raise ModelConfigError(f"Model {model.epoch} criterion {criterion.id} weight must be positive")
        if set(criterion.values) != set(Level):
            raise ModelConfigError(f"Model {model.epoch} criterion {criterion.id} must define a value for every level")
        if set(criterion.labels) != set(Level):
            raise ModelConfigError(f"Model {model.epoch} criterion {criterion.id} must define a label for every level")
        high = criterion.values[Level.HIGH]
        if any(v < 0 for v in criterion.values.values()):
            raise ModelConfigError(f"Model {model.epoch} criterion {criterion.id} has negative values")
        if any(v >= high for lvl, v in criterion.values.items() if lvl != Level.HIGH):
            raise ModelConfigError(f"Model {model.epoch} criterion {criterion.id}: HIGH must be the best value")
        perfect += Decimal(str(criterion.weight)) * Decimal(str(high))

    drift = abs(perfect - Decimal(str(model.normalizer)))
    if drift > Decimal(str(NORMALIZER_TOLERANCE)):
        raise ModelConfigError(
            f"Model {model.epoch} normalizer {model.normalizer} does not match perfect weighted sum {perfect}"
        )


def _validate_year_ranges(models: list[EvaluationModel]) -> None:
    """Year ranges must not overlap, so every year resolves to at most one model."""
    for i, a in enumerate(models):
        for b in models[i + 1 :]:
            a_lo = a.valid_from_year if a.valid_from_year is not None else float("-inf")
            a_hi = a.valid_to_year if a.valid_to_year is not None else float("inf")
            b_lo = b.valid_from_year if b.valid_from_year is not None else float("-inf")
            b_hi = b.valid_to_year if b.valid_to_year is not None else float("inf")
            if a_lo <= b_hi and b_lo <= a_hi:
                raise ModelConfigError(f"Models {a.epoch} and {b.epoch} have overlapping year ranges")


def get_model(epoch: str) -> EvaluationModel:
    """Get a published model by epoch."""
    registry = _load_registry()
    model = registry["models"].get(epoch)
    if model is None:
        raise ModelNotFoundError(f"No evaluation model for epoch '{epoch}'")
    return model


def resolve_model_for_year(year: int) -> EvaluationModel:
    """Get the model whose year range contains the given year."""
    registry = _load_registry()
    for model in registry["models"].values():
        if model.covers_year(year):
            return model
    raise ModelNotFoundError(f"No evaluation model covers year {year}")


def resolve_model_for_date(evaluation_date: Optional[date]) -> EvaluationModel:
    """Get the model for an evaluation date. Undated evaluations use the default model."""
    if evaluation_date is None:
        return get_default_model()
    return resolve_model_for_year(evaluation_date.year)


def get_default_model() -> EvaluationModel:
    registry = _load_registry()
    return registry["models"][registry["default_epoch"]]


def list_models() -> list[EvaluationModel]:
    """List all published models in definition order."""
    return list(_load_registry()["models"].values())


def clear_cache():
    """Clear the registry cache (useful for testing)."""
    global _registry_cache
    _registry_cache = None
