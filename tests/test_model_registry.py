"""Tests for the formula registry - versioned models selected by evaluation year."""

from dataclasses import replace
from datetime import date

import pytest
from supplier_eval.errors import ModelConfigError, ModelNotFoundError
from supplier_eval.scorers.criteria import PRICE, QUALITY, Level
from supplier_eval.scorers.model_registry import (
    CriterionDefinition,
    get_default_model,
    get_model,
    list_models,
    resolve_model_for_date,
    resolve_model_for_year,
    validate_model,
)

_VALID_YAML = """
default_epoch: v2
models:
  v1:
    valid_to_year: 2020
    normalizer: 1.0
    criteria:
      quality: {weight: 0.25, values: {HIGH: 1.0, MEDIUM: 0.5, LOW: 0.2, VERY_LOW: 0.0}, labels: {HIGH: H, MEDIUM: M, LOW: L, VERY_LOW: V}}
      availability: {weight: 0.25, values: {HIGH: 1.0, MEDIUM: 0.5, LOW: 0.2, VERY_LOW: 0.0}, labels: {HIGH: H, MEDIUM: M, LOW: L, VERY_LOW: V}}
      timeliness: {weight: 0.25, values: {HIGH: 1.0, MEDIUM: 0.5, LOW: 0.2, VERY_LOW: 0.0}, labels: {HIGH: H, MEDIUM: M, LOW: L, VERY_LOW: V}}
      price: {weight: 0.25, values: {HIGH: 1.0, MEDIUM: 0.5, LOW: 0.2, VERY_LOW: 0.0}, labels: {HIGH: H, MEDIUM: M, LOW: L, VERY_LOW: V}}
  v2:
    valid_from_year: {v2_from}
    normalizer: {v2_normalizer}
    criteria:
      quality: {weight: 0.25, values: {HIGH: 1.0, MEDIUM: 0.5, LOW: 0.2, VERY_LOW: 0.0}, labels: {HIGH: H, MEDIUM: M, LOW: L, VERY_LOW: V}}
      availability: {weight: 0.25, values: {HIGH: 1.0, MEDIUM: 0.5, LOW: 0.2, VERY_LOW: 0.0}, labels: {HIGH: H, MEDIUM: M, LOW: L, VERY_LOW: V}}
      timeliness: {weight: 0.25, values: {HIGH: 1.0, MEDIUM: 0.5, LOW: 0.2, VERY_LOW: 0.0}, labels: {HIGH: H, MEDIUM: M, LOW: L, VERY_LOW: V}}
      price: {weight: 0.25, values: {HIGH: 1.0, MEDIUM: 0.5, LOW: 0.2, VERY_LOW: 0.0}, labels: {HIGH: H, MEDIUM: M, LOW: L, VERY_LOW: V}}
"""


def _write_models(tmp_path, monkeypatch, v2_from=2021, v2_normalizer=1.0):
    path = tmp_path / "models.yaml"
    text = _VALID_YAML.replace("{v2_from}", str(v2_from)).replace("{v2_normalizer}", str(v2_normalizer))
    path.write_text(text, encoding="utf-8")
    monkeypatch.setenv("SUPPLIER_EVAL_MODELS_PATH", str(path))
    return path


# ─── Published models ────────────────────────────────────────────────────────


class TestPublishedModels:
    """The two models shipped in config/evaluation_models.yaml."""

    def test_lists_both_epochs(self):
        assert [m.epoch for m in list_models()] == ["2025", "current"]

    def test_2025_constants(self):
        model = get_model("2025")
        assert model.normalizer == 0.4493
        assert model.criteria[QUALITY].weight == 0.528
        assert model.criteria[PRICE].values[Level.HIGH] == 0.51
        assert model.valid_to_year == 2025

    def test_current_constants(self):
        model = get_model("current")
        assert model.normalizer == 1.0
        assert sum(c.weight for c in model.criteria.values()) == pytest.approx(1.0)
        assert model.valid_from_year == 2026

    def test_default_model(self):
        assert get_default_model().epoch == "current"

    def test_labels(self):
        assert get_model("2025").label_for(QUALITY, Level.HIGH) == "Sobresaliente"
        assert get_model("current").label_for(QUALITY, Level.HIGH) == "Óptima"

    def test_label_for_unknown_criterion(self):
        assert get_model("current").label_for("field_safety", Level.HIGH) is None

    def test_unknown_epoch(self):
        with pytest.raises(ModelNotFoundError):
            get_model("1999")

    def test_models_validate(self):
        for model in list_models():
            validate_model(model)


class TestResolution:
    """Model selection by evaluation year."""

    @pytest.mark.parametrize(
        "year,epoch",
        [(2019, "2025"), (2025, "2025"), (2026, "current"), (2040, "current")],
    )
    def test_by_year(self, year, epoch):
        assert resolve_model_for_year(year).epoch == epoch

    def test_by_date(self):
        assert resolve_model_for_date(date(2025, 12, 31)).epoch == "2025"
        assert resolve_model_for_date(date(2026, 1, 1)).epoch == "current"

    def test_undated_uses_default(self):
        assert resolve_model_for_date(None).epoch == "current"


# ─── validate_model ──────────────────────────────────────────────────────────


class TestValidateModel:
    """Invariant: sum(weight × HIGH) == normalizer."""

    def test_normalizer_mismatch(self):
        model = replace(get_model("current"), normalizer=0.9)
        with pytest.raises(ModelConfigError, match="normalizer"):
            validate_model(model)

    def test_missing_criterion(self):
        base = get_model("current")
        criteria = {k: v for k, v in base.criteria.items() if k != PRICE}
        with pytest.raises(ModelConfigError, match="missing criteria"):
            validate_model(replace(base, criteria=criteria))

    def test_high_must_be_best(self):
        base = get_model("current")
        quality = base.criteria[QUALITY]
        values = dict(quality.values)
        values[Level.MEDIUM] = 1.0
        criteria = dict(base.criteria)
        criteria[QUALITY] = CriterionDefinition(id=QUALITY, weight=quality.weight, values=values, labels=quality.labels)
        with pytest.raises(ModelConfigError, match="HIGH"):
            validate_model(replace(base, criteria=criteria))


# ─── Loading ─────────────────────────────────────────────────────────────────


class TestLoading:
    """YAML loading, fallback and configuration errors."""

    def test_custom_yaml(self, tmp_path, monkeypatch):
        _write_models(tmp_path, monkeypatch)
        assert [m.epoch for m in list_models()] == ["v1", "v2"]
        assert get_default_model().epoch == "v2"
        assert resolve_model_for_year(2020).epoch == "v1"

    def test_missing_file_uses_single_default_model(self, tmp_path, monkeypatch):
        """Without the YAML only one open-ended fallback model exists."""
        monkeypatch.setenv("SUPPLIER_EVAL_MODELS_PATH", str(tmp_path / "absent.yaml"))
        assert [m.epoch for m in list_models()] == ["current"]
        model = get_default_model()
        assert model.description == "Default fallback"
        assert resolve_model_for_year(2019) is model
        assert model.label_for(QUALITY, Level.HIGH) == "HIGH"
        with pytest.raises(ModelNotFoundError):
            get_model("2025")

    def test_default_model_scores_perfect_set_at_100(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SUPPLIER_EVAL_MODELS_PATH", str(tmp_path / "absent.yaml"))
        validate_model(get_default_model())

    def test_overlapping_years_rejected(self, tmp_path, monkeypatch):
        _write_models(tmp_path, monkeypatch, v2_from=2020)
        with pytest.raises(ModelConfigError, match="overlapping"):
            list_models()

    def test_bad_normalizer_rejected(self, tmp_path, monkeypatch):
        _write_models(tmp_path, monkeypatch, v2_normalizer=0.8)
        with pytest.raises(ModelConfigError):
            get_model("v2")

    def test_year_gap_has_no_model(self, tmp_path, monkeypatch):
        _write_models(tmp_path, monkeypatch, v2_from=2023)
        with pytest.raises(ModelNotFoundError):
            resolve_model_for_year(2022)
