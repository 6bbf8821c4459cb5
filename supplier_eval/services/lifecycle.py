"""Record Lifecycle Controller for supplier evaluations.

States:
    CREATING -> SAVING -> VIEWING <-> EDITING -> SAVING -> VIEWING
    EDITING -> DELETED (after request_delete + confirm_delete)

- CREATING: every field mutable, no baseline; save needs a supplier and create capability.
- VIEWING: loaded from the store, read-only, baseline snapshot held.
- EDITING: unlocked by the user; baseline re-snapshotted at unlock. Save needs
  a difference from the baseline and edit capability.
- SAVING: store write in flight. Success -> VIEWING with a new baseline;
  PersistenceError -> back to the pre-save state.

Score and tier are never stored on the controller: derive() recomputes them
from the current ratings every time, with the model resolved from the
evaluation date (or the bound model when the date is empty).

A controller is bound to one model epoch. Saving (or loading) a record dated
after that epoch's last year is rejected before any store call.
"""

import copy
import logging
from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Any, Optional, Union

from supplier_eval.errors import (
    EvaluationNotFoundError,
    InvalidTransitionError,
    PermissionDeniedError,
    PersistenceError,
    ValidationError,
)
from supplier_eval.db.repository import EvaluationRecord, EvaluationStore
from supplier_eval.schemas.payload import EvaluationPayload
from supplier_eval.scorers.classifier import Evaluation, evaluate_ratings
from supplier_eval.scorers.criteria import (
    AVAILABILITY,
    FIELD_SAFETY,
    PRICE,
    QUALITY,
    TIMELINESS,
    CriterionRating,
    FieldSafetyLevel,
    Level,
    is_weighted_criterion,
    parse_field_safety,
    parse_level,
    parse_rating_label,
)
from supplier_eval.scorers.model_registry import (
    EvaluationModel,
    get_model,
    list_models,
    resolve_model_for_date,
)
from supplier_eval.services.notification_relay import NotificationRelay
from supplier_eval.services.permissions import Permissions
from supplier_eval.utils.logger import format_fields
from supplier_eval.utils.project_codes import normalize_project_code

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    CREATING = "creating"
    VIEWING = "viewing"
    EDITING = "editing"
    SAVING = "saving"
    DELETED = "deleted"


_MUTABLE_STATES = (LifecycleState.CREATING, LifecycleState.EDITING)

# Payload column for each weighted criterion's textual rating
_RATING_COLUMNS = {
    QUALITY: "quality_rating",
    AVAILABILITY: "availability_rating",
    TIMELINESS: "timeliness_rating",
    PRICE: "price_rating",
}


@dataclass
class EvaluationForm:
    """Editable inputs of one evaluation. Derived score/tier are not part of it."""

    supplier_name: Optional[str] = None
    tax_id: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    specialty: Optional[str] = None
    activity: Optional[str] = None
    purchase_order: Optional[str] = None
    project_code: Optional[str] = None
    project_name: Optional[str] = None
    project_lead: Optional[str] = None
    project_manager: Optional[str] = None
    service_price: float = 0.0
    executed_service_link: Optional[str] = None
    evaluation_date: Optional[date] = None
    evaluator: Optional[str] = None
    observations: Optional[str] = None
    ratings: dict[str, Level] = field(default_factory=dict)
    field_work_applies: bool = False
    field_safety_rating: Optional[FieldSafetyLevel] = None

    @classmethod
    def scalar_fields(cls) -> tuple[str, ...]:
        """Names settable through set_field()."""
        return tuple(f.name for f in fields(cls) if f.name not in ("ratings", "field_work_applies", "field_safety_rating"))

    def snapshot(self) -> "EvaluationForm":
        return copy.deepcopy(self)

    def criterion_ratings(self) -> list[CriterionRating]:
        ratings = [CriterionRating(cid, level) for cid, level in self.ratings.items()]
        if self.field_work_applies and self.field_safety_rating is not None:
            ratings.append(CriterionRating(FIELD_SAFETY, self.field_safety_rating))
        return ratings

    @classmethod
    def from_record(cls, record: EvaluationRecord, models: list[EvaluationModel]) -> "EvaluationForm":
        """Rebuild the form from a stored row, mapping rating texts back to levels."""
        ratings: dict[str, Level] = {}
        for criterion_id, column in _RATING_COLUMNS.items():
            level = parse_rating_label(criterion_id, getattr(record, column), models)
            if level is not None:
                ratings[criterion_id] = level

        field_work = bool(record.field_work_applies)
        return cls(
            supplier_name=record.supplier_name,
            tax_id=record.tax_id,
            contact_name=record.contact_name or _contact_from_email(record.contact_email),
            contact_email=record.contact_email,
            specialty=record.specialty,
            activity=record.activity,
            purchase_order=record.purchase_order,
            project_code=record.project_code,
            project_name=record.project_name,
            project_lead=record.project_lead,
            project_manager=record.project_manager,
            service_price=record.service_price or 0.0,
            executed_service_link=record.executed_service_link,
            evaluation_date=record.evaluation_date,
            evaluator=record.evaluator,
            observations=record.observations,
            ratings=ratings,
            field_work_applies=field_work,
            field_safety_rating=parse_field_safety(record.field_safety_rating) if field_work else None,
        )


def _contact_from_email(email: Optional[str]) -> Optional[str]:
    if not email or "@" not in email:
        return None
    return email.split("@")[0]


@dataclass(frozen=True)
class SaveResult:
    """Outcome of a committed save."""

    record_id: Union[int, str]
    created: bool
    payload: EvaluationPayload
    evaluation: Evaluation


class EvaluationLifecycleController:
    """Governs create/view/edit/save/delete for one evaluation record."""

    def __init__(
        self,
        store: EvaluationStore,
        permissions: Permissions,
        epoch: Union[str, EvaluationModel] = "current",
        relay: Optional[NotificationRelay] = None,
    ):
        """
        Args:
            store: Persistent store implementing the evaluation store contract
            permissions: Capability flags of the acting principal
            epoch: Model epoch (or model) this controller is bound to
            relay: Optional notification relay, called after committed saves
        """
        self.store = store
        self.permissions = permissions
        self.bound_model = epoch if isinstance(epoch, EvaluationModel) else get_model(epoch)
        self.relay = relay
        self.start_new()

    # ------------------------------------------------------------------
    # State entry points
    # ------------------------------------------------------------------

    def start_new(self):
        """Begin a new evaluation (CREATING)."""
        self.state = LifecycleState.CREATING
        self.record_id: Optional[Union[int, str]] = None
        self._form = EvaluationForm()
        self._baseline: Optional[EvaluationForm] = None
        self._delete_requested = False

    def load(self, record_id: Union[int, str]):
        """Load a stored evaluation read-only (VIEWING)."""
        if not self.permissions.can_view:
            raise PermissionDeniedError("View permission required to open an evaluation")

        try:
            record = self.store.fetch_by_id(record_id)
        except PersistenceError:
            logger.error(format_fields("Evaluation load failed", id=record_id), exc_info=True)
            raise
        except Exception as e:
            logger.error(format_fields("Evaluation load failed", id=record_id), exc_info=True)
            raise PersistenceError(f"Store read failed: {e}") from e
        if record is None:
            raise EvaluationNotFoundError(f"Evaluation {record_id} not found")
        self._check_epoch(record.evaluation_date)

        # Everything that can raise happens before the controller state changes
        form = EvaluationForm.from_record(record, list_models())
        model = self.bound_model if record.evaluation_date is None else resolve_model_for_date(record.evaluation_date)

        self._form = form
        self._baseline = form.snapshot()
        self.record_id = record.id
        self._delete_requested = False
        self.state = LifecycleState.VIEWING
        logger.debug(format_fields("Loaded evaluation", id=record.id, epoch=model.epoch))

    def unlock(self):
        """Switch a loaded evaluation to EDITING, re-snapshotting the baseline."""
        if self.state != LifecycleState.VIEWING:
            raise InvalidTransitionError(f"Cannot unlock from state {self.state.value}")
        if not self.permissions.can_edit:
            raise PermissionDeniedError("Edit permission required to unlock an evaluation")
        self._baseline = self._form.snapshot()
        self.state = LifecycleState.EDITING

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _require_mutable(self):
        if self.state not in _MUTABLE_STATES:
            raise InvalidTransitionError(f"Evaluation is read-only in state {self.state.value}")

    def set_field(self, name: str, value: Any):
        """Set a scalar field."""
        self._require_mutable()
        if name not in EvaluationForm.scalar_fields():
            raise ValueError(f"Unknown evaluation field: {name}")
        if name == "evaluation_date" and isinstance(value, str):
            value = date.fromisoformat(value) if value else None
        elif name == "service_price":
            value = float(value or 0)
        elif isinstance(value, str) and not value.strip():
            value = None
        setattr(self._form, name, value)

    def set_rating(self, criterion_id: str, level: Union[Level, FieldSafetyLevel, str]):
        """Rate a weighted criterion (or the field-safety criterion)."""
        self._require_mutable()
        if criterion_id == FIELD_SAFETY:
            self.set_field_work(True, level)
            return
        if not is_weighted_criterion(criterion_id):
            raise ValueError(f"Unknown criterion: {criterion_id}")
        parsed = parse_level(level)
        if parsed is None:
            raise ValueError(f"Invalid level for {criterion_id}: {level}")
        self._form.ratings[criterion_id] = parsed

    def clear_rating(self, criterion_id: str):
        self._require_mutable()
        if criterion_id == FIELD_SAFETY:
            self._form.field_safety_rating = None
        else:
            self._form.ratings.pop(criterion_id, None)

    def set_field_work(self, applies: bool, level: Union[FieldSafetyLevel, str, None] = None):
        """Toggle field work. Turning it off drops the field-safety rating."""
        self._require_mutable()
        self._form.field_work_applies = applies
        if not applies:
            self._form.field_safety_rating = None
            return
        if level is not None:
            parsed = parse_field_safety(level)
            if parsed is None:
                raise ValueError(f"Invalid field-safety rating: {level}")
            self._form.field_safety_rating = parsed

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def form(self) -> EvaluationForm:
        """Copy of the current inputs."""
        return self._form.snapshot()

    @property
    def active_model(self) -> EvaluationModel:
        """Model for the current evaluation date (bound model when undated)."""
        if self._form.evaluation_date is None:
            return self.bound_model
        return resolve_model_for_date(self._form.evaluation_date)

    def derive(self) -> Evaluation:
        """Recompute score, tier and status from the current ratings."""
        return evaluate_ratings(self.active_model, self._form.criterion_ratings())

    @property
    def is_dirty(self) -> bool:
        if self.state == LifecycleState.CREATING:
            return True
        if self.state != LifecycleState.EDITING:
            return False
        return self._form != self._baseline

    @property
    def can_save(self) -> bool:
        if self.state == LifecycleState.CREATING:
            return bool(self._form.supplier_name) and self.permissions.can_create
        if self.state == LifecycleState.EDITING:
            return self.is_dirty and self.permissions.can_edit
        return False

    @property
    def delete_requested(self) -> bool:
        return self._delete_requested

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def _check_epoch(self, evaluation_date: Optional[date]):
        last_year = self.bound_model.valid_to_year
        if evaluation_date is None or last_year is None:
            return
        if evaluation_date.year > last_year:
            raise ValidationError(
                f"Model {self.bound_model.epoch} only accepts evaluations dated {last_year} or earlier; "
                f"got {evaluation_date.year}"
            )

    def validate(self):
        """Raise ValidationError for input that must never reach the store."""
        if not self._form.supplier_name:
            raise ValidationError("A supplier must be selected")
        self._check_epoch(self._form.evaluation_date)

    def build_payload(self) -> EvaluationPayload:
        """Persistence payload for the current inputs, with derived score and tier."""
        form = self._form
        model = self.active_model
        evaluation = evaluate_ratings(model, form.criterion_ratings())

        ratings = {
            column: model.label_for(criterion_id, form.ratings[criterion_id]) if criterion_id in form.ratings else None
            for criterion_id, column in _RATING_COLUMNS.items()
        }
        field_safety = form.field_safety_rating if form.field_work_applies else None

        return EvaluationPayload(
            supplier_name=form.supplier_name,
            tax_id=form.tax_id,
            contact_name=form.contact_name,
            contact_email=form.contact_email,
            specialty=form.specialty,
            activity=form.activity,
            purchase_order=form.purchase_order,
            project_code=normalize_project_code(form.project_code),
            project_name=form.project_name,
            project_lead=form.project_lead,
            project_manager=form.project_manager,
            service_price=form.service_price if form.service_price > 0 else None,
            executed_service_link=form.executed_service_link,
            evaluation_date=form.evaluation_date,
            evaluator=form.evaluator,
            observations=form.observations,
            weighted_score=evaluation.score_fraction,
            supplier_tier=evaluation.tier.value if evaluation.tier else None,
            field_work_applies=form.field_work_applies,
            field_safety_rating=field_safety.value if field_safety else None,
            **ratings,
        )

    def save(self) -> SaveResult:
        """Validate, write to the store, return to VIEWING and notify the relay.

        Raises:
            ValidationError: missing supplier or date outside the bound epoch (nothing persisted)
            PermissionDeniedError: principal may not create/edit
            InvalidTransitionError: not in a savable state, or nothing changed
            PersistenceError: store write failed (state unchanged, safe to retry)
        """
        if self.state not in _MUTABLE_STATES:
            raise InvalidTransitionError(f"Cannot save from state {self.state.value}")
        self.validate()

        creating = self.state == LifecycleState.CREATING
        if creating and not self.permissions.can_create:
            raise PermissionDeniedError("Create permission required to save a new evaluation")
        if not creating and not self.permissions.can_edit:
            raise PermissionDeniedError("Edit permission required to save changes")
        if not self.is_dirty:
            raise InvalidTransitionError("No changes to save")

        previous_state = self.state
        payload = self.build_payload()
        evaluation = self.derive()
        self.state = LifecycleState.SAVING
        try:
            if creating:
                stored = self.store.create(payload)
            else:
                stored = self.store.update(self.record_id, payload)
        except PersistenceError:
            self.state = previous_state
            logger.error(format_fields("Evaluation save failed", id=self.record_id), exc_info=True)
            raise
        except Exception as e:
            self.state = previous_state
            logger.error(format_fields("Evaluation save failed", id=self.record_id), exc_info=True)
            raise PersistenceError(f"Store write failed: {e}") from e

        self.record_id = stored.id
        self._baseline = self._form.snapshot()
        self._delete_requested = False
        self.state = LifecycleState.VIEWING
        logger.info(
            format_fields(
                "Evaluation saved",
                id=stored.id,
                created=creating,
                epoch=self.active_model.epoch,
                score=evaluation.score_percent,
                tier=payload.supplier_tier,
            )
        )

        self._notify(payload, stored.id)
        return SaveResult(record_id=stored.id, created=creating, payload=payload, evaluation=evaluation)

    def _notify(self, payload: EvaluationPayload, record_id: Union[int, str]):
        # Best effort: the save is already committed
        if self.relay is None:
            return
        try:
            self.relay.dispatch(payload, record_id)
        except Exception as e:
            logger.warning(format_fields("Relay dispatch failed, save kept", id=record_id, error=e))

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def request_delete(self):
        """First step of deletion; only while EDITING a stored record."""
        if self.state != LifecycleState.EDITING or self.record_id is None:
            raise InvalidTransitionError(f"Cannot delete from state {self.state.value}")
        if not self.permissions.can_delete:
            raise PermissionDeniedError("Delete permission required")
        self._delete_requested = True

    def cancel_delete(self):
        self._delete_requested = False

    def confirm_delete(self) -> bool:
        """Second step of deletion. Returns True once the record is gone (DELETED)."""
        if not self._delete_requested:
            raise InvalidTransitionError("Delete must be requested before it is confirmed")
        if self.state != LifecycleState.EDITING:
            raise InvalidTransitionError(f"Cannot delete from state {self.state.value}")

        try:
            self.store.delete(self.record_id)
        except PersistenceError:
            self._delete_requested = False
            logger.error(format_fields("Evaluation delete failed", id=self.record_id), exc_info=True)
            raise
        except Exception as e:
            self._delete_requested = False
            logger.error(format_fields("Evaluation delete failed", id=self.record_id), exc_info=True)
            raise PersistenceError(f"Store delete failed: {e}") from e

        logger.info(format_fields("Evaluation deleted", id=self.record_id))
        self._delete_requested = False
        self.state = LifecycleState.DELETED
        return True
