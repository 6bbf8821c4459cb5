"""Pydantic schemas for the persistence payload and the relay envelope.

The payload is what the store writes and what the relay forwards: ratings
are stored as the model's textual label, the score as a 0-1 fraction and
the tier as its letter.
"""

from datetime import date, datetime, timezone
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from supplier_eval.constants import EVALUATED_STATUS, RELAY_EVENT_KIND

TierLetter = Literal["A", "B", "C"]


class EvaluationPayload(BaseModel):
    """Field set written to the store on every save."""

    # Supplier & contact
    supplier_name: str = Field(min_length=1, description="Supplier display name")
    tax_id: Optional[str] = Field(default=None, description="Supplier tax identifier")
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    specialty: Optional[str] = None

    # Service & project
    activity: Optional[str] = Field(default=None, description="Description of the evaluated service")
    purchase_order: Optional[str] = None
    project_code: Optional[str] = Field(default=None, description="Normalized MY-XXX-YYYY code")
    project_name: Optional[str] = None
    project_lead: Optional[str] = None
    project_manager: Optional[str] = None
    service_price: Optional[float] = Field(default=None, gt=0)
    executed_service_link: Optional[str] = None

    # Evaluation
    evaluation_date: Optional[date] = None
    evaluator: Optional[str] = None
    quality_rating: Optional[str] = None
    availability_rating: Optional[str] = None
    timeliness_rating: Optional[str] = None
    price_rating: Optional[str] = None
    weighted_score: Optional[float] = Field(default=None, ge=0, le=1, description="Score as a 0-1 fraction")
    supplier_tier: Optional[TierLetter] = None
    observations: Optional[str] = None
    field_work_applies: bool = False
    field_safety_rating: Optional[TierLetter] = None
    status: str = EVALUATED_STATUS


class RelayEnvelope(BaseModel):
    """Notification sent to the relay after a committed save."""

    kind: str = RELAY_EVENT_KIND
    sent_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    evaluation: EvaluationPayload
    evaluation_id: Optional[Union[int, str]] = None
