"""Wire schemas for persisted evaluations and relay notifications."""

from supplier_eval.schemas.payload import EvaluationPayload, RelayEnvelope

__all__ = ["EvaluationPayload", "RelayEnvelope"]
