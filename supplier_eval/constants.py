"""
Global constants for supplier evaluation scoring.

Centralizes thresholds and configuration values used by the scorers,
the lifecycle controller and the notification relay.
"""

# Classification thresholds (applied to score_percent / 100)
TIER_A_THRESHOLD = 0.764  # Strictly above -> A
TIER_B_THRESHOLD = 0.5  # At or above (and <= TIER_A_THRESHOLD) -> B

# Tier ranking used by the field-safety override (higher = better)
TIER_RANK = {
    "A": 3,
    "B": 2,
    "C": 1,
}

# Default status texts, shown when a model does not publish its own
DEFAULT_STATUS_TEXTS = {
    "A": "Habilitado para contratación inmediata.",
    "B": "Contratación condicionada al acuerdo de mejoras en los ítems deficientes.",
    "C": "INHABILITADO PARA CONTRATACIÓN.",
}

# Score scale
PERCENT_SCALE = 100
NORMALIZER_TOLERANCE = 1e-9  # Allowed drift between sum(weight * HIGH) and normalizer

# Persistence
EVALUATED_STATUS = "Evaluado"  # Value written to the status column on every save
PROJECT_CODE_PREFIX = "MY-"

# Notification relay
RELAY_EVENT_KIND = "supplier_evaluation"
DEFAULT_RELAY_TIMEOUT_SECONDS = 10.0
