"""Lifecycle controller and its collaborators (permissions, notification relay)."""

from supplier_eval.services.lifecycle import (
    EvaluationForm,
    EvaluationLifecycleController,
    LifecycleState,
    SaveResult,
)
from supplier_eval.services.notification_relay import NotificationRelay
from supplier_eval.services.permissions import Permissions

__all__ = [
    "EvaluationForm",
    "EvaluationLifecycleController",
    "LifecycleState",
    "NotificationRelay",
    "Permissions",
    "SaveResult",
]
