"""Error taxonomy for the evaluation engine.

Only RelayError is ever swallowed (inside the relay boundary); everything
else propagates to the caller.
"""


class SupplierEvalError(Exception):
    """Base class for all evaluation engine errors."""


class ValidationError(SupplierEvalError):
    """Input rejected before any store call (missing supplier, date outside the bound epoch)."""


class PersistenceError(SupplierEvalError):
    """Store read/write/delete failure. The caller may retry."""


class EvaluationNotFoundError(PersistenceError):
    """Requested evaluation record does not exist."""


class RelayError(SupplierEvalError):
    """Notification relay dispatch failure. Logged, never surfaced to the end user."""


class InvalidTransitionError(SupplierEvalError):
    """Lifecycle operation not allowed in the controller's current state."""


class ModelNotFoundError(SupplierEvalError, LookupError):
    """No evaluation model published for the requested epoch or year."""


class ModelConfigError(SupplierEvalError, ValueError):
    """Published model definition violates a registry invariant."""


class PermissionDeniedError(InvalidTransitionError):
    """Acting principal lacks the capability the transition requires."""
