"""Evaluation store: MySQL client and repository.

Provides:
- Thread-local connection reuse (MySQL protocol via PyMySQL)
- Repository implementing the evaluation store contract
"""

from .client import check_connection, execute_insert, execute_query, execute_write, get_connection, get_cursor
from .repository import EvaluationRecord, EvaluationStore, SupplierEvaluationRepository

__all__ = [
    # Client
    "get_connection",
    "get_cursor",
    "execute_query",
    "execute_insert",
    "execute_write",
    "check_connection",
    # Records
    "EvaluationRecord",
    "EvaluationStore",
    # Repositories
    "SupplierEvaluationRepository",
]
