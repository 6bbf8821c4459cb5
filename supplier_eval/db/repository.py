"""Data access for stored supplier evaluations.

Implements the store contract consumed by the lifecycle controller:
create, update, fetch_by_id, delete and fetch_all_by_supplier.
Driver errors surface as PersistenceError; nothing else is caught here.
"""

from contextlib import contextmanager
from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterator, Optional, Protocol, Union

import pymysql

from supplier_eval.errors import EvaluationNotFoundError, PersistenceError
from supplier_eval.schemas.payload import EvaluationPayload

from .client import execute_insert, execute_query, execute_write


@dataclass
class EvaluationRecord:
    """Stored evaluation row."""

    id: int
    supplier_name: str
    tax_id: str | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    specialty: str | None = None
    activity: str | None = None
    purchase_order: str | None = None
    project_code: str | None = None
    project_name: str | None = None
    project_lead: str | None = None
    project_manager: str | None = None
    service_price: float | None = None
    executed_service_link: str | None = None
    evaluation_date: date | None = None
    evaluator: str | None = None
    quality_rating: str | None = None
    availability_rating: str | None = None
    timeliness_rating: str | None = None
    price_rating: str | None = None
    weighted_score: float | None = None  # 0-1 fraction
    supplier_tier: str | None = None  # 'A', 'B', 'C'
    observations: str | None = None
    field_work_applies: bool = False
    field_safety_rating: str | None = None  # 'A', 'B', 'C'
    status: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict) -> "EvaluationRecord":
        """Build a record from a DB row, ignoring unknown columns."""
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in row.items() if k in known}
        for key in ("service_price", "weighted_score"):
            if isinstance(data.get(key), Decimal):
                data[key] = float(data[key])
        if isinstance(data.get("evaluation_date"), datetime):
            data["evaluation_date"] = data["evaluation_date"].date()
        elif isinstance(data.get("evaluation_date"), str):
            data["evaluation_date"] = date.fromisoformat(data["evaluation_date"][:10])
        data["field_work_applies"] = bool(data.get("field_work_applies") or False)
        return cls(**data)


class EvaluationStore(Protocol):
    """Store contract used by the lifecycle controller."""

    def create(self, payload: EvaluationPayload) -> EvaluationRecord: ...

    def update(self, record_id: int, payload: EvaluationPayload) -> EvaluationRecord: ...

    def fetch_by_id(self, record_id: int) -> Optional[EvaluationRecord]: ...

    def delete(self, record_id: int) -> None: ...

    def fetch_all_by_supplier(self, supplier_ref: str) -> list[EvaluationRecord]: ...


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except pymysql.MySQLError as e:
        raise PersistenceError(f"Failed to {action}: {e}") from e


class SupplierEvaluationRepository:
    """supplier_evaluations table operations."""

    TABLE = "supplier_evaluations"

    # Columns that can be inserted/updated
    COLUMNS = list(EvaluationPayload.model_fields)

    def _prepare(self, payload: Union[EvaluationPayload, dict]) -> dict[str, Any]:
        data = payload.model_dump() if isinstance(payload, EvaluationPayload) else dict(payload)
        # Filter to known columns only (prevents SQL injection via dict keys)
        data = {k: v for k, v in data.items() if k in self.COLUMNS}
        if not data.get("supplier_name"):
            raise ValueError("supplier_name is required for an evaluation write")
        return data

    def create(self, payload: Union[EvaluationPayload, dict]) -> EvaluationRecord:
        """Insert an evaluation and return the stored row."""
        data = self._prepare(payload)
        columns = list(data.keys())
        placeholders = ", ".join(["%s"] * len(columns))
        sql = f"INSERT INTO {self.TABLE} ({', '.join(f'`{c}`' for c in columns)}) VALUES ({placeholders})"

        with _store_errors("create evaluation"):
            record_id = execute_insert(sql, tuple(data.values()))
        record = self.fetch_by_id(record_id)
        if record is None:
            raise PersistenceError(f"Evaluation {record_id} not readable after insert")
        return record

    def update(self, record_id: int, payload: Union[EvaluationPayload, dict]) -> EvaluationRecord:
        """Replace an evaluation's fields and return the stored row."""
        data = self._prepare(payload)
        set_clause = ", ".join(f"`{col}` = %s" for col in data)
        sql = f"UPDATE {self.TABLE} SET {set_clause}, updated_at = CURRENT_TIMESTAMP WHERE id = %s"

        with _store_errors(f"update evaluation {record_id}"):
            execute_write(sql, (*data.values(), record_id))
        record = self.fetch_by_id(record_id)
        if record is None:
            raise EvaluationNotFoundError(f"Evaluation {record_id} not found")
        return record

    def fetch_by_id(self, record_id: int) -> Optional[EvaluationRecord]:
        """Get an evaluation by id."""
        with _store_errors(f"fetch evaluation {record_id}"):
            row = execute_query(f"SELECT * FROM {self.TABLE} WHERE id = %s", (record_id,), fetch="one")
        return EvaluationRecord.from_row(row) if row else None

    def delete(self, record_id: int) -> None:
        """Delete an evaluation."""
        with _store_errors(f"delete evaluation {record_id}"):
            affected = execute_write(f"DELETE FROM {self.TABLE} WHERE id = %s", (record_id,))
        if not affected:
            raise EvaluationNotFoundError(f"Evaluation {record_id} not found")

    def fetch_all_by_supplier(self, supplier_ref: str) -> list[EvaluationRecord]:
        """Get all evaluations of a supplier (by tax id or name), newest first."""
        with _store_errors(f"fetch evaluations for supplier {supplier_ref}"):
            rows = (
                execute_query(
                    f"SELECT * FROM {self.TABLE} WHERE tax_id = %s OR supplier_name = %s "
                    "ORDER BY evaluation_date DESC, id DESC",
                    (supplier_ref, supplier_ref),
                )
                or []
            )
        return [EvaluationRecord.from_row(r) for r in rows]
