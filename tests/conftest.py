"""Shared fixtures for supplier evaluation tests.

Note: Tests never touch MySQL or the network. The store is an in-memory
fake honoring the same contract as SupplierEvaluationRepository, and the
relay is either a recording fake or NotificationRelay over an
httpx.MockTransport.
"""

import sys
from datetime import date
from pathlib import Path

import pytest

# Add the project root to path so tests can import supplier_eval
sys.path.insert(0, str(Path(__file__).parent.parent))

from supplier_eval.db.repository import EvaluationRecord  # noqa: E402
from supplier_eval.errors import EvaluationNotFoundError, PersistenceError, RelayError  # noqa: E402
from supplier_eval.scorers.model_registry import clear_cache  # noqa: E402
from supplier_eval.services.permissions import Permissions  # noqa: E402


class InMemoryEvaluationStore:
    """Store fake: records every call, can be told to fail reads or writes."""

    def __init__(self):
        self.records: dict[int, EvaluationRecord] = {}
        self.calls: list[tuple[str, object]] = []
        self.fail_writes = False
        self.write_exception: Exception | None = None
        self.read_exception: Exception | None = None
        self._next_id = 1

    def _check_write(self):
        if self.write_exception is not None:
            raise self.write_exception
        if self.fail_writes:
            raise PersistenceError("Simulated store outage")

    def seed(self, **fields) -> EvaluationRecord:
        """Insert a record directly, bypassing the call log."""
        record_id = self._next_id
        self._next_id += 1
        fields.setdefault("supplier_name", "Servicios Andinos SAC")
        record = EvaluationRecord(id=record_id, **fields)
        self.records[record_id] = record
        return record

    def create(self, payload):
        self.calls.append(("create", payload))
        self._check_write()
        return self.seed(**payload.model_dump())

    def update(self, record_id, payload):
        self.calls.append(("update", record_id))
        self._check_write()
        if record_id not in self.records:
            raise EvaluationNotFoundError(f"Evaluation {record_id} not found")
        record = EvaluationRecord(id=record_id, **payload.model_dump())
        self.records[record_id] = record
        return record

    def fetch_by_id(self, record_id):
        self.calls.append(("fetch_by_id", record_id))
        if self.read_exception is not None:
            raise self.read_exception
        return self.records.get(record_id)

    def delete(self, record_id):
        self.calls.append(("delete", record_id))
        self._check_write()
        if self.records.pop(record_id, None) is None:
            raise EvaluationNotFoundError(f"Evaluation {record_id} not found")

    def fetch_all_by_supplier(self, supplier_ref):
        self.calls.append(("fetch_all_by_supplier", supplier_ref))
        matches = [r for r in self.records.values() if supplier_ref in (r.tax_id, r.supplier_name)]
        return sorted(matches, key=lambda r: (r.evaluation_date or date.min, r.id), reverse=True)

    @property
    def write_calls(self) -> list[str]:
        return [name for name, _ in self.calls if name in ("create", "update", "delete")]


class RecordingRelay:
    """Relay fake that keeps every dispatched payload."""

    def __init__(self):
        self.dispatched: list[tuple[object, object]] = []

    def dispatch(self, payload, evaluation_id=None):
        self.dispatched.append((payload, evaluation_id))
        return None


class FailingRelay:
    """Relay fake whose dispatch always raises."""

    def __init__(self):
        self.attempts = 0

    def dispatch(self, payload, evaluation_id=None):
        self.attempts += 1
        raise RelayError("relay endpoint unreachable")


@pytest.fixture(autouse=True)
def fresh_registry(monkeypatch):
    """Load models from the repository YAML and drop the cache between tests."""
    monkeypatch.delenv("SUPPLIER_EVAL_MODELS_PATH", raising=False)
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def store():
    return InMemoryEvaluationStore()


@pytest.fixture
def relay():
    return RecordingRelay()


@pytest.fixture
def failing_relay():
    return FailingRelay()


@pytest.fixture
def full_permissions():
    return Permissions.full()


@pytest.fixture
def view_only_permissions():
    return Permissions(can_view=True)


@pytest.fixture
def stored_2026_record(store):
    """A saved evaluation under the current model (78% -> A)."""
    return store.seed(
        supplier_name="Servicios Andinos SAC",
        tax_id="20100070970",
        contact_email="ventas@andinos.pe",
        evaluation_date=date(2026, 3, 2),
        evaluator="María Quispe",
        project_code="MY-014-2026",
        quality_rating="Óptima",
        availability_rating="A 15 días",
        timeliness_rating="Óptimo",
        price_rating="Gral. mayor precio",
        weighted_score=0.78,
        supplier_tier="A",
        status="Evaluado",
    )


@pytest.fixture
def stored_2025_record(store):
    """A saved evaluation under the 2025 model (all MEDIUM -> 75%, B)."""
    return store.seed(
        supplier_name="Transportes Sur EIRL",
        tax_id="20481234567",
        evaluation_date=date(2025, 8, 14),
        quality_rating="Buena",
        availability_rating="Mediana (+10 días)",
        timeliness_rating="Cumplen la fecha",
        price_rating="Precio de mercado",
        weighted_score=0.75,
        supplier_tier="B",
        status="Evaluado",
    )
