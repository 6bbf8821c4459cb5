"""Tests for the notification relay over httpx.MockTransport."""

import json
from datetime import date

import httpx
import pytest
from supplier_eval.errors import RelayError
from supplier_eval.schemas.payload import EvaluationPayload
from supplier_eval.services.notification_relay import NotificationRelay

RELAY_URL = "https://relay.example.test/hooks/evaluations"

# ─── Helpers ──────────────────────────────────────────────────────────────────


def _payload(**overrides) -> EvaluationPayload:
    defaults = dict(
        supplier_name="Servicios Andinos SAC",
        tax_id="20100070970",
        evaluation_date=date(2026, 3, 2),
        quality_rating="Óptima",
        weighted_score=0.78,
        supplier_tier="A",
    )
    defaults.update(overrides)
    return EvaluationPayload(**defaults)


def _relay(handler, requests=None) -> NotificationRelay:
    """Relay whose HTTP client answers with the given handler."""

    def recording_handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    client = httpx.Client(transport=httpx.MockTransport(recording_handler))
    return NotificationRelay(url=RELAY_URL, timeout=2.0, client=client)


# ─── send ────────────────────────────────────────────────────────────────────


class TestSend:
    def test_posts_envelope(self):
        requests = []
        relay = _relay(lambda r: httpx.Response(200, json={"success": True}), requests)

        body = relay.send(_payload(), 42)

        assert body == {"success": True}
        assert len(requests) == 1
        assert requests[0].method == "POST"
        assert str(requests[0].url) == RELAY_URL
        sent = json.loads(requests[0].content)
        assert sent["kind"] == "supplier_evaluation"
        assert sent["evaluation_id"] == 42
        assert sent["evaluation"]["supplier_name"] == "Servicios Andinos SAC"
        assert sent["evaluation"]["evaluation_date"] == "2026-03-02"
        assert sent["evaluation"]["status"] == "Evaluado"
        assert "sent_at" in sent

    def test_non_json_success(self):
        relay = _relay(lambda r: httpx.Response(204))
        assert relay.send(_payload()) == {}

    def test_http_error_status(self):
        relay = _relay(lambda r: httpx.Response(503, text="unavailable"))
        with pytest.raises(RelayError, match="503"):
            relay.send(_payload())

    def test_redirect_is_not_delivery(self):
        """httpx does not follow redirects here, so a 3xx means the envelope never arrived."""
        relay = _relay(lambda r: httpx.Response(302, headers={"location": "https://relay.example.test/moved"}))
        with pytest.raises(RelayError, match="302"):
            relay.send(_payload())

    def test_reported_failure(self):
        relay = _relay(lambda r: httpx.Response(200, json={"success": False, "error": "queue full"}))
        with pytest.raises(RelayError, match="queue full"):
            relay.send(_payload())

    def test_transport_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        relay = _relay(refuse)
        with pytest.raises(RelayError, match="request failed"):
            relay.send(_payload())

    def test_disabled(self, monkeypatch):
        monkeypatch.delenv("SUPPLIER_EVAL_RELAY_URL", raising=False)
        relay = NotificationRelay()
        assert not relay.enabled
        with pytest.raises(RelayError):
            relay.send(_payload())


# ─── dispatch ────────────────────────────────────────────────────────────────


class TestDispatch:
    """Background delivery never raises."""

    def test_success(self):
        relay = _relay(lambda r: httpx.Response(200, json={"success": True}))
        future = relay.dispatch(_payload(), 7)
        assert future.result(timeout=5) is True
        relay.close()

    def test_failure_is_logged_not_raised(self, caplog):
        relay = _relay(lambda r: httpx.Response(500))
        future = relay.dispatch(_payload(), 7)
        assert future.result(timeout=5) is False
        relay.close()
        assert any("Relay delivery failed" in r.message for r in caplog.records)

    def test_unexpected_error_is_contained(self):
        def explode(request):
            raise RuntimeError("boom")

        relay = _relay(explode)
        assert relay.dispatch(_payload(), 7).result(timeout=5) is False
        relay.close()

    def test_disabled_returns_none(self):
        relay = NotificationRelay(url="")
        assert relay.dispatch(_payload(), 7) is None

    def test_env_configuration(self, monkeypatch):
        monkeypatch.setenv("SUPPLIER_EVAL_RELAY_URL", RELAY_URL)
        monkeypatch.setenv("SUPPLIER_EVAL_RELAY_TIMEOUT", "3.5")
        relay = NotificationRelay()
        assert relay.enabled
        assert relay.url == RELAY_URL
        assert relay.timeout == 3.5
