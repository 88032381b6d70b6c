import json
import logging
import types

import pytest

from wealthpulse import lambda_handler as lh
from wealthpulse.tools.audit_log import InMemoryAuditLogStore
from wealthpulse.tools.narrative import TemplateExplainer
from wealthpulse.tools.price_source import StaticPriceSource
from wealthpulse.tools.repository import InMemoryTransactionRepository


@pytest.fixture
def offline(monkeypatch):
    """Swap the AWS/HTTP collaborators for in-process ones."""
    audit = InMemoryAuditLogStore()
    monkeypatch.setattr(lh, "_price_cache", {})
    monkeypatch.setattr(lh, "collaborators", lambda: {
        "repository": InMemoryTransactionRepository(),
        "explainer": TemplateExplainer(),
        "price_source": StaticPriceSource({"spy": 1.0, "eth": 1.0}),
        "executor": None,
        "audit_store": audit,
    })
    return audit


def test_proxy_event_returns_ok(offline):
    body = {
        "user_id": "u1",
        "assets": [{"id": "spy", "type": "etf", "quantity": 700}, {"id": "eth", "type": "staking", "quantity": 300}],
    }
    event = {"headers": {"x-correlation-id": "corr-1"}, "body": json.dumps(body)}
    resp = lh.handler(event, types.SimpleNamespace(aws_request_id="req-1"))

    assert resp["statusCode"] == 200
    assert resp["headers"]["Content-Type"] == "application/json"
    out = json.loads(resp["body"])
    assert out["status"] == "ok"
    assert out["userId"] == "u1"
    assert out["rebalance"]["recommendation"]["shouldRebalance"] is False
    assert out["rebalance"]["trades"] == []
    assert out["compliance"] is None
    assert out["execution"] is None


def test_direct_invocation_without_body(offline):
    out = json.loads(lh.handler({"user_id": "u2"})["body"])
    assert out["status"] == "ok"
    assert out["transactionAnalysis"]["totalTransactions"] == 0


def test_invalid_request_reports_path(offline):
    event = {"body": json.dumps({"user_id": "u1", "total_capital": -5})}
    out = json.loads(lh.handler(event)["body"])
    assert out["status"] == "error"
    assert out["message"].endswith("at $.total_capital")


def test_unparseable_body_is_invalid(offline):
    out = json.loads(lh.handler({"body": "{not json"})["body"])
    assert out["status"] == "error"
    assert "'user_id' is a required property" in out["message"]


def test_unexpected_failure_is_reported(offline, monkeypatch):
    class DownRepository(InMemoryTransactionRepository):
        def fetch(self, user_id, start=None, end=None):
            raise RuntimeError("DDB query failed: throttled")

    monkeypatch.setattr(lh, "collaborators", lambda: {"repository": DownRepository(), "explainer": TemplateExplainer()})
    out = json.loads(lh.handler({"user_id": "u1"})["body"])
    assert out["status"] == "error"
    assert out["message"] == "RuntimeError: DDB query failed: throttled"


def test_request_ids_reach_pipeline_logs(offline, caplog):
    with caplog.at_level(logging.INFO):
        lh.handler({"user_id": "u3"}, types.SimpleNamespace(aws_request_id="req-9"))
    lines = [json.loads(r.getMessage()) for r in caplog.records if r.getMessage().startswith("{")]
    completed = [line for line in lines if line["event"] == "pipeline.completed"]
    assert completed and completed[0]["request_id"] == "req-9"
    assert completed[0]["user_id"] == "u3"


def test_price_cache_carries_over_between_invocations(offline, monkeypatch):
    source = StaticPriceSource({"spy": 1.0, "eth": 1.0})
    monkeypatch.setattr(lh, "collaborators", lambda: {"explainer": TemplateExplainer(), "price_source": source})
    body = {
        "user_id": "u1",
        "transactions": [],
        "assets": [{"id": "spy", "type": "etf", "quantity": 700}, {"id": "eth", "type": "staking", "quantity": 300}],
    }

    first = json.loads(lh.handler(body)["body"])
    second = json.loads(lh.handler(body)["body"])
    assert first["status"] == second["status"] == "ok"
    assert source.calls == [["spy", "eth"]]
    assert set(lh._price_cache) == {"spy", "eth"}


def test_failed_invocation_keeps_previous_cache(offline, monkeypatch):
    monkeypatch.setattr(lh, "_price_cache", {"spy": (1.0, None)})
    lh.handler({"user_id": ""})
    assert lh._price_cache == {"spy": (1.0, None)}
