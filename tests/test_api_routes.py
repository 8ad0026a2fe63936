from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from founderz.api.app import create_app
from founderz.contract import MINT_CONFIRMATION
from founderz.runtime.executor import ContractExecutor, RetryPolicy
from founderz.runtime.state_store import MemoryStateStore


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setenv("FOUNDERZ_MODE", "dev")
    monkeypatch.delenv("FOUNDERZ_CORS_ORIGINS", raising=False)
    monkeypatch.delenv("FOUNDERZ_METRICS_ENABLED", raising=False)

    app = create_app(boot_runtime=False)
    app.state.executor = ContractExecutor(
        store=MemoryStateStore(),
        chain_id="founderz-test",
        node_id="n1",
        retry=RetryPolicy(max_attempts=3, backoff_base_ms=1, backoff_max_ms=1),
    )
    return TestClient(app)


def test_submit_then_evaluate(client: TestClient) -> None:
    r = client.post("/v1/tx/submit", json={"function": "mint", "args": ["contract-42", "terms:v1"]})
    assert r.status_code == 200
    j = r.json()
    assert j["ok"] is True
    assert j["committed"] is True
    assert j["payload"] == MINT_CONFIRMATION
    assert "x-request-id" in r.headers

    r = client.post("/v1/tx/evaluate", json={"function": "fetch", "args": ["contract-42"]})
    assert r.status_code == 200
    assert r.json()["payload"] == "terms:v1"
    assert r.json()["committed"] is False


def test_duplicate_mint_is_409(client: TestClient) -> None:
    body = {"function": "mint", "args": ["contract-42", "terms:v1"]}
    assert client.post("/v1/tx/submit", json=body).status_code == 200

    r = client.post("/v1/tx/submit", json={"function": "mint", "args": ["contract-42", "terms:v2"]})
    assert r.status_code == 409
    err = r.json()["error"]
    assert err["code"] == "already_exists"
    assert err["message"] == "key.contract-42 Agreement already exists"
    assert err["details"]["key"] == "contract-42"

    # First value untouched.
    r = client.get("/v1/agreements/contract-42")
    assert r.json()["value"] == "terms:v1"


def test_fetch_missing_is_404(client: TestClient) -> None:
    r = client.post("/v1/tx/evaluate", json={"function": "fetch", "args": ["contract-99"]})
    assert r.status_code == 404
    err = r.json()["error"]
    assert err["code"] == "not_found"
    assert err["message"] == "key.contract-99 Agreement does not exist"


def test_evaluate_mint_does_not_persist(client: TestClient) -> None:
    r = client.post("/v1/tx/evaluate", json={"function": "mint", "args": ["k", "v"]})
    assert r.status_code == 200
    assert client.get("/v1/agreements/k").status_code == 404


def test_agreement_shorthand_routes(client: TestClient) -> None:
    r = client.post("/v1/agreements", json={"key": "contract-42", "value": "terms:v1"})
    assert r.status_code == 200
    j = r.json()
    assert j["ok"] is True
    assert j["message"] == MINT_CONFIRMATION
    assert len(j["tx_id"]) == 64

    assert client.post("/v1/agreements", json={"key": "contract-42", "value": "x"}).status_code == 409

    r = client.get("/v1/agreements/contract-42")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "key": "contract-42", "value": "terms:v1"}


def test_blank_value_leaves_key_reusable(client: TestClient) -> None:
    assert client.post("/v1/agreements", json={"key": "k", "value": "   "}).status_code == 200
    assert client.get("/v1/agreements/k").status_code == 404
    assert client.post("/v1/agreements", json={"key": "k", "value": "real"}).status_code == 200
    assert client.get("/v1/agreements/k").json()["value"] == "real"


@pytest.mark.parametrize(
    "body, code",
    [
        ({"function": "burn", "args": ["k"]}, "tx_unimplemented"),
        ({"function": "mint", "args": ["k"]}, "bad_args"),
    ],
)
def test_malformed_invocation_is_400(client: TestClient, body: dict, code: str) -> None:
    r = client.post("/v1/tx/submit", json=body)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == code


def test_unknown_contract_is_404(client: TestClient) -> None:
    r = client.post("/v1/tx/submit", json={"contract": "Other", "function": "mint", "args": ["k", "v"]})
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "contract_not_found"


def test_schema_rejects_extra_fields(client: TestClient) -> None:
    r = client.post("/v1/tx/submit", json={"function": "mint", "args": ["k", "v"], "sig": "x"})
    assert r.status_code == 422


def test_metrics_disabled_by_default(client: TestClient) -> None:
    r = client.get("/v1/metrics")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "metrics_disabled"


def test_metrics_enabled(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOUNDERZ_METRICS_ENABLED", "1")
    client.post("/v1/agreements", json={"key": "k", "value": "v"})
    client.post("/v1/agreements", json={"key": "k", "value": "v"})

    r = client.get("/v1/metrics")
    assert r.status_code == 200
    text = r.text
    assert r.headers["content-type"].startswith("text/plain")
    assert "founderz_uptime_ms " in text
    assert "founderz_tx_committed_total 1" in text
    assert "founderz_mint_already_exists_total 1" in text
