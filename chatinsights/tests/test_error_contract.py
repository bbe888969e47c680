"""Tests for normalized error responses."""

from fastapi.testclient import TestClient

from chatinsights.main import app

client = TestClient(app)


def test_formula_validation_error_has_standard_shape():
    resp = client.post("/api/formulas/evaluate", json={"expression": "", "variables": {}})
    assert resp.status_code == 400
    body = resp.json()
    rid = resp.headers.get("x-request-id")
    assert body["error"]["code"] == "validation_error"
    assert body["error"]["request_id"] == rid
    assert body["detail"] == body["error"]["message"]


def test_malformed_body_is_422():
    resp = client.post("/api/formulas/evaluate", json={"variables": {}})
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"]["code"] == "validation_error"
    assert any("expression" in e for e in body["error"]["details"]["errors"])
    assert body["error"]["request_id"] == resp.headers.get("x-request-id")


def test_between_condition_needs_a_pair():
    resp = client.post(
        "/api/formulas/evaluate",
        json={
            "expression": "total_messages",
            "variables": {"total_messages": 1},
            "conditions": [{"field": "result", "operator": "between", "value": 5}],
        },
    )
    assert resp.status_code == 422


def test_unknown_route_is_normalized():
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    body = resp.json()
    assert body["error"]["code"] == "not_found"
    assert body["error"]["request_id"] == resp.headers.get("x-request-id")


def test_provided_request_id_is_reported():
    resp = client.post(
        "/api/formulas/evaluate",
        headers={"X-Request-Id": "rid-abc"},
        json={"expression": "nope > 1", "variables": {}},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["request_id"] == "rid-abc"
