"""Formula API: evaluate, validate, templates."""

from fastapi.testclient import TestClient

from chatinsights.main import app

client = TestClient(app)


def test_evaluate_worked_example():
    resp = client.post(
        "/api/formulas/evaluate",
        json={
            "expression": "total_messages > 100 && participation_rate > 50",
            "variables": {"total_messages": 150, "participation_rate": 62},
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["substituted_expression"] == "150 > 100 && 62 > 50"
    assert body["result"] is True
    assert body["triggered"] is True
    assert body["variables"] == ["participation_rate", "total_messages"]


def test_evaluate_with_conditions():
    resp = client.post(
        "/api/formulas/evaluate",
        json={
            "expression": "total_messages * 2",
            "variables": {"total_messages": 60, "active_members": 6},
            "conditions": [
                {"field": "result", "operator": "gt", "value": 100},
                {"field": "active_members", "operator": "lt", "value": 5},
            ],
        },
    )
    body = resp.json()
    assert body["triggered"] is False
    assert [c["passed"] for c in body["condition_results"]] == [True, False]


def test_evaluate_unknown_identifier_is_400():
    resp = client.post("/api/formulas/evaluate", json={"expression": "foo_bar > 10", "variables": {}})
    assert resp.status_code == 400
    body = resp.json()
    rid = resp.headers.get("x-request-id")
    assert body["error"]["code"] == "validation_error"
    assert body["error"]["details"]["identifiers"] == ["foo_bar"]
    assert body["error"]["request_id"] == rid


def test_evaluate_failure_is_a_result_not_an_error():
    resp = client.post(
        "/api/formulas/evaluate",
        json={"expression": "(total_messages + 1", "variables": {"total_messages": 1}},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["triggered"] is False
    assert body["error_code"] == "evaluation_error"
    assert body["substituted_expression"] == "(1 + 1"


def test_evaluate_division_by_zero_serializes():
    resp = client.post(
        "/api/formulas/evaluate",
        json={"expression": "total_messages / active_members", "variables": {"total_messages": 5, "active_members": 0}},
    )
    assert resp.status_code == 200
    assert resp.json()["result"] == "Infinity"


def test_validate_reports_without_failing():
    resp = client.post("/api/formulas/validate", json={"expression": "foo > total_messages"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["valid"] is False
    assert body["identifiers"] == ["foo"]


def test_validate_catches_syntax():
    body = client.post("/api/formulas/validate", json={"expression": "total_messages >"}).json()
    assert body["valid"] is False
    assert body["variables"] == ["total_messages"]
    assert body["errors"]


def test_validate_ok():
    body = client.post(
        "/api/formulas/validate",
        json={"expression": "media_ratio < 0.1", "conditions": [{"field": "result", "operator": "eq", "value": 1}]},
    ).json()
    assert body == {"valid": True, "variables": ["media_ratio"], "errors": [], "identifiers": []}


def test_templates():
    resp = client.get("/api/formulas/templates")
    assert resp.status_code == 200
    keys = [t["key"] for t in resp.json()]
    assert keys == [
        "growth_percentage",
        "activity_concentration",
        "low_quality",
        "anomalous_peak",
        "balanced_engagement",
    ]
