"""Insights API: posted aggregates and provider-backed groups."""

from fastapi.testclient import TestClient

from chatinsights.api.insights import get_aggregate_provider
from chatinsights.features.aggregates.provider import InMemoryAggregateProvider
from chatinsights.main import app

client = TestClient(app)


def _busy_payload(make_days, make_member, make_group, group_id="busy"):
    counts = [50] * 10
    counts[4] = 300
    names = ["alice", "bob", "carol", "dave", "erin", "frank"]
    members = [make_member(n, c) for n, c in zip(names, [500, 450, 400, 10, 8, 5])]
    days = make_days(counts, hourly=[{20: 40, 9: 10}] + [{}] * 9)
    return make_group(days, members, group_id=group_id, group_name="Busy")


def test_generate_headline(make_days, make_member, make_group):
    group = _busy_payload(make_days, make_member, make_group)
    resp = client.post(
        "/api/insights/generate",
        params={"now": "2024-02-01T00:00:00+00:00"},
        json={"groups": [group.model_dump(mode="json")], "limit": 3},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["insights"]) == 3
    assert body["total_ranked"] > 3
    assert body["computed_at"] == "2024-02-01T00:00:00+00:00"
    weights = [i["weight"] for i in body["insights"]]
    assert weights == sorted(weights, reverse=True)
    assert body["insights"][0]["group_id"] == "busy"


def test_generate_full_list(make_days, make_member, make_group):
    group = _busy_payload(make_days, make_member, make_group)
    resp = client.post(
        "/api/insights/generate",
        json={"groups": [group.model_dump(mode="json")], "full": True},
    )
    body = resp.json()
    assert len(body["insights"]) == body["total_ranked"]
    assert "time_pattern_busy" in {i["id"] for i in body["insights"]}


def test_generate_rejects_bad_aggregates():
    resp = client.post(
        "/api/insights/generate",
        json={"groups": [{"group_id": "g", "group_name": "G", "period": {"start": "2024-01-01", "end": "2024-01-01", "days": 1},
                          "daily_stats": [{"date": "2024-01-01", "total_messages": -1}]}]},
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "validation_error"


def test_group_insights_skip_unknown_groups(make_days, make_member, make_group):
    provider = InMemoryAggregateProvider([_busy_payload(make_days, make_member, make_group, group_id="g1")])
    app.dependency_overrides[get_aggregate_provider] = lambda: provider
    try:
        resp = client.get(
            "/api/insights/groups",
            params=[("group_id", "g1"), ("group_id", "ghost"), ("start", "2024-01-01"), ("end", "2024-01-10"), ("full", "true")],
        )
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 200
    body = resp.json()
    assert body["insights"]
    assert {i["group_id"] for i in body["insights"]} == {"g1"}


def test_group_insights_inverted_range():
    resp = client.get(
        "/api/insights/groups",
        params={"group_id": "g1", "start": "2024-01-10", "end": "2024-01-01"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "http_error"
