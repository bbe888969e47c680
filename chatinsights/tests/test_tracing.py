"""Spans are exported when tracing is enabled with the in-memory exporter."""

import pytest
from fastapi.testclient import TestClient

from chatinsights.core import tracing
from chatinsights.features.insights.service import InsightEngine
from chatinsights.main import app


@pytest.fixture
def memory_tracing():
    tracing.setup_tracing(enabled=True, exporter_name="memory")
    tracing.reset_exported_spans()
    yield
    tracing.reset_exported_spans()
    tracing.setup_tracing(enabled=False)


def test_analyze_group_span(memory_tracing, steady_group):
    InsightEngine().analyze_group(steady_group)

    spans = tracing.get_exported_spans()
    names = [span.name for span in spans]
    assert "insights.analyze_group" in names
    span = next(s for s in spans if s.name == "insights.analyze_group")
    assert span.attributes.get("group_id") == "steady"


def test_disabled_tracing_yields_none():
    tracing.setup_tracing(enabled=False)
    with tracing.start_span("noop") as span:
        assert span is None


def test_http_request_span_records_status(memory_tracing):
    TestClient(app).get("/healthz")

    spans = [s for s in tracing.get_exported_spans() if s.name == "http.request"]
    assert spans
    assert spans[-1].attributes.get("http.target") == "/healthz"
    assert spans[-1].attributes.get("http.status_code") == 200
