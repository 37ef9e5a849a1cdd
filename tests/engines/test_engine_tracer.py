"""Tests for billing_engines.tracer."""

from decimal import Decimal
from uuid import UUID

from billing_engines.aggregation import CollectedLineItems, aggregate_statement
from billing_engines.tracer import compute_input_fingerprint, traced_engine

CLIENT = UUID("11111111-2222-3333-4444-555555555555")


class TestFingerprint:
    def test_deterministic(self):
        kwargs = {"client_id": CLIENT, "period_label": "2025-02"}
        first = compute_input_fingerprint(("client_id", "period_label"), kwargs)
        assert first == compute_input_fingerprint(("client_id", "period_label"), dict(kwargs))
        assert len(first) == 16

    def test_sensitive_to_inputs(self):
        fields = ("client_id", "period_label")
        feb = compute_input_fingerprint(fields, {"client_id": CLIENT, "period_label": "2025-02"})
        mar = compute_input_fingerprint(fields, {"client_id": CLIENT, "period_label": "2025-03"})
        assert feb != mar

    def test_decimal_scale_does_not_matter(self):
        one = compute_input_fingerprint(("rate",), {"rate": Decimal("1.0")})
        other = compute_input_fingerprint(("rate",), {"rate": Decimal("1.00")})
        assert one == other

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(("x",), {"x": None})


class TestTracedEngine:
    def test_emits_trace_record(self, captured_logs):
        aggregate_statement(CollectedLineItems(), client_id=CLIENT, period_label="2025-02")

        traces = [r for r in captured_logs() if r["message"] == "BILLING_ENGINE_TRACE"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["engine_name"] == "aggregation"
        assert trace["engine_version"] == "1.0"
        assert trace["input_fingerprint"] == compute_input_fingerprint(
            ("client_id", "period_label"), {"client_id": CLIENT, "period_label": "2025-02"}
        )
        assert "duration_ms" in trace

    def test_passes_result_through(self, captured_logs):
        @traced_engine("double", "0.1")
        def double(value):
            return value * 2

        assert double(21) == 42
        assert double.__name__ == "double"
        [trace] = [r for r in captured_logs() if r["message"] == "BILLING_ENGINE_TRACE"]
        assert trace["input_fingerprint"] == ""
