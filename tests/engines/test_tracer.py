"""Tests for the @traced_engine decorator and input fingerprints."""

from decimal import Decimal

import pytest

from axioma_engines.tax import LineItem, LineItemTaxCalculator, TaxRule
from axioma_engines.tracer import compute_input_fingerprint, traced_engine
from axioma_kernel.domain.values import Money


class TestInputFingerprint:
    """Tests for compute_input_fingerprint."""

    def test_deterministic(self):
        args = {"rate": Decimal("0.10"), "codes": {"B", "A"}}
        fp1 = compute_input_fingerprint(("rate", "codes"), args)
        fp2 = compute_input_fingerprint(("rate", "codes"), dict(args))
        assert fp1 == fp2
        assert len(fp1) == 16

    def test_set_order_irrelevant(self):
        fp1 = compute_input_fingerprint(("codes",), {"codes": frozenset({"A", "B"})})
        fp2 = compute_input_fingerprint(("codes",), {"codes": frozenset({"B", "A"})})
        assert fp1 == fp2

    def test_different_inputs_differ(self):
        fp1 = compute_input_fingerprint(("x",), {"x": Decimal("1")})
        fp2 = compute_input_fingerprint(("x",), {"x": Decimal("2")})
        assert fp1 != fp2

    def test_missing_field_recorded_as_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(("x",), {"x": None})

    def test_dataclass_fingerprinted_by_fields(self):
        a = Money.of("1.00", "USD")
        b = Money.of("1.00", "USD")
        assert compute_input_fingerprint(("m",), {"m": a}) == compute_input_fingerprint(("m",), {"m": b})


class TestTracedEngine:
    """Tests for trace records."""

    def test_trace_emitted(self, captured_logs):
        rules = [TaxRule(tax_code="VAT", tax_name="VAT", rate=Decimal("0.10"))]
        item = LineItem(quantity=Decimal("1"), unit_price=Money.of("10.00", "USD"))
        LineItemTaxCalculator().compute([item], rules)

        traces = [r for r in captured_logs() if r["message"] == "AXIOMA_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "tax"
        assert traces[0]["engine_version"] == "1.0"
        assert len(traces[0]["input_fingerprint"]) == 16
        assert traces[0]["function"] == "LineItemTaxCalculator.compute"

    def test_positional_and_keyword_calls_fingerprint_identically(self, captured_logs):
        calculator = LineItemTaxCalculator()
        item = LineItem(quantity=Decimal("2"), unit_price=Money.of("3.00", "USD"))
        calculator.compute([item], [])
        calculator.compute(lines=[item], tax_rules=[])

        traces = [r for r in captured_logs() if r["message"] == "AXIOMA_ENGINE_TRACE"]
        assert traces[0]["input_fingerprint"] == traces[1]["input_fingerprint"]

    def test_no_trace_on_failure(self, captured_logs):
        @traced_engine("failing", "0.1", fingerprint_fields=("value",))
        def explode(value):
            raise RuntimeError(value)

        with pytest.raises(RuntimeError):
            explode("boom")

        assert not any(r["message"] == "AXIOMA_ENGINE_TRACE" for r in captured_logs())

    def test_return_value_passed_through(self):
        @traced_engine("identity", "1.0")
        def identity(value):
            return value

        assert identity(42) == 42
        assert identity.__name__ == "identity"

    def test_nested_call_joins_outer_calculation(self, captured_logs):
        @traced_engine("inner", "1.0")
        def inner(value):
            return value

        @traced_engine("outer", "1.0")
        def outer(value):
            return inner(value)

        outer(1)

        traces = {r["engine_name"]: r for r in captured_logs() if r["message"] == "AXIOMA_ENGINE_TRACE"}
        assert traces["inner"]["engine"] == "inner"
        assert traces["outer"]["engine"] == "outer"
        assert traces["inner"]["calculation_id"] == traces["outer"]["calculation_id"]
