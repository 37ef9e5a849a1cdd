"""Tests for cross-client totals (billing_engines/roster.py)."""

from decimal import Decimal

from billing_engines.aggregation import CollectedLineItems, aggregate_statement, zero_statement
from billing_engines.roster import RosterTotals, sum_statements, totals_by
from tests.factories import make_expense, make_time_entry


def one_minute_statement():
    # 833.333... + 108.333... = 941.666... -> 941.67
    return aggregate_statement(
        CollectedLineItems(time_entries=(make_time_entry("0:01"),)),
        hourly_rate=Decimal("50000"),
        tax_rate=Decimal("0.13"),
    )


def expense_statement(amount):
    return aggregate_statement(CollectedLineItems(expenses=(make_expense(amount),)))


class TestSumStatements:
    def test_sums_rounded_figures(self):
        """Three rows of 941.67 total 2825.01, matching what is displayed."""
        statements = [one_minute_statement() for _ in range(3)]
        assert statements[0].grand_total == Decimal("941.67")

        totals = sum_statements(statements)

        assert totals.client_count == 3
        assert totals.total_minutes == 3
        assert totals.hour_cost == Decimal("2499.99")
        assert totals.grand_total == Decimal("2825.01")
        assert totals.grand_total == sum(s.grand_total for s in statements)

    def test_empty(self):
        totals = sum_statements([])
        assert totals == RosterTotals()
        assert totals.grand_total == Decimal("0")

    def test_zero_statements_count_as_clients(self):
        totals = sum_statements([zero_statement(), zero_statement()])
        assert totals.client_count == 2
        assert totals.grand_total == Decimal("0.00")

    def test_add_totals(self):
        left = sum_statements([expense_statement("100")])
        right = sum_statements([expense_statement("250.5"), expense_statement("49.5")])
        combined = left + right
        assert combined.client_count == 3
        assert combined.expense_total == Decimal("400.00")
        assert combined == sum_statements(
            [expense_statement("100"), expense_statement("250.5"), expense_statement("49.5")]
        )


class TestTotalsBy:
    def test_groups_in_first_seen_order(self):
        entries = [
            ("b", expense_statement("10")),
            ("a", expense_statement("20")),
            ("b", expense_statement("30")),
        ]
        result = totals_by(entries, key=lambda e: e[0], statement=lambda e: e[1])
        assert list(result) == ["b", "a"]
        assert result["b"].grand_total == Decimal("40.00")
        assert result["b"].client_count == 2
        assert result["a"].grand_total == Decimal("20.00")
