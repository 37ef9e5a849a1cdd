"""Tests for consolidating corporate groups (billing_engines/rollup.py)."""

from decimal import Decimal
from uuid import uuid4

from billing_engines.aggregation import CollectedLineItems, aggregate_statement
from billing_engines.rollup import MemberFailure, MemberStatement, roll_up_group
from tests.factories import make_company, make_expense, make_time_entry


def expense_statement(client, amount):
    return aggregate_statement(
        CollectedLineItems(expenses=(make_expense(amount, client_id=client.id),)),
        client_id=client.id,
        period_label="2025-02",
    )


def hours_statement(client, duration):
    return aggregate_statement(
        CollectedLineItems(time_entries=(make_time_entry(duration),)),
        hourly_rate=client.hourly_rate,
        tax_rate=client.tax_rate,
        client_id=client.id,
    )


class TestRollUpGroup:
    """Group figures are sums of per-company rounded figures."""

    def test_principal_plus_members(self):
        principal = make_company("Matriz")
        member_a = make_company("Filial A")
        member_b = make_company("Filial B")
        group_id = uuid4()

        result = roll_up_group(
            expense_statement(principal, "300000"),
            members=[
                MemberStatement(member_a, expense_statement(member_a, "100000")),
                MemberStatement(member_b, expense_statement(member_b, "50000")),
            ],
            group_id=group_id,
            group_name="Grupo Matriz",
        )

        assert result.grand_total == Decimal("450000.00")
        assert result.subtotal == Decimal("450000.00")
        assert result.total_tax == Decimal("0.00")
        assert result.totals.client_count == 3
        assert result.is_complete
        assert result.is_grouped
        assert result.group_name == "Grupo Matriz"

    def test_fewer_members_give_smaller_total(self):
        principal = make_company("Matriz")
        member_a = make_company("Filial A")
        result = roll_up_group(
            expense_statement(principal, "300000"),
            members=[MemberStatement(member_a, expense_statement(member_a, "100000"))],
            group_id=uuid4(),
        )
        assert result.grand_total == Decimal("400000.00")

    def test_each_member_uses_its_own_rates(self):
        principal = make_company("Matriz")
        member_a = make_company("A", hourly_rate=Decimal("50000"), tax_rate=Decimal("0.13"))
        member_b = make_company("B", hourly_rate=Decimal("90000"), tax_rate=Decimal("0"))

        result = roll_up_group(
            hours_statement(principal, "0:30"),
            members=[
                MemberStatement(member_a, hours_statement(member_a, "1:00")),
                MemberStatement(member_b, hours_statement(member_b, "1:00")),
            ],
            group_id=uuid4(),
        )

        # 50850.00 + 56500.00 + 90000.00
        assert [m.statement.grand_total for m in result.members] == [
            Decimal("56500.00"),
            Decimal("90000.00"),
        ]
        assert result.principal.grand_total == Decimal("50850.00")
        assert result.grand_total == Decimal("197350.00")

    def test_failures_mark_statement_incomplete(self):
        principal = make_company("Matriz")
        member = make_company("Filial")
        failure = MemberFailure(uuid4(), "Filial caída", "DATA_ACCESS_FAILURE", "timeout")

        result = roll_up_group(
            expense_statement(principal, "1000"),
            members=[MemberStatement(member, expense_statement(member, "500"))],
            failures=[failure],
            group_id=uuid4(),
        )

        assert not result.is_complete
        assert result.failures == (failure,)
        assert result.grand_total == Decimal("1500.00")
        assert result.totals.client_count == 2

    def test_ungrouped_principal(self):
        principal = make_company("Sola")
        statement = expense_statement(principal, "1234.56")
        result = roll_up_group(statement)
        assert not result.is_grouped
        assert result.members == ()
        assert result.grand_total == statement.grand_total
