"""Tests for LineItemCollector against the in-memory store."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from billing_engines.period import period_for_month
from billing_kernel.domain.records import CaseInfo, ServiceChargeStatus
from billing_services.collector import LineItemCollector
from tests.factories import (
    make_client,
    make_company,
    make_expense,
    make_request,
    make_service_charge,
    make_time_entry,
)

FEBRUARY = period_for_month(2025, 2)


class TestTimeEntryLinkage:
    def test_individual_uses_direct_entries(self, memory_store):
        client = memory_store.add_client(make_client())
        memory_store.time_entries += [
            make_time_entry("1:00", date(2025, 2, 3), client_id=client.id),
            make_time_entry("2:00", date(2025, 3, 3), client_id=client.id),
            make_time_entry("4:00", date(2025, 2, 3), client_id=uuid4()),
        ]
        items = LineItemCollector(memory_store).collect(client, FEBRUARY)
        assert [e.duration for e in items.time_entries] == ["1:00"]

    def test_corporate_uses_case_entries_only(self, memory_store):
        company = memory_store.add_client(make_company())
        case = CaseInfo(id=uuid4(), client_id=company.id, name="Laboral")
        memory_store.add_case(case)
        memory_store.time_entries += [
            make_time_entry("1:00", date(2025, 2, 3), case_id=case.id),
            make_time_entry("9:00", date(2025, 2, 3), client_id=company.id),
        ]
        items = LineItemCollector(memory_store).collect(company, FEBRUARY)
        assert [e.duration for e in items.time_entries] == ["1:00"]

    def test_corporate_without_cases_has_no_hours(self, memory_store):
        company = memory_store.add_client(make_company())
        memory_store.time_entries.append(make_time_entry("3:00", date(2025, 2, 3), client_id=company.id))
        items = LineItemCollector(memory_store).collect(company, FEBRUARY)
        assert items.time_entries == ()


class TestOtherCategories:
    def test_expenses_and_services_limited_to_period(self, memory_store):
        client = memory_store.add_client(make_client())
        memory_store.expenses += [
            make_expense("100", client.id, expense_date=date(2025, 2, 28)),
            make_expense("200", client.id, expense_date=date(2025, 3, 1)),
        ]
        memory_store.service_charges += [
            make_service_charge("300", client.id, charge_date=date(2025, 2, 1)),
            make_service_charge("400", client.id, status=ServiceChargeStatus.CANCELLED),
        ]
        items = LineItemCollector(memory_store).collect(client, FEBRUARY)
        assert [e.final_charge_amount for e in items.expenses] == [Decimal("100")]
        assert [c.total for c in items.service_charges] == [Decimal("300")]

    def test_installments_bill_every_period(self, memory_store):
        client = memory_store.add_client(make_client())
        monthly = make_request("50000", modality_tag="MENSUALIDAD", client_id=client.id)
        stage = make_request("9000", modality_tag="Etapa Finalizada", client_id=client.id)
        cancelled = make_request("7000", client_id=client.id, status="cancelled")
        memory_store.requests += [monthly, stage, cancelled]

        for period in (FEBRUARY, period_for_month(2025, 9)):
            items = LineItemCollector(memory_store).collect(client, period)
            assert items.installment_requests == (monthly,)
            assert set(items.requests) == {monthly, stage}

    def test_nothing_billable(self, memory_store):
        client = memory_store.add_client(make_client())
        assert LineItemCollector(memory_store).collect(client, FEBRUARY).is_empty
