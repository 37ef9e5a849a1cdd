"""Tests for modality classification (billing_engines/modality.py)."""

import pytest

from billing_engines.aggregation import CollectedLineItems
from billing_engines.modality import Modality, classify, normalize_tag
from billing_kernel.domain.records import ExpenseStatus
from tests.factories import make_expense, make_request, make_service_charge, make_time_entry


def collected(time_entries=(), expenses=(), service_charges=(), installments=(), requests=()):
    return CollectedLineItems(
        time_entries=tuple(time_entries),
        expenses=tuple(expenses),
        service_charges=tuple(service_charges),
        installment_requests=tuple(installments),
        requests=tuple(requests) or tuple(installments),
    )


class TestClassify:
    """First matching rule wins."""

    def test_installment_is_monthly_even_with_hours(self):
        monthly = make_request("1000")
        result = classify(collected(time_entries=[make_time_entry("2:00")], installments=[monthly]))
        assert result is Modality.MONTHLY

    def test_installment_tagged_request_that_is_not_billed_is_not_monthly(self):
        requests = [make_request(modality_tag="Mensualidad fija")]
        assert classify(collected(requests=requests)) is Modality.NONE

    def test_unbilled_installment_tag_falls_through_to_hours(self):
        requests = [make_request(modality_tag="MENSUALIDAD ")]
        result = classify(collected(requests=requests, time_entries=[make_time_entry("1:00")]))
        assert result is Modality.HOURLY

    @pytest.mark.parametrize(
        "tag, expected",
        [
            ("Etapa Finalizada", Modality.STAGE_COMPLETED),
            ("etapa 2", Modality.STAGE_COMPLETED),
            ("Único Pago", Modality.ONE_TIME),
            ("UNICO", Modality.ONE_TIME),
            ("Cobro por hora", Modality.HOURLY),
        ],
    )
    def test_request_tags(self, tag, expected):
        assert classify(collected(requests=[make_request(modality_tag=tag)])) is expected

    def test_stage_outranks_one_time(self):
        requests = [make_request(modality_tag="Único Pago"), make_request(modality_tag="Etapa Finalizada")]
        assert classify(collected(requests=requests)) is Modality.STAGE_COMPLETED

    def test_cancelled_request_is_ignored(self):
        requests = [make_request(modality_tag="Etapa Finalizada", status="cancelled")]
        assert classify(collected(requests=requests, time_entries=[make_time_entry("0:15")])) is Modality.HOURLY

    def test_worked_minutes_are_hourly(self):
        assert classify(collected(time_entries=[make_time_entry("0:10")])) is Modality.HOURLY

    def test_unreadable_minutes_do_not_count(self):
        assert classify(collected(time_entries=[make_time_entry("abc")])) is Modality.NONE

    def test_expenses_only(self):
        assert classify(collected(expenses=[make_expense("10")])) is Modality.EXPENSES_ONLY

    def test_service_charges_only(self):
        assert classify(collected(service_charges=[make_service_charge("10")])) is Modality.EXPENSES_ONLY

    def test_only_cancelled_expenses_is_none(self):
        expenses = [make_expense("10", status=ExpenseStatus.CANCELLED)]
        assert classify(collected(expenses=expenses)) is Modality.NONE

    def test_nothing_is_none(self):
        assert classify(collected()) is Modality.NONE

    def test_custom_keywords(self):
        requests = [make_request(modality_tag="Tarifa Fija")]
        assert classify(collected(requests=requests), one_time_keywords=("fija",)) is Modality.ONE_TIME


class TestModality:
    def test_ranks_follow_roster_order(self):
        ordered = sorted(Modality, key=lambda m: m.rank)
        assert ordered == [
            Modality.MONTHLY,
            Modality.STAGE_COMPLETED,
            Modality.ONE_TIME,
            Modality.HOURLY,
            Modality.EXPENSES_ONLY,
            Modality.NONE,
        ]

    def test_labels(self):
        assert Modality.MONTHLY.label == "Mensualidad"
        assert Modality.NONE.label == "Sin cobros"

    @pytest.mark.parametrize(
        "raw, expected",
        [("  MENSUALIDAD ", "mensualidad"), ("Único", "unico"), (None, ""), ("", "")],
    )
    def test_normalize_tag(self, raw, expected):
        assert normalize_tag(raw) == expected
