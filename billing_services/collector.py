"""
Line-item collection for one client and one billing period.

Corporate clients bill hours through their cases; individuals bill hours
linked to them directly.  Expenses and service charges are limited to the
period.  Installment requests are not date-limited: every non-cancelled
request tagged with the installment modality bills each period.
"""

from __future__ import annotations

from billing_config.schema import BillingSettings
from billing_engines.aggregation import CollectedLineItems
from billing_engines.modality import normalize_tag
from billing_engines.period import BillingPeriod
from billing_kernel.domain.records import ClientInfo
from billing_kernel.logging_config import get_logger
from billing_services.store import BillingStore

logger = get_logger("services.collector")


class LineItemCollector:
    """Reads the four billable categories for a client and period."""

    def __init__(self, store: BillingStore, settings: BillingSettings | None = None):
        self._store = store
        self._settings = settings or BillingSettings()
        self._installment_tag = normalize_tag(self._settings.installment_modality_tag)

    def collect(self, client: ClientInfo, period: BillingPeriod) -> CollectedLineItems:
        start, end = period.start_date, period.end_date

        if client.is_corporate:
            cases = self._store.get_cases_for_client(client.id)
            if cases:
                time_entries = self._store.get_time_entries(
                    start, end, case_ids=[c.id for c in cases]
                )
            else:
                time_entries = []
        else:
            time_entries = self._store.get_time_entries(start, end, client_id=client.id)

        expenses = self._store.get_expenses(client.id, start, end)
        service_charges = self._store.get_service_charges(
            client.id, start, end, exclude_cancelled=True
        )

        requests = [
            r for r in self._store.get_installment_requests(client.id) if not r.is_cancelled
        ]
        installments = [
            r for r in requests if normalize_tag(r.modality_tag) == self._installment_tag
        ]

        logger.debug(
            "line_items_collected",
            extra={
                "client_id": str(client.id),
                "period_label": period.label,
                "time_entry_count": len(time_entries),
                "expense_count": len(expenses),
                "service_charge_count": len(service_charges),
                "installment_count": len(installments),
            },
        )
        return CollectedLineItems(
            time_entries=tuple(time_entries),
            expenses=tuple(expenses),
            service_charges=tuple(service_charges),
            installment_requests=tuple(installments),
            requests=tuple(requests),
        )
