"""
billing_services -- statement orchestration over the billing engines.

    StatementService   single client, group roll-up, roster, outstanding dues
    LineItemCollector  the four billable categories for a client and period
    BillingStore       the read interface; BillingSelector implements it
"""

from billing_services.collector import LineItemCollector
from billing_services.statement_service import (
    ClientStatementError,
    ClientStatementReport,
    DuesEntry,
    OutstandingDuesReport,
    RosterReport,
    StatementService,
    roster_sort_key,
)
from billing_services.store import BillingStore, StoreFactory, sql_store_factory, store_scope

__all__ = [
    "BillingStore",
    "ClientStatementError",
    "ClientStatementReport",
    "DuesEntry",
    "LineItemCollector",
    "OutstandingDuesReport",
    "RosterReport",
    "StatementService",
    "StoreFactory",
    "roster_sort_key",
    "sql_store_factory",
    "store_scope",
]
