"""
Modality classification.

A presentation label describing how a client is billed, derived from the
same collected data as the statement.  It never affects the arithmetic.

Priority (first match wins):
    1. any installment request the collector will bill
    2. a request tagged as stage-completed
    3. a request tagged as one-time
    4. a request tagged as hourly
    5. any worked minutes
    6. any expense or service charge
    7. nothing
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable
from enum import Enum

from billing_engines.aggregation import CollectedLineItems
from billing_engines.duration import to_minutes
from billing_engines.tracer import traced_engine

DEFAULT_STAGE_KEYWORDS = ("etapa",)
DEFAULT_ONE_TIME_KEYWORDS = ("unico",)
DEFAULT_HOURLY_KEYWORDS = ("hora",)


class Modality(str, Enum):
    MONTHLY = "monthly"
    STAGE_COMPLETED = "stage_completed"
    ONE_TIME = "one_time"
    HOURLY = "hourly"
    EXPENSES_ONLY = "expenses_only"
    NONE = "none"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def rank(self) -> int:
        """Sort position on the roster (1 first)."""
        return _RANKS[self]


_LABELS = {
    Modality.MONTHLY: "Mensualidad",
    Modality.STAGE_COMPLETED: "Etapa Finalizada",
    Modality.ONE_TIME: "Único Pago",
    Modality.HOURLY: "Cobro por hora",
    Modality.EXPENSES_ONLY: "Solo gastos-servicios",
    Modality.NONE: "Sin cobros",
}

_RANKS = {
    Modality.MONTHLY: 1,
    Modality.STAGE_COMPLETED: 2,
    Modality.ONE_TIME: 3,
    Modality.HOURLY: 4,
    Modality.EXPENSES_ONLY: 5,
    Modality.NONE: 6,
}


def normalize_tag(value: str | None) -> str:
    """Case- and accent-insensitive form of a modality tag."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value.strip().casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _any_tag_contains(tags: list[str], keywords: Iterable[str]) -> bool:
    needles = [normalize_tag(k) for k in keywords if normalize_tag(k)]
    return any(needle in tag for tag in tags for needle in needles)


@traced_engine("modality", "1.0")
def classify(
    items: CollectedLineItems,
    stage_keywords: Iterable[str] = DEFAULT_STAGE_KEYWORDS,
    one_time_keywords: Iterable[str] = DEFAULT_ONE_TIME_KEYWORDS,
    hourly_keywords: Iterable[str] = DEFAULT_HOURLY_KEYWORDS,
) -> Modality:
    tags = [normalize_tag(r.modality_tag) for r in items.requests if not r.is_cancelled]

    if items.installment_requests:
        return Modality.MONTHLY
    if _any_tag_contains(tags, stage_keywords):
        return Modality.STAGE_COMPLETED
    if _any_tag_contains(tags, one_time_keywords):
        return Modality.ONE_TIME
    if _any_tag_contains(tags, hourly_keywords):
        return Modality.HOURLY
    if sum(to_minutes(e.duration) for e in items.time_entries) > 0:
        return Modality.HOURLY
    if any(not e.is_cancelled for e in items.expenses) or any(
        not c.is_cancelled for c in items.service_charges
    ):
        return Modality.EXPENSES_ONLY
    return Modality.NONE
