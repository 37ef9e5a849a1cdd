"""
BillingSettings schema.

The runtime settings of the billing engine, parsed from YAML by the
loader and validated once at load time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass(frozen=True)
class BillingSettings:
    """Frozen runtime settings."""

    environment: str = "production"
    business_timezone: str = "America/Costa_Rica"
    standard_hourly_rate: Decimal = Decimal("90000")
    default_tax_rate: Decimal = Decimal("0.13")
    installment_modality_tag: str = "mensualidad"
    stage_keywords: tuple[str, ...] = field(default_factory=lambda: ("etapa",))
    one_time_keywords: tuple[str, ...] = field(default_factory=lambda: ("unico",))
    hourly_keywords: tuple[str, ...] = field(default_factory=lambda: ("hora",))
    # Test-only reference-date override; never enabled in production
    allow_period_override: bool = False
    max_workers: int = 8

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.business_timezone)


def validate_settings(settings: BillingSettings) -> list[str]:
    """Return a list of validation errors (empty when valid)."""
    errors: list[str] = []
    if settings.standard_hourly_rate <= 0:
        errors.append("standard_hourly_rate must be positive")
    if settings.default_tax_rate < 0:
        errors.append("default_tax_rate must not be negative")
    if settings.max_workers < 1:
        errors.append("max_workers must be at least 1")
    if not settings.installment_modality_tag.strip():
        errors.append("installment_modality_tag must not be blank")
    try:
        ZoneInfo(settings.business_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"unknown business_timezone: {settings.business_timezone!r}")
    return errors
