"""
billing_config -- single public entrypoint for billing settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_config()``.  No other component reads the YAML sets or
    the ``BILLING_ENV`` environment variable directly.

Failure modes:
    - ``FileNotFoundError`` -- the default set is missing.
    - ``ValueError`` -- unknown keys or failed validation.

Audit relevance:
    Every successful call emits a ``BILLING_CONFIG_TRACE`` log entry with
    the environment, the layers applied and a checksum of the merged
    settings.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from billing_config.loader import compute_checksum, load_yaml_file, merge_layers, parse_settings
from billing_config.schema import BillingSettings, validate_settings

_logger = logging.getLogger("billing_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

ENVIRONMENT_VARIABLE = "BILLING_ENV"
DEFAULT_ENVIRONMENT = "production"

__all__ = ["BillingSettings", "get_active_config"]


def get_active_config(
    environment: str | None = None,
    config_dir: Path | None = None,
) -> BillingSettings:
    """
    The ONLY public configuration entrypoint.

    Args:
        environment: Environment name.  Defaults to ``$BILLING_ENV`` and
            then ``production``.
        config_dir: Override path to the settings directory.  Defaults to
            billing_config/sets/.

    Raises:
        FileNotFoundError: if ``default.yaml`` is missing.
        ValueError: if the merged settings fail validation.
    """
    env = environment or os.environ.get(ENVIRONMENT_VARIABLE) or DEFAULT_ENVIRONMENT
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR

    layers = [load_yaml_file(sets_dir / "default.yaml")]
    applied = ["default"]
    overlay = sets_dir / f"{env}.yaml"
    if env != "default" and overlay.exists():
        layers.append(load_yaml_file(overlay))
        applied.append(env)

    merged = merge_layers(*layers)
    settings = parse_settings(merged, env)

    errors = validate_settings(settings)
    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    _logger.info(
        "BILLING_CONFIG_TRACE",
        extra={
            "trace_type": "BILLING_CONFIG_TRACE",
            "environment": env,
            "layers": applied,
            "checksum": compute_checksum(merged),
            "allow_period_override": settings.allow_period_override,
            "max_workers": settings.max_workers,
        },
    )
    return settings
