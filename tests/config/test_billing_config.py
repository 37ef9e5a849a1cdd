"""Tests for billing_config: YAML layering, parsing and validation."""

from decimal import Decimal

import pytest

from billing_config import get_active_config
from billing_config.loader import compute_checksum, merge_layers, parse_settings
from billing_config.schema import BillingSettings, validate_settings


def write_sets(tmp_path, default, **overlays):
    (tmp_path / "default.yaml").write_text(default)
    for env, text in overlays.items():
        (tmp_path / f"{env}.yaml").write_text(text)
    return tmp_path


class TestShippedSets:
    def test_production_defaults(self):
        settings = get_active_config("production")
        assert settings.environment == "production"
        assert settings.standard_hourly_rate == Decimal("90000")
        assert settings.default_tax_rate == Decimal("0.13")
        assert settings.business_timezone == "America/Costa_Rica"
        assert settings.installment_modality_tag == "mensualidad"
        assert not settings.allow_period_override

    @pytest.mark.parametrize("env", ["development", "test"])
    def test_non_production_allows_override(self, env):
        settings = get_active_config(env)
        assert settings.allow_period_override
        assert settings.max_workers == 4

    def test_environment_variable(self, monkeypatch):
        monkeypatch.setenv("BILLING_ENV", "test")
        assert get_active_config().environment == "test"

    def test_falls_back_to_production(self, monkeypatch):
        monkeypatch.delenv("BILLING_ENV", raising=False)
        assert get_active_config().environment == "production"

    def test_emits_config_trace(self, captured_logs):
        get_active_config("test")
        [trace] = [r for r in captured_logs() if r["message"] == "BILLING_CONFIG_TRACE"]
        assert trace["environment"] == "test"
        assert trace["layers"] == ["default", "test"]
        assert len(trace["checksum"]) == 64


class TestLayering:
    def test_overlay_overrides_keys(self, tmp_path):
        sets = write_sets(
            tmp_path,
            'standard_hourly_rate: "90000"\nmax_workers: 8\n',
            staging='standard_hourly_rate: "75000"\n',
        )
        settings = get_active_config("staging", config_dir=sets)
        assert settings.standard_hourly_rate == Decimal("75000")
        assert settings.max_workers == 8

    def test_missing_overlay_uses_defaults(self, tmp_path):
        sets = write_sets(tmp_path, "max_workers: 2\n")
        assert get_active_config("qa", config_dir=sets).max_workers == 2

    def test_missing_default_set(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config("test", config_dir=tmp_path)

    def test_unknown_key_rejected(self, tmp_path):
        sets = write_sets(tmp_path, "hourly: 5\n")
        with pytest.raises(ValueError, match="Unknown settings"):
            get_active_config("production", config_dir=sets)

    def test_invalid_values_rejected(self, tmp_path):
        sets = write_sets(tmp_path, 'default_tax_rate: "-0.1"\nmax_workers: 0\n')
        with pytest.raises(ValueError, match="validation failed"):
            get_active_config("production", config_dir=sets)

    def test_non_mapping_rejected(self, tmp_path):
        sets = write_sets(tmp_path, "- a\n- b\n")
        with pytest.raises(ValueError):
            get_active_config("production", config_dir=sets)

    def test_merge_layers(self):
        assert merge_layers({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}


class TestParsing:
    def test_floats_parse_through_their_repr(self):
        settings = parse_settings({"default_tax_rate": 0.13}, "test")
        assert settings.default_tax_rate == Decimal("0.13")

    def test_single_keyword_becomes_tuple(self):
        settings = parse_settings({"stage_keywords": "fase"}, "test")
        assert settings.stage_keywords == ("fase",)

    def test_bad_number(self):
        with pytest.raises(ValueError):
            parse_settings({"standard_hourly_rate": "mucho"}, "test")

    @pytest.mark.parametrize("value", ["false", "no", 0, 1])
    def test_override_flag_must_be_boolean(self, value):
        with pytest.raises(ValueError, match="allow_period_override"):
            parse_settings({"allow_period_override": value}, "test")

    def test_quoted_false_in_yaml_is_rejected(self, tmp_path):
        sets = write_sets(tmp_path, 'allow_period_override: "false"\n')
        with pytest.raises(ValueError):
            get_active_config("production", config_dir=sets)

    def test_checksum_is_order_independent(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

    def test_validate_settings(self):
        assert validate_settings(BillingSettings()) == []
        errors = validate_settings(BillingSettings(business_timezone="Mars/Olympus", max_workers=0))
        assert len(errors) == 2
