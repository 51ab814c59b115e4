"""
Unit tests for config.py.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from config import Config, PlatformDefaults, load_config, platform_defaults


class TestConfig:
    def test_defaults(self):
        cfg = Config(_env_file=None)
        assert cfg.default_fee_type == "fixed"
        assert cfg.default_service_fee_fixed == 2.00
        assert cfg.default_tax_rate == 0.085
        assert cfg.default_processor_fee_percentage == 2.9
        assert cfg.default_processor_flat_fee == 0.30
        assert cfg.default_venue_fee_percentage == 0.0
        assert cfg.split_tolerance_cents == 1
        assert cfg.analytics_status_filter == "completed"
        assert cfg.log_level == "INFO"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_TAX_RATE", "0.07")
        monkeypatch.setenv("DEFAULT_FEE_TYPE", "hybrid")
        cfg = Config(_env_file=None)
        assert cfg.default_tax_rate == 0.07
        assert cfg.default_fee_type == "hybrid"

    def test_processor_percentage_must_be_below_100(self):
        with pytest.raises(ValidationError):
            Config(_env_file=None, default_processor_fee_percentage=100)

    def test_tax_rate_is_fraction(self):
        with pytest.raises(ValidationError):
            Config(_env_file=None, default_tax_rate=8.5)

    def test_unknown_fee_type(self):
        with pytest.raises(ValidationError):
            Config(_env_file=None, default_fee_type="tiered")

    def test_negative_flat_fee(self):
        with pytest.raises(ValidationError):
            Config(_env_file=None, default_processor_flat_fee=-0.30)

    def test_tolerance_capped_at_one_cent(self):
        with pytest.raises(ValidationError):
            Config(_env_file=None, split_tolerance_cents=5)

    def test_frozen(self):
        cfg = Config(_env_file=None)
        with pytest.raises(ValidationError):
            cfg.default_tax_rate = 0.1

    def test_load_config(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert load_config().log_level == "DEBUG"


class TestPlatformDefaults:
    def test_float_settings_become_exact_decimals(self):
        cfg = Config(_env_file=None, default_tax_rate=0.0725, default_processor_flat_fee=0.3)
        d = platform_defaults(cfg)
        assert d.tax_rate == Decimal("0.0725")
        assert d.processor_flat_fee == Decimal("0.3")
        assert d.processor_fee_percentage == Decimal("2.9")

    def test_matches_dataclass_defaults(self):
        assert platform_defaults(Config(_env_file=None)) == PlatformDefaults()
