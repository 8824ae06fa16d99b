"""
Tests for the configuration manager.
"""

import pytest

from config import ConfigurationManager, PROJECT_ROOT, get_config
from ecoinvoice.utils.exceptions import ConfigurationError


class TestConfigurationManager:

    def test_dot_notation(self):
        assert get_config("extraction.currency.default") == "NOK"
        assert get_config("finance.discount_rate") == 0.08
        assert get_config("no.such.key", "fallback") == "fallback"

    def test_singleton(self):
        assert ConfigurationManager() is ConfigurationManager()

    def test_rule_paths_resolved(self):
        path = ConfigurationManager().path("paths.category_rules")
        assert path.is_absolute()
        assert path == PROJECT_ROOT / "config" / "rules" / "categories.yaml"

    def test_path_without_value(self):
        with pytest.raises(ConfigurationError):
            ConfigurationManager().path("paths.nothing")

    def test_custom_file(self, tmp_path):
        settings = tmp_path / "settings.yaml"
        settings.write_text("finance:\n  discount_rate: 0.05\n", encoding="utf-8")

        ConfigurationManager.reset()
        ConfigurationManager(str(settings))
        assert get_config("finance.discount_rate") == 0.05

    def test_missing_file(self, tmp_path):
        ConfigurationManager.reset()
        with pytest.raises(ConfigurationError):
            ConfigurationManager(str(tmp_path / "absent.yaml"))

    def test_not_a_mapping(self, tmp_path):
        settings = tmp_path / "settings.yaml"
        settings.write_text("- a\n- b\n", encoding="utf-8")

        ConfigurationManager.reset()
        with pytest.raises(ConfigurationError):
            ConfigurationManager(str(settings))
