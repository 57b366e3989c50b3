"""
Unit tests for CLI configuration management.
"""

import json

import pytest
import yaml

from cli.config import (
    DEFAULT_CONFIG, ConfigurationManager, environment_overrides, parse_env_value
)


@pytest.fixture
def empty_config_file(tmp_path):
    """Explicit empty config file so search paths are skipped."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({}))
    return path


class TestConfigurationManager:
    """Test hierarchical configuration loading."""

    def test_defaults(self, empty_config_file):
        manager = ConfigurationManager(config_file=str(empty_config_file))

        assert manager.get('registry.cache_capacity') == DEFAULT_CONFIG['registry']['cache_capacity']
        assert manager.get('registry.private_collection') == 'assetPrivateDetails'
        assert manager.get('ledger.organization') == 'Org1MSP'
        assert manager.get('cli.output_format') == 'table'
        assert manager.get('missing.key', 'fallback') == 'fallback'
        assert manager.get_sources() == ['defaults']

    def test_home_path_expanded(self, empty_config_file):
        manager = ConfigurationManager(config_file=str(empty_config_file))
        assert '~' not in manager.get('ledger.data_dir')

    def test_yaml_file_overrides_defaults(self, tmp_path):
        path = tmp_path / "assetreg.yml"
        path.write_text(yaml.safe_dump({
            'registry': {'cache_capacity': 42},
            'ledger': {'organization': 'Org2MSP'},
        }))

        manager = ConfigurationManager(config_file=str(path))

        assert manager.get('registry.cache_capacity') == 42
        assert manager.get('ledger.organization') == 'Org2MSP'
        assert manager.get('registry.private_collection') == 'assetPrivateDetails'
        assert f"file:{path}" in manager.get_sources()

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "assetreg.yml"
        path.write_text(yaml.safe_dump({'registry': {'cache_capacity': 42}}))
        monkeypatch.setenv('ASSETREG_REGISTRY_CACHE_CAPACITY', '5')
        monkeypatch.setenv('ASSETREG_LEDGER_LOCK_TIMEOUT', '2.5')
        monkeypatch.setenv('ASSETREG_LEDGER_ORGANIZATION', 'Org3MSP')

        manager = ConfigurationManager(config_file=str(path))

        assert manager.get('registry.cache_capacity') == 5
        assert manager.get('ledger.lock_timeout') == 2.5
        assert manager.get('ledger.organization') == 'Org3MSP'
        assert manager.get_sources()[-1] == 'environment'

    def test_development_profile(self, empty_config_file):
        manager = ConfigurationManager(config_file=str(empty_config_file), profile='development')

        assert manager.get('registry.cache_capacity') == 100
        assert manager.get('logging.level') == 'DEBUG'
        assert 'profile:development' in manager.get_sources()

    def test_unreadable_file_ignored(self, tmp_path):
        path = tmp_path / "broken.yml"
        path.write_text("registry: [unclosed")

        manager = ConfigurationManager(config_file=str(path))

        assert manager.get('registry.cache_capacity') == 1000

    def test_validate_defaults(self, empty_config_file):
        assert ConfigurationManager(config_file=str(empty_config_file)).validate() == []

    def test_validate_reports_errors(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({
            'registry': {'cache_capacity': 0, 'private_collection': ' '},
            'cli': {'output_format': 'xml'},
            'logging': {'level': 'LOUD'},
        }))

        errors = ConfigurationManager(config_file=str(path)).validate()

        assert len(errors) == 4
        fields = sorted(error.split(":")[0] for error in errors)
        assert fields == [
            "cli.output_format",
            "logging.level",
            "registry.cache_capacity",
            "registry.private_collection",
        ]

    def test_string_capacity_rejected(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("registry:\n  cache_capacity: \"10\"\n")

        errors = ConfigurationManager(config_file=str(path)).validate()

        assert [error.split(":")[0] for error in errors] == ["registry.cache_capacity"]

    def test_settings_model(self, empty_config_file):
        settings = ConfigurationManager(config_file=str(empty_config_file), profile="development").settings()

        assert settings.registry.cache_capacity == 100
        assert settings.ledger.organization == "Org1MSP"
        assert settings.logging.level == "DEBUG"


class TestEnvironmentOverrides:
    """Test mapping of environment variables to settings."""

    def test_section_split(self):
        overrides = environment_overrides({
            "ASSETREG_REGISTRY_PRIVATE_COLLECTION": "vault",
            "ASSETREG_CLI_VERBOSE": "2",
            "OTHER_VARIABLE": "x",
        })

        assert overrides == {
            "registry": {"private_collection": "vault"},
            "cli": {"verbose": 2},
        }

    @pytest.mark.parametrize("raw, parsed", [
        ("true", True),
        ("No", False),
        ("12", 12),
        ("0.5", 0.5),
        ("Org2MSP", "Org2MSP"),
    ])
    def test_parse_env_value(self, raw, parsed):
        assert parse_env_value(raw) == parsed
