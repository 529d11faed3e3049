"""Tests for registry-style storage configuration loading."""

import pytest

from bos_driver.config_loader import (
    StorageConfig,
    load_storage_config,
    parse_storage_section,
    substitute_env_vars,
)
from bos_driver.exceptions import ConfigurationError


class TestSubstituteEnvVars:
    """Test suite for environment variable substitution."""

    def test_required_variable(self, monkeypatch):
        """Test ${VAR} substitution."""
        monkeypatch.setenv("BOS_AK", "ak-123")

        assert substitute_env_vars("${BOS_AK}") == "ak-123"

    def test_missing_required_variable(self, monkeypatch):
        """Test that an unset ${VAR} raises ConfigurationError."""
        monkeypatch.delenv("BOS_MISSING", raising=False)

        with pytest.raises(ConfigurationError, match="BOS_MISSING"):
            substitute_env_vars("${BOS_MISSING}")

    def test_default_used_when_unset_or_empty(self, monkeypatch):
        """Test ${VAR:-default} falls back for unset and empty values."""
        monkeypatch.delenv("BOS_ENDPOINT", raising=False)
        assert substitute_env_vars("${BOS_ENDPOINT:-bj.bcebos.com}") == "bj.bcebos.com"

        monkeypatch.setenv("BOS_ENDPOINT", "")
        assert substitute_env_vars("${BOS_ENDPOINT:-bj.bcebos.com}") == "bj.bcebos.com"

        monkeypatch.setenv("BOS_ENDPOINT", "gz.bcebos.com")
        assert substitute_env_vars("${BOS_ENDPOINT:-bj.bcebos.com}") == "gz.bcebos.com"

    def test_escaped_dollar(self):
        """Test that $$ produces a literal dollar sign."""
        assert substitute_env_vars("pa$$word") == "pa$word"

    def test_nested_structures(self, monkeypatch):
        """Test substitution inside dicts and lists; other types unchanged."""
        monkeypatch.setenv("BUCKET", "registry")

        result = substitute_env_vars({"bucket": "${BUCKET}", "list": ["${BUCKET}"], "n": 5})

        assert result == {"bucket": "registry", "list": ["registry"], "n": 5}


class TestParseStorageSection:
    """Test suite for picking the driver section."""

    def test_single_driver(self):
        """Test that the one driver section is returned with its parameters."""
        config = parse_storage_section(
            {"storage": {"bos": {"bucket": "registry"}, "delete": {"enabled": True}}}
        )

        assert config == StorageConfig(driver="bos", parameters={"bucket": "registry"})

    def test_driver_with_no_parameters(self):
        """Test that an empty driver section yields empty parameters."""
        config = parse_storage_section({"storage": {"bos": None}})

        assert config.parameters == {}

    def test_missing_storage_section(self):
        """Test that a document without storage is rejected."""
        with pytest.raises(ConfigurationError, match="storage"):
            parse_storage_section({"http": {}})

    def test_no_driver(self):
        """Test that only reserved keys is an error."""
        with pytest.raises(ConfigurationError, match="No storage driver"):
            parse_storage_section({"storage": {"maintenance": {}, "cache": {}}})

    def test_multiple_drivers(self):
        """Test that two driver sections are rejected."""
        with pytest.raises(ConfigurationError, match="Exactly one"):
            parse_storage_section({"storage": {"bos": {}, "s3": {}}})

    def test_parameters_must_be_mapping(self):
        """Test that a scalar driver section is rejected."""
        with pytest.raises(ConfigurationError):
            parse_storage_section({"storage": {"bos": "oops"}})


class TestLoadStorageConfig:
    """Test suite for load_storage_config."""

    def test_load_from_file(self, tmp_path, monkeypatch):
        """Test loading and substituting a registry config file."""
        monkeypatch.setenv("BOS_ACCESS_KEY_ID", "ak")
        monkeypatch.setenv("BOS_SECRET_ACCESS_KEY", "sk")
        monkeypatch.delenv("BOS_ENDPOINT", raising=False)
        config_file = tmp_path / "config.yml"
        config_file.write_text(
            "version: 0.1\n"
            "storage:\n"
            "  bos:\n"
            "    accesskeyid: ${BOS_ACCESS_KEY_ID}\n"
            "    accesskeysecret: ${BOS_SECRET_ACCESS_KEY}\n"
            "    bucket: registry\n"
            "    endpoint: ${BOS_ENDPOINT:-}\n"
        )

        config = load_storage_config(str(config_file))

        assert config.driver == "bos"
        assert config.parameters == {
            "accesskeyid": "ak",
            "accesskeysecret": "sk",
            "bucket": "registry",
            "endpoint": "",
        }

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_storage_config(str(tmp_path / "nope.yml"))

    def test_invalid_yaml(self, tmp_path):
        """Test that malformed YAML is a configuration error."""
        config_file = tmp_path / "bad.yml"
        config_file.write_text("storage: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_storage_config(str(config_file))
