"""Tests for configuration validation with Pydantic."""

import pytest
import yaml
from pydantic import ValidationError

from pagewright.domain.config import AppConfig, ConfluenceConfig, RetryConfig
from pagewright.infrastructure.config.config_manager import ConfigManager, ConfigurationError

ENV_VARS = (
    "CONFLUENCE_BASE_URL",
    "CONFLUENCE_USERNAME",
    "CONFLUENCE_PASSWORD",
    "CONFLUENCE_API_TOKEN",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No CONFLUENCE_* variables and no config file above the working directory"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _write_config(path, data):
    config_path = path / ".pagewright.yml"
    config_path.write_text(yaml.dump(data), encoding="utf-8")
    return config_path


class TestConfluenceConfigValidation:
    """Tests for ConfluenceConfig validation."""

    def test_valid_confluence_config(self):
        """Test valid connection configuration"""
        config = ConfluenceConfig(base_url="https://example.atlassian.net/wiki", username="me", timeout=10)
        assert config.base_url == "https://example.atlassian.net/wiki"
        assert config.timeout == 10.0
        assert config.cloud is None

    def test_timeout_zero(self):
        """Test timeout must be positive"""
        with pytest.raises(ValidationError, match="timeout"):
            ConfluenceConfig(timeout=0)


class TestRetryConfigValidation:
    """Tests for RetryConfig validation."""

    def test_valid_retry_config(self):
        """Test valid retry configuration"""
        config = RetryConfig(max_attempts=3, initial_delay=0.5, backoff_multiplier=3.0, jitter=0.1)
        assert config.max_attempts == 3
        assert config.jitter == 0.1
        assert config.max_rate_limit_rounds is None

    def test_max_attempts_zero(self):
        """Test max_attempts must be positive"""
        with pytest.raises(ValidationError, match="max_attempts"):
            RetryConfig(max_attempts=0)

    def test_max_attempts_too_high(self):
        """Test max_attempts above maximum"""
        with pytest.raises(ValidationError, match="max_attempts"):
            RetryConfig(max_attempts=21)

    def test_backoff_multiplier_too_low(self):
        """Test backoff_multiplier below 1.0"""
        with pytest.raises(ValidationError, match="backoff_multiplier"):
            RetryConfig(backoff_multiplier=0.5)

    def test_jitter_above_one(self):
        """Test jitter above 1.0"""
        with pytest.raises(ValidationError, match="jitter"):
            RetryConfig(jitter=1.5)

    def test_negative_rate_limit_delay(self):
        """Test rate_limit_delay cannot be negative"""
        with pytest.raises(ValidationError, match="rate_limit_delay"):
            RetryConfig(rate_limit_delay=-1)

    def test_zero_rounds_rejected(self):
        """Test max_rate_limit_rounds must be at least one when set"""
        with pytest.raises(ValidationError, match="max_rate_limit_rounds"):
            RetryConfig(max_rate_limit_rounds=0)


class TestAppConfigValidation:
    """Tests for AppConfig validation."""

    def test_valid_app_config(self):
        """Test default application configuration"""
        config = AppConfig()
        assert config.retry.max_attempts == 5
        assert config.confluence.timeout == 60.0

    def test_unknown_field_rejected(self):
        """Test unknown top-level sections are rejected"""
        with pytest.raises(ValidationError):
            AppConfig(server={})

    def test_nested_validation(self):
        """Test nested sections are validated"""
        with pytest.raises(ValidationError, match="jitter"):
            AppConfig(retry={"jitter": 2.0})


class TestConfigManagerValidation:
    """Tests for ConfigManager validation."""

    def test_load_valid_config_from_file(self, clean_env):
        """Test loading valid configuration from file"""
        config_path = _write_config(
            clean_env,
            {
                "confluence": {"base_url": "https://wiki.example.com", "username": "bot"},
                "retry": {"max_attempts": 3, "max_rate_limit_rounds": 4},
            },
        )

        manager = ConfigManager(config_path=config_path)

        assert manager.config.confluence.base_url == "https://wiki.example.com"
        assert manager.config.retry.max_attempts == 3
        # Unspecified values keep their defaults
        assert manager.config.retry.initial_delay == 1.0

    def test_config_path_as_string(self, clean_env):
        """Test config path may be passed as a string"""
        config_path = _write_config(clean_env, {"retry": {"jitter": 0.0}})

        manager = ConfigManager(config_path=str(config_path))

        assert manager.get("retry.jitter") == 0.0

    def test_load_invalid_config_raises_error(self, clean_env):
        """Test loading invalid configuration raises error"""
        config_path = _write_config(clean_env, {"retry": {"max_attempts": 0}})

        with pytest.raises(ConfigurationError, match="retry.max_attempts"):
            ConfigManager(config_path=config_path)

    def test_unknown_section_raises_error(self, clean_env):
        """Test unknown sections in the file are rejected"""
        config_path = _write_config(clean_env, {"llm": {"provider": "mock"}})

        with pytest.raises(ConfigurationError, match="Configuration validation failed"):
            ConfigManager(config_path=config_path)

    def test_malformed_yaml_raises_error(self, clean_env):
        """Test unparsable YAML is reported as configuration error"""
        config_path = clean_env / ".pagewright.yml"
        config_path.write_text("retry: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Failed to load config"):
            ConfigManager(config_path=config_path)

    def test_non_mapping_raises_error(self, clean_env):
        """Test a YAML list at top level is rejected"""
        config_path = clean_env / ".pagewright.yml"
        config_path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="mapping"):
            ConfigManager(config_path=config_path)

    def test_default_config_is_valid(self, clean_env):
        """Test default configuration is valid"""
        manager = ConfigManager()
        assert manager.config_path is None
        assert manager.config.confluence.base_url is None

    def test_finds_config_in_parent_directory(self, clean_env, monkeypatch):
        """Test config file is searched upwards from the working directory"""
        _write_config(clean_env, {"confluence": {"base_url": "https://found.example.com"}})
        nested = clean_env / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        manager = ConfigManager()

        assert manager.config_path.resolve() == (clean_env / ".pagewright.yml").resolve()
        assert manager.get_confluence_config().base_url == "https://found.example.com"

    def test_get_typed_config_sections(self, clean_env):
        """Test typed section getters"""
        manager = ConfigManager()

        assert isinstance(manager.get_confluence_config(), ConfluenceConfig)
        assert isinstance(manager.get_retry_config(), RetryConfig)

    def test_get_dot_notation(self, clean_env):
        """Test get() with dot notation and defaults"""
        manager = ConfigManager()

        assert manager.get("retry.max_attempts") == 5
        assert manager.get("retry")["backoff_multiplier"] == 2.0
        assert manager.get("retry.nope", "fallback") == "fallback"
        assert manager.get("confluence.timeout.deeper") is None

    def test_env_overrides_work(self, clean_env, monkeypatch):
        """Test CONFLUENCE_* environment variables override the file"""
        config_path = _write_config(
            clean_env, {"confluence": {"base_url": "https://file.example.com", "password": "from-file"}}
        )
        monkeypatch.setenv("CONFLUENCE_BASE_URL", "https://env.example.com")
        monkeypatch.setenv("CONFLUENCE_USERNAME", "env-user")
        monkeypatch.setenv("CONFLUENCE_PASSWORD", "env-password")

        manager = ConfigManager(config_path=config_path)

        confluence = manager.get_confluence_config()
        assert confluence.base_url == "https://env.example.com"
        assert confluence.username == "env-user"
        assert confluence.password == "env-password"

    def test_api_token_wins_over_password(self, clean_env, monkeypatch):
        """Test CONFLUENCE_API_TOKEN takes precedence over CONFLUENCE_PASSWORD"""
        monkeypatch.setenv("CONFLUENCE_PASSWORD", "pw")
        monkeypatch.setenv("CONFLUENCE_API_TOKEN", "token")

        manager = ConfigManager()

        assert manager.get_confluence_config().password == "token"
