"""
Tests for keyplan.config module.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from keyplan.config.loader import load_config, require_auth_settings
from keyplan.config.models import DEFAULT_SCOPES, Config
from keyplan.core.exceptions import ConfigurationError, MissingSettingError
from keyplan.secrets.store import CLIENT_SECRET_NAME


def write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content)
    return path


@pytest.fixture
def no_secrets() -> MagicMock:
    store = MagicMock()
    store.get.return_value = None
    return store


class TestLoadConfig:
    """Tests for file, environment and keyring layering."""

    def test_defaults_without_file(self, tmp_path: Path, no_secrets: MagicMock) -> None:
        """A missing file gives defaults."""
        config = load_config(tmp_path / "missing.yaml", environ={}, secrets=no_secrets)
        assert config.auth.issuer == ""
        assert config.auth.scopes == DEFAULT_SCOPES
        assert config.http.timeout == 30.0

    def test_yaml_values(self, tmp_path: Path, no_secrets: MagicMock) -> None:
        """Values are read from YAML."""
        path = write(
            tmp_path,
            "auth:\n"
            "  issuer: https://keyhub.example.com\n"
            "  client_id: keyplan-cli\n"
            "  vault_recovery_record_uuid: uuid-record\n"
            "http:\n"
            "  timeout: 12.5\n",
        )
        config = load_config(path, environ={}, secrets=no_secrets)
        assert config.auth.issuer == "https://keyhub.example.com"
        assert config.auth.client_id == "keyplan-cli"
        assert config.auth.vault_recovery_record_uuid == "uuid-record"
        assert config.http.timeout == 12.5

    def test_environment_overrides_file(self, tmp_path: Path, no_secrets: MagicMock) -> None:
        """KEYPLAN_* variables win over the file."""
        path = write(tmp_path, "auth:\n  issuer: https://file.example.com\n  client_id: from-file\n")
        environ = {
            "KEYPLAN_ISSUER": "https://env.example.com",
            "KEYPLAN_VERIFY_SSL": "false",
        }
        config = load_config(path, environ=environ, secrets=no_secrets)
        assert config.auth.issuer == "https://env.example.com"
        assert config.auth.client_id == "from-file"
        assert config.http.verify_ssl is False

    def test_client_secret_from_keyring(self, tmp_path: Path) -> None:
        """The keyring supplies the secret when nothing else does."""
        store = MagicMock()
        store.get.return_value = "s3cret"
        config = load_config(tmp_path / "missing.yaml", environ={}, secrets=store)
        assert config.auth.client_secret == "s3cret"
        store.get.assert_called_once_with(CLIENT_SECRET_NAME)

    def test_client_secret_from_environment_skips_keyring(self, tmp_path: Path) -> None:
        """An explicit secret is not looked up."""
        store = MagicMock()
        config = load_config(
            tmp_path / "missing.yaml",
            environ={"KEYPLAN_CLIENT_SECRET": "from-env"},
            secrets=store,
        )
        assert config.auth.client_secret == "from-env"
        store.get.assert_not_called()

    def test_invalid_value(self, tmp_path: Path, no_secrets: MagicMock) -> None:
        """Validation errors become configuration errors."""
        path = write(tmp_path, "http:\n  timeout: -1\n")
        with pytest.raises(ConfigurationError):
            load_config(path, environ={}, secrets=no_secrets)

    def test_malformed_yaml(self, tmp_path: Path, no_secrets: MagicMock) -> None:
        """Unparsable files are reported."""
        path = write(tmp_path, "auth: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_config(path, environ={}, secrets=no_secrets)

    def test_non_mapping_file(self, tmp_path: Path, no_secrets: MagicMock) -> None:
        """The top level must be a mapping."""
        path = write(tmp_path, "- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            load_config(path, environ={}, secrets=no_secrets)


class TestRequireAuthSettings:
    """Tests for the login prerequisites."""

    def test_missing_issuer(self) -> None:
        """The issuer is required."""
        with pytest.raises(MissingSettingError) as exc_info:
            require_auth_settings(Config())
        assert "auth.issuer" in str(exc_info.value)

    def test_missing_client_id(self) -> None:
        """The client id is required."""
        config = Config.model_validate({"auth": {"issuer": "https://keyhub.example.com"}})
        with pytest.raises(MissingSettingError) as exc_info:
            require_auth_settings(config)
        assert "auth.client_id" in str(exc_info.value)

    def test_complete(self) -> None:
        """Issuer and client id are enough."""
        config = Config.model_validate({"auth": {"issuer": "https://k", "client_id": "c"}})
        require_auth_settings(config)
