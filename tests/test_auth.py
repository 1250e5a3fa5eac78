"""
Tests for keyplan.client.auth module.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs

import httpx
import pytest
from conftest import make_account, make_principal

from keyplan.action.environment import Environment
from keyplan.client.auth import (
    authenticate_third_principal,
    check_keyhub_admin,
    request_device_token,
    setup_environment,
)
from keyplan.config.models import AuthenticationConfig, Config
from keyplan.core.exceptions import AuthenticationError, DuplicateIdentityError, MissingSettingError

DEVICE_RESPONSE = {
    "device_code": "device-123",
    "user_code": "ABCD-EFGH",
    "verification_uri": "https://keyhub.test/device",
    "verification_uri_complete": "https://keyhub.test/device?code=ABCD-EFGH",
    "interval": 5,
    "expires_in": 600,
}


@pytest.fixture
def config() -> Config:
    return Config(auth=AuthenticationConfig(issuer="https://keyhub.test", client_id="keyplan-cli"))


@pytest.fixture
def notifier() -> MagicMock:
    return MagicMock()


@pytest.fixture
def no_sleep():
    with patch("keyplan.client.auth.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


def token_transport(*token_responses: httpx.Response) -> httpx.MockTransport:
    """Device endpoint answering once, token endpoint answering in order."""
    responses = list(token_responses)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/login/oauth2/authorizedevice":
            return httpx.Response(200, json=DEVICE_RESPONSE)
        assert request.url.path == "/login/oauth2/token"
        form = parse_qs(request.content.decode())
        assert form["device_code"] == ["device-123"]
        return responses.pop(0)

    return httpx.MockTransport(handler)


class TestDeviceFlow:
    """Tests for the OAuth2 device authorization grant."""

    @pytest.mark.asyncio
    async def test_polls_until_authorized(self, config, notifier, no_sleep) -> None:
        """Pending answers are polled until a token arrives."""
        transport = token_transport(
            httpx.Response(400, json={"error": "authorization_pending"}),
            httpx.Response(200, json={"access_token": "token-1", "token_type": "Bearer"}),
        )

        token = await request_device_token(config, notifier, transport)

        assert token == "token-1"
        notifier.show_device_code.assert_called_once_with(
            "https://keyhub.test/device",
            "ABCD-EFGH",
            "https://keyhub.test/device?code=ABCD-EFGH",
        )
        assert no_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_slow_down_increases_interval(self, config, notifier, no_sleep) -> None:
        """slow_down adds five seconds to the polling interval."""
        transport = token_transport(
            httpx.Response(400, json={"error": "slow_down"}),
            httpx.Response(200, json={"access_token": "token-1"}),
        )

        await request_device_token(config, notifier, transport)

        assert [c.args[0] for c in no_sleep.await_args_list] == [5, 10]

    @pytest.mark.asyncio
    async def test_denied_login_fails(self, config, notifier, no_sleep) -> None:
        """Other errors end the login."""
        transport = token_transport(
            httpx.Response(400, json={"error": "access_denied", "error_description": "User declined"}),
        )

        with pytest.raises(AuthenticationError) as exc_info:
            await request_device_token(config, notifier, transport)
        assert "User declined" in str(exc_info.value)


class TestSanityChecks:
    """Tests for the KeyHub administrator checks."""

    @pytest.mark.asyncio
    async def test_non_admin_rejected(self) -> None:
        """Accounts without KeyHub admin rights are refused."""
        client = AsyncMock()
        client.me_settings.return_value = {"keyHubAdmin": False}

        with pytest.raises(AuthenticationError) as exc_info:
            await check_keyhub_admin(client, make_account("uuid-1", "admin1", 1))
        assert "not a KeyHub administrator" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_admin_in_other_groups_rejected(self) -> None:
        """Automation accounts may only be in the admin group."""
        client = AsyncMock()
        client.me_settings.return_value = {"keyHubAdmin": True}
        client.account_by_id.return_value = {
            "additionalObjects": {
                "groups": {"items": [{"name": "KeyHub Administrators"}, {"name": "Developers"}]}
            }
        }

        with pytest.raises(AuthenticationError) as exc_info:
            await check_keyhub_admin(client, make_account("uuid-1", "admin1", 1))
        assert "Developers" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_admin_only_in_admin_group_accepted(self) -> None:
        """A clean administrator passes."""
        client = AsyncMock()
        client.me_settings.return_value = {"keyHubAdmin": True}
        client.account_by_id.return_value = {
            "additionalObjects": {"groups": {"items": [{"name": "KeyHub Administrators"}]}}
        }

        await check_keyhub_admin(client, make_account("uuid-1", "admin1", 1))
        client.account_by_id.assert_awaited_once_with(1, additional=["groups"])


class TestSetupEnvironment:
    """Tests for logging in the principals."""

    @pytest.mark.asyncio
    async def test_two_distinct_principals(self, config, notifier) -> None:
        """Both logins end up in the environment."""
        first = make_principal("uuid-admin-1", "admin1", 1)
        second = make_principal("uuid-admin-2", "admin2", 2)

        with patch("keyplan.client.auth._login", AsyncMock(side_effect=[first, second])):
            env = await setup_environment(config, notifier)

        assert env.account1 is first
        assert env.account2 is second
        assert env.vault_recovery_key is None

    @pytest.mark.asyncio
    async def test_same_identity_twice_fails(self, config, notifier) -> None:
        """Logging in twice as the same account is refused."""
        first = make_principal("uuid-admin-1", "admin1", 1)
        again = make_principal("uuid-admin-1", "admin1", 1)

        with patch("keyplan.client.auth._login", AsyncMock(side_effect=[first, again])):
            with pytest.raises(DuplicateIdentityError):
                await setup_environment(config, notifier)

        first.client.aclose.assert_awaited_once()
        again.client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_vault_recovery_key_fetched(self, config, notifier) -> None:
        """The vault recovery key is read from the configured record."""
        config.auth.vault_recovery_record_uuid = "uuid-record"
        first = make_principal("uuid-admin-1", "admin1", 1)
        second = make_principal("uuid-admin-2", "admin2", 2)
        first.client.find_vault_record.return_value = {
            "additionalObjects": {"secret": {"file": "recovery-key"}}
        }

        with patch("keyplan.client.auth._login", AsyncMock(side_effect=[first, second])):
            env = await setup_environment(config, notifier)

        assert env.vault_recovery_key == "recovery-key"
        first.client.find_vault_record.assert_awaited_once_with("uuid-record", additional=["secret"])

    @pytest.mark.asyncio
    async def test_missing_issuer(self, notifier) -> None:
        """Login needs an issuer."""
        with pytest.raises(MissingSettingError):
            await setup_environment(Config(), notifier)


class TestThirdPrincipal:
    """Tests for the lazily added third account."""

    @pytest.mark.asyncio
    async def test_third_account_added(self, config, notifier, env: Environment) -> None:
        """A distinct third login is added once."""
        third = make_principal("uuid-admin-3", "admin3", 3)
        with patch("keyplan.client.auth._login", AsyncMock(return_value=third)):
            await authenticate_third_principal(config, notifier, None, env)
        assert env.account3 is third
        assert env.resolve_account_uuid("account-3-placeholder") == "uuid-admin-3"

    @pytest.mark.asyncio
    async def test_third_account_must_be_new(self, config, notifier, env: Environment) -> None:
        """Reusing principal 1 as third account is refused."""
        again = make_principal("uuid-admin-1", "admin1", 1)
        with patch("keyplan.client.auth._login", AsyncMock(return_value=again)):
            with pytest.raises(DuplicateIdentityError):
                await authenticate_third_principal(config, notifier, None, env)
        assert env.account3 is None
        again.client.aclose.assert_awaited_once()
