"""
Keyplan Client - Device flow authentication.

Every principal logs in through the OAuth2 device authorization grant:
the operator opens the verification URL, enters the user code and logs in
as the account that should act as that principal.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any, Protocol

import httpx
from loguru import logger

from keyplan.action.environment import AuthenticatedAccount, Environment
from keyplan.client.directory import DirectoryClient, entity_id
from keyplan.config.loader import require_auth_settings
from keyplan.core.exceptions import AuthenticationError, DirectoryError, DuplicateIdentityError
from keyplan.utils.logger import log_prefix

if TYPE_CHECKING:
    from keyplan.audit.logger import AuditLogger
    from keyplan.config.models import Config

DEVICE_AUTHORIZATION_PATH = "/login/oauth2/authorizedevice"
TOKEN_PATH = "/login/oauth2/token"
DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"


class DeviceCodeNotifier(Protocol):
    """Shows the operator where to log in."""

    def show_device_code(self, verification_uri: str, user_code: str, complete_uri: str | None = None) -> None:
        ...

    def info(self, message: str) -> None:
        ...


async def request_device_token(
    config: Config,
    notifier: DeviceCodeNotifier,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """
    Run the device authorization grant and return an access token.

    Raises:
        AuthenticationError: If the login was denied, expired or failed
    """
    auth = config.auth
    issuer = auth.issuer.rstrip("/")
    basic = (auth.client_id, auth.client_secret) if auth.client_secret else None

    async with httpx.AsyncClient(
        timeout=config.http.timeout,
        verify=config.http.verify_ssl,
        transport=transport,
    ) as http:
        device = await _post_form(
            http,
            issuer + DEVICE_AUTHORIZATION_PATH,
            {"client_id": auth.client_id, "scope": " ".join(auth.scopes)},
            basic,
        )
        notifier.show_device_code(
            device["verification_uri"],
            device["user_code"],
            device.get("verification_uri_complete"),
        )

        interval = int(device.get("interval", 5))
        expires_in = min(int(device.get("expires_in", config.http.device_flow_timeout)),
                         config.http.device_flow_timeout)
        deadline = time.monotonic() + expires_in
        form = {
            "grant_type": DEVICE_CODE_GRANT,
            "device_code": device["device_code"],
            "client_id": auth.client_id,
        }

        while time.monotonic() < deadline:
            await asyncio.sleep(interval)
            try:
                response = await http.post(issuer + TOKEN_PATH, data=form, auth=basic)
            except httpx.HTTPError as e:
                raise AuthenticationError(f"Unable to reach {issuer + TOKEN_PATH}: {e}") from e
            body = _json(response)
            if response.is_success and "access_token" in body:
                return body["access_token"]

            error = body.get("error")
            if error == "authorization_pending":
                continue
            if error == "slow_down":
                interval += 5
                continue
            description = body.get("error_description") or error or f"HTTP {response.status_code}"
            raise AuthenticationError(f"Device login failed: {description}", {"error": error})

    raise AuthenticationError("Device login expired before it was completed")


async def authenticate_with_device_flow(
    config: Config,
    notifier: DeviceCodeNotifier,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AuthenticatedAccount:
    """
    Log in one principal and check it is fit for automation.

    Raises:
        AuthenticationError: If login or the sanity checks fail
    """
    token = await request_device_token(config, notifier, transport)
    client = DirectoryClient(
        config.auth.issuer,
        token,
        timeout=config.http.timeout,
        verify_ssl=config.http.verify_ssl,
        transport=transport,
    )
    try:
        try:
            account = await client.me()
        except DirectoryError as e:
            raise AuthenticationError(f"Unable to fetch account: {e}") from e
        await check_keyhub_admin(client, account)
    except AuthenticationError:
        await client.aclose()
        raise
    return AuthenticatedAccount(client=client, account=account)


async def check_keyhub_admin(client: DirectoryClient, account: dict[str, Any]) -> None:
    """
    Require a KeyHub administrator that is in no other group.

    Raises:
        AuthenticationError: If the account fails a check
    """
    try:
        settings = await client.me_settings()
        if not settings.get("keyHubAdmin"):
            raise AuthenticationError("User fails sanity checks: user is not a KeyHub administrator")

        own_account = await client.account_by_id(entity_id(account), additional=["groups"])
    except DirectoryError as e:
        raise AuthenticationError(f"User fails sanity checks: {e}") from e

    groups = (own_account.get("additionalObjects") or {}).get("groups", {}).get("items") or []
    if len(groups) > 1:
        names = ", ".join(g.get("name", "?") for g in groups)
        raise AuthenticationError(
            f"User fails sanity checks: user is member of groups other than KeyHub Administrator: {names}"
        )


async def setup_environment(
    config: Config,
    notifier: DeviceCodeNotifier,
    audit: AuditLogger | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Environment:
    """
    Log in the two mandatory principals and fetch the vault recovery key.

    Raises:
        AuthenticationError: If a login fails
        DuplicateIdentityError: If both logins are the same account
    """
    require_auth_settings(config)

    notifier.info("Log in with the first account")
    account1 = await _login(config, notifier, "first", transport)
    notifier.info("Log in with the second account (use a private window or another browser)")
    try:
        account2 = await _login(config, notifier, "second", transport)
    except AuthenticationError:
        await account1.client.aclose()
        raise

    env = Environment(account1=account1, account2=account2)
    try:
        if account1.uuid == account2.uuid:
            raise DuplicateIdentityError(account1.username)

        record_uuid = config.auth.vault_recovery_record_uuid
        if record_uuid:
            try:
                record = await account1.client.find_vault_record(record_uuid, additional=["secret"])
            except DirectoryError as e:
                raise AuthenticationError(
                    f"Unable to fetch vault recovery record with uuid {record_uuid}: {e}"
                ) from e
            env.vault_recovery_key = ((record.get("additionalObjects") or {}).get("secret") or {}).get("file")
    except AuthenticationError:
        await env.aclose()
        raise

    if audit:
        audit.log_principal(account1.username, "account #1")
        audit.log_principal(account2.username, "account #2")
    return env


async def authenticate_third_principal(
    config: Config,
    notifier: DeviceCodeNotifier,
    audit: AuditLogger | None,
    env: Environment,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """
    Log in the third principal and add it to the environment.

    Raises:
        AuthenticationError: If login fails
        DuplicateIdentityError: If it is principal 1 or 2 again
    """
    notifier.info("This plan needs a third account, log in with it now")
    account3 = await _login(config, notifier, "third", transport)
    try:
        env.set_account3(account3)
    except DuplicateIdentityError:
        await account3.client.aclose()
        raise
    if audit:
        audit.log_principal(account3.username, "account #3")


async def _login(
    config: Config,
    notifier: DeviceCodeNotifier,
    which: str,
    transport: httpx.AsyncBaseTransport | None,
) -> AuthenticatedAccount:
    try:
        account = await authenticate_with_device_flow(config, notifier, transport)
    except AuthenticationError as e:
        raise AuthenticationError(f"Unable to authenticate {which} user: {e}") from e
    logger.info(f"{log_prefix('🔐')} Authenticated {which} user as {account.username}")
    return account


async def _post_form(
    http: httpx.AsyncClient,
    url: str,
    form: dict[str, str],
    basic: tuple[str, str] | None,
) -> dict[str, Any]:
    try:
        response = await http.post(url, data=form, auth=basic)
    except httpx.HTTPError as e:
        raise AuthenticationError(f"Unable to reach {url}: {e}") from e
    body = _json(response)
    if response.is_error:
        description = body.get("error_description") or body.get("error") or f"HTTP {response.status_code}"
        raise AuthenticationError(f"Device authorization failed: {description}")
    return body


def _json(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
