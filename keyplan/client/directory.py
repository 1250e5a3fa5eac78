"""
Keyplan Client - KeyHub directory REST client.

Thin async wrapper around the KeyHub REST API. Entities are plain JSON
dicts as returned by the service; lists come wrapped as ``{"items": [...]}``.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from keyplan.core.exceptions import (
    DirectoryConnectionError,
    DirectoryServiceError,
    MissingLinkError,
    RecordNotFoundError,
)
from keyplan.core.types import RequestStatus

API_PATH = "/keyhub/rest/v1"
MEDIA_TYPE = "application/vnd.topicus.keyhub+json;version=latest"

Entity = dict[str, Any]


def first(wrapper: Entity | None, kind: str = "record", query: dict[str, Any] | None = None) -> Entity:
    """
    Return the first item of a linkable wrapper.

    Raises:
        RecordNotFoundError: If the wrapper holds no items.
    """
    items = (wrapper or {}).get("items") or []
    if not items:
        raise RecordNotFoundError(kind, query or {})
    return items[0]


def find_link(entity: Entity, rel: str) -> Entity:
    """Find the link with the given relation on an entity."""
    for link in entity.get("links") or []:
        if link.get("rel") == rel:
            return link
    raise MissingLinkError(rel)


def self_link(entity: Entity) -> Entity:
    """The ``self`` link of an entity."""
    return find_link(entity, "self")


def koppeling_link(entity: Entity) -> Entity:
    """The ``koppeling`` link, pointing at the other side of a membership."""
    return find_link(entity, "koppeling")


def entity_id(entity: Entity) -> int:
    """Numeric id from the ``self`` link."""
    return int(self_link(entity)["id"])


class DirectoryClient:
    """
    Async client for one authenticated session.

    Every call awaits the full response; cancelling the calling task
    cancels the in-flight request.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Issuer URL of the KeyHub instance
            token: OAuth2 access token
            timeout: Request timeout in seconds
            verify_ssl: Verify TLS certificates
            transport: Optional transport override (tests)
        """
        self.base_url = base_url.rstrip("/") + API_PATH
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Accept": MEDIA_TYPE,
                "Content-Type": MEDIA_TYPE,
                "Authorization": f"Bearer {token}",
            },
            timeout=timeout,
            verify=verify_ssl,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> DirectoryClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        """Send a request and decode the JSON response."""
        logger.debug(f"{method} {path} {params or ''}")
        try:
            response = await self._http.request(method, path, params=params, json=body)
        except httpx.HTTPError as e:
            raise DirectoryConnectionError(f"{self.base_url}{path}", str(e)) from e

        if response.is_error:
            raise _error_from_response(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def me(self) -> Entity:
        """The account owning this session."""
        return await self._request("GET", "/account/me")

    async def me_settings(self) -> Entity:
        """Settings of the account owning this session."""
        return await self._request("GET", "/account/me/settings")

    async def find_account(self, uuid: str, additional: list[str] | None = None) -> Entity:
        """Look up an account by uuid."""
        params = _query(uuid=[uuid], additional=additional)
        return first(await self._request("GET", "/account", params), "account", {"uuid": uuid})

    async def account_by_id(self, account_id: int, additional: list[str] | None = None) -> Entity:
        """Fetch an account by numeric id."""
        return await self._request("GET", f"/account/{account_id}", _query(additional=additional))

    # -------------------------------------------------------------------------
    # Groups
    # -------------------------------------------------------------------------

    async def find_group(self, uuid: str, additional: list[str] | None = None) -> Entity:
        """Look up a group by uuid."""
        params = _query(uuid=[uuid], additional=additional)
        return first(await self._request("GET", "/group", params), "group", {"uuid": uuid})

    async def group_membership(self, group_id: int, account_id: int) -> Entity:
        """Fetch the membership of one account in a group."""
        params = {"account": [account_id]}
        wrapper = await self._request("GET", f"/group/{group_id}/account", params)
        return first(wrapper, "group membership", {"group": group_id, "account": account_id})

    async def update_membership(self, membership: Entity) -> Entity:
        """Write back a membership (e.g. changed rights)."""
        path = f"/group/{entity_id(membership)}/account/{koppeling_link(membership)['id']}"
        return await self._request("PUT", path, body=membership)

    async def delete_membership(self, membership: Entity) -> None:
        """Remove an account from a group."""
        path = f"/group/{entity_id(membership)}/account/{koppeling_link(membership)['id']}"
        await self._request("DELETE", path)

    # -------------------------------------------------------------------------
    # Organizational units
    # -------------------------------------------------------------------------

    async def find_org_unit(self, uuid: str) -> Entity:
        """Look up an organizational unit by uuid."""
        wrapper = await self._request("GET", "/organizationalunit", _query(uuid=[uuid]))
        return first(wrapper, "organizational unit", {"uuid": uuid})

    async def org_unit_accounts(self, org_unit_id: int, account_id: int) -> list[Entity]:
        """Memberships of one account in an organizational unit."""
        params = {"account": [account_id]}
        wrapper = await self._request("GET", f"/organizationalunit/{org_unit_id}/account", params)
        return (wrapper or {}).get("items") or []

    async def add_account_to_org_unit(self, org_unit_id: int, account: Entity) -> Entity:
        """Add an account to an organizational unit."""
        body = {
            "items": [
                {
                    "$type": "organization.OrganizationalUnitAccount",
                    "links": [self_link(account)],
                }
            ]
        }
        wrapper = await self._request("POST", f"/organizationalunit/{org_unit_id}/account", body=body)
        return first(wrapper, "organizational unit account")

    # -------------------------------------------------------------------------
    # Systems
    # -------------------------------------------------------------------------

    async def find_system(self, uuid: str) -> Entity:
        """Look up a provisioned system by uuid."""
        wrapper = await self._request("GET", "/system", _query(uuid=[uuid]))
        return first(wrapper, "system", {"uuid": uuid})

    async def find_group_on_system(self, system_id: int, name_in_system: str) -> Entity:
        """Look up a group on a system by its name in that system."""
        params = {"nameInSystem": [name_in_system]}
        wrapper = await self._request("GET", f"/system/{system_id}/group", params)
        return first(wrapper, "group on system", {"system": system_id, "nameInSystem": name_in_system})

    # -------------------------------------------------------------------------
    # Vault
    # -------------------------------------------------------------------------

    async def find_vault_record(self, uuid: str, additional: list[str] | None = None) -> Entity:
        """Look up a vault record by uuid."""
        params = _query(uuid=[uuid], additional=additional)
        return first(await self._request("GET", "/vaultrecord", params), "vault record", {"uuid": uuid})

    # -------------------------------------------------------------------------
    # Modification requests
    # -------------------------------------------------------------------------

    async def submit_request(self, request: Entity) -> Entity:
        """Submit a modification request; returns the pending request."""
        wrapper = await self._request("POST", "/request", body={"items": [request]})
        return first(wrapper, "modification request")

    async def approve_request(self, request: Entity, feedback: str | None = None) -> Entity:
        """Accept a pending modification request."""
        accepted = {**request, "status": RequestStatus.ALLOWED.value}
        if feedback is not None:
            accepted["feedback"] = feedback
        return await self._request("PUT", f"/request/{entity_id(request)}", body=accepted)


def _query(**params: Any) -> dict[str, Any]:
    return {k: v for k, v in params.items() if v}


def _error_from_response(response: httpx.Response) -> DirectoryServiceError:
    """Turn an error response into the richest error available."""
    try:
        report = response.json()
    except ValueError:
        report = None

    if isinstance(report, dict) and ("code" in report or "applicationError" in report):
        return DirectoryServiceError.from_report(report, response.status_code)
    return DirectoryServiceError(
        code=response.status_code,
        message=response.text or response.reason_phrase,
    )
