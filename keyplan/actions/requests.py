"""
Keyplan Actions - Modification request helpers.

Changes guarded by separation of duties go through a modification request
that one principal submits and another approves.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger

from keyplan.client.directory import entity_id
from keyplan.core.types import AuthorizingGroupType

if TYPE_CHECKING:
    from keyplan.action.environment import AuthenticatedAccount

Entity = dict[str, Any]


async def submit_and_approve(
    request: Entity,
    requester: AuthenticatedAccount,
    approver: AuthenticatedAccount,
) -> Entity:
    """
    Submit ``request`` as ``requester`` and accept it as ``approver``.

    Raises:
        DirectoryError: If either step is rejected
    """
    pending = await requester.client.submit_request(request)
    logger.debug(f"Request {entity_id(pending)} submitted by {requester.username}")
    accepted = await approver.client.approve_request(pending, feedback=request.get("comment"))
    logger.debug(f"Request {entity_id(pending)} approved by {approver.username}")
    return accepted


def add_group_admin_request(account: Entity, group: Entity, private_key: str | None, comment: str) -> Entity:
    """Request to make ``account`` a manager of ``group``, unlocking its vault."""
    return {
        "$type": "request.AddGroupAdminRequest",
        "newAdmin": account,
        "group": group,
        "privateKey": private_key,
        "comment": comment,
    }


def setup_authorizing_group_request(
    subject: Entity,
    authorizing: Entity,
    authorization_type: AuthorizingGroupType,
    connect: bool,
    comment: str,
) -> Entity:
    """Request to connect or disconnect an authorizing group."""
    return {
        "$type": "request.SetupAuthorizingGroupRequest",
        "group": subject,
        "requestingGroup": authorizing,
        "authorizingGroupType": authorization_type.value,
        "connect": connect,
        "comment": comment,
    }


def transfer_group_on_system_ownership_request(group_on_system: Entity, group: Entity, comment: str) -> Entity:
    """Request to make ``group`` the owner of a group on a system."""
    return {
        "$type": "request.TransferGroupOnSystemOwnershipRequest",
        "groupOnSystem": group_on_system,
        "group": group,
        "comment": comment,
    }


def current_authorizing_group(subject: Entity, authorization_type: AuthorizingGroupType) -> Entity | None:
    """The group currently authorizing ``subject`` for the given type."""
    return subject.get(authorization_type.group_field)


def display_name(entity: Entity | None, fallback: str, key: str = "name") -> str:
    """Human name of an entity, or ``fallback`` while it is unknown."""
    if entity and entity.get(key):
        return entity[key]
    return fallback
