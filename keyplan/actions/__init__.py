"""
Keyplan Actions - Catalogue of directory changes.
"""

from keyplan.actions.account_in_ou import AccountInOU
from keyplan.actions.group_authorization import (
    ConnectGroupAuthorization,
    DisconnectGroupAuthorization,
)
from keyplan.actions.group_membership import AccountInGroup, AccountNotInGroup
from keyplan.actions.group_ownership import GroupOwnerOfGroupOnSystem
from keyplan.actions.requests import submit_and_approve

__all__ = [
    "AccountInGroup",
    "AccountInOU",
    "AccountNotInGroup",
    "ConnectGroupAuthorization",
    "DisconnectGroupAuthorization",
    "GroupOwnerOfGroupOnSystem",
    "submit_and_approve",
]
