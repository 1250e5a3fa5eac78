"""
Keyplan Core - Shared types and errors.
"""

from keyplan.core.exceptions import (
    ActionAlreadyInitializedError,
    ActionError,
    ActionExecutionError,
    ActionInitializationError,
    ActionNotInitializedError,
    AuthenticationError,
    ConfigurationError,
    DirectoryConnectionError,
    DirectoryError,
    DirectoryServiceError,
    DuplicateIdentityError,
    KeyplanError,
    MaxDepthExceededError,
    MissingLinkError,
    MissingSettingError,
    PlanAbortedError,
    PlanError,
    RecordNotFoundError,
)
from keyplan.core.types import AuthorizingGroupType, GroupRights, RecoveryChoice, RequestStatus

__all__ = [
    "ActionAlreadyInitializedError",
    "ActionError",
    "ActionExecutionError",
    "ActionInitializationError",
    "ActionNotInitializedError",
    "AuthenticationError",
    "AuthorizingGroupType",
    "ConfigurationError",
    "DirectoryConnectionError",
    "DirectoryError",
    "DirectoryServiceError",
    "DuplicateIdentityError",
    "GroupRights",
    "KeyplanError",
    "MaxDepthExceededError",
    "MissingLinkError",
    "MissingSettingError",
    "PlanAbortedError",
    "PlanError",
    "RecordNotFoundError",
    "RecoveryChoice",
    "RequestStatus",
]
