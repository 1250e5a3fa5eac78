"""
Keyplan Client - Access to the KeyHub directory service.

Authentication lives in ``keyplan.client.auth`` and is imported from there.
"""

from keyplan.client.directory import (
    DirectoryClient,
    entity_id,
    find_link,
    first,
    koppeling_link,
    self_link,
)

__all__ = [
    "DirectoryClient",
    "entity_id",
    "find_link",
    "first",
    "koppeling_link",
    "self_link",
]
