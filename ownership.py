# ownership.py

from typing import Optional

from errors import AuthorizationError


def is_owner(resource_owner_id: Optional[str], requester_id: Optional[str]) -> bool:
    return bool(requester_id) and resource_owner_id == requester_id


def authorize(
    resource_owner_id: Optional[str],
    requester_id: Optional[str],
    message: str = "Resource does not belong to the authenticated user.",
) -> None:
    """Raise AuthorizationError unless requester_id owns the resource.

    Every mutating service method calls this before touching the store. A
    missing requester never passes.
    """
    if not is_owner(resource_owner_id, requester_id):
        raise AuthorizationError(message)
