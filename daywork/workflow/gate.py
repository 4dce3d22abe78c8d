"""Role and ownership checks shared by the workflow operations."""

from daywork.core.errors import PermissionDenied
from daywork.schemas import User


def require_role(actor: User, role: str, message: str):
    if actor.role != role:
        raise PermissionDenied(message)


def require_owner(actor: User, owner_id: int, message: str):
    if actor.id != owner_id:
        raise PermissionDenied(message)
