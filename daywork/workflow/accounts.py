"""Registration, login and self-service account edits."""

import logging
from typing import List, Optional

from daywork.core.errors import AuthenticationRequired, Conflict, InvalidInput, NotFound
from daywork.core.security import get_password_hash, verify_password
from daywork.schemas import RegisterIn, User, UserUpdate
from daywork.storage import DuplicateUsername, Storage
from daywork.workflow import verification

logger = logging.getLogger(__name__)

# Compared against when the username does not exist, so a miss costs the same as a wrong password
_DUMMY_HASH = get_password_hash("not-a-real-password")


async def register(storage: Storage, mailer, data: RegisterIn) -> User:
    """Create the account, the worker profile when a skill is given, and mail a code.

    A mail failure is logged and does not undo the registration.
    """
    if storage.get_user_by_username(data.username) is not None:
        raise Conflict("Username already exists", field="username")

    try:
        user = storage.create_user(
            username=data.username,
            hashed_password=get_password_hash(data.password),
            full_name=data.full_name,
            phone=data.phone,
            email=data.email,
            role=data.role,
            location=data.location,
        )
    except DuplicateUsername:
        raise Conflict("Username already exists", field="username")
    logger.info("Registered %s user %s (id=%s)", user.role, user.username, user.id)

    if user.role == "worker" and data.primary_skill:
        storage.create_worker_profile(
            user_id=user.id,
            primary_skill=data.primary_skill,
            description=data.description or "",
            is_available=True,
        )

    try:
        await verification.send_email_code(storage, mailer, user)
    except Exception:
        logger.exception("Could not send verification email to user %s", user.id)

    return storage.get_user(user.id)


def authenticate(storage: Storage, username: str, password: str) -> User:
    user = storage.get_user_by_username(username)
    hashed = user.hashed_password if user is not None else _DUMMY_HASH
    if not verify_password(password, hashed) or user is None:
        logger.info("Failed login for %s", username)
        raise AuthenticationRequired("Incorrect username or password")
    logger.info("User %s logged in", user.username)
    return user


def update_account(storage: Storage, actor: User, changes: UserUpdate) -> User:
    fields = changes.model_dump(exclude_unset=True)
    if fields.get("email") is not None:
        fields["email"] = str(fields["email"])
    updated = storage.update_user(actor.id, **fields)
    if updated is None:
        raise NotFound("User not found")
    if "email" in fields and fields["email"] != actor.email and updated.email_verified:
        # A new address has to be confirmed again
        updated = storage.update_user_email_verification(actor.id, False)
    return updated


def search_users(storage: Storage, actor: User, query: Optional[str], role: Optional[str] = None) -> List[User]:
    if not query:
        raise InvalidInput("Search query is required", field="query")
    if role not in (None, "worker", "employer"):
        role = None
    return storage.search_users(query, exclude_user_id=actor.id, role=role)
