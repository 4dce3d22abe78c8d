
import secrets
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, Header, Request

from daywork.core.config import settings
from daywork.core.errors import AuthenticationRequired, PermissionDenied
from daywork.core.security import decode_access_token
from daywork.schemas import User
from daywork.storage import Storage
from daywork.utils.dates import as_naive_utc


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_mailer(request: Request):
    return request.app.state.mailer


def get_optional_user(request: Request, storage: Storage = Depends(get_storage)) -> Optional[User]:
    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None or "sub" not in payload:
        return None
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        return None
    user = storage.get_user(user_id)
    if user is None or not session_matches(payload, user):
        return None
    return user


def session_matches(payload: dict, user: User) -> bool:
    """The token must name this user and be issued no earlier than its account.

    Ids are reused after a wipe, so the id alone does not identify a user.
    """
    if payload.get("username") != user.username:
        return False
    issued = payload.get("iat")
    if not isinstance(issued, (int, float)):
        return False
    issued_at = datetime.fromtimestamp(issued, timezone.utc).replace(tzinfo=None)
    return issued_at >= as_naive_utc(user.created_at).replace(microsecond=0)


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise AuthenticationRequired("Not authenticated")
    return user


def require_admin(x_admin_key: Optional[str] = Header(default=None)):
    expected = settings.ADMIN_API_KEY
    if not expected or not x_admin_key or not secrets.compare_digest(x_admin_key.encode(), expected.encode()):
        raise PermissionDenied("Admin access required")
