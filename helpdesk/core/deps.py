"""FastAPI dependencies that resolve the acting user."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from helpdesk.core.config import settings
from helpdesk.core.exceptions import AuthenticationException, ExpiredTokenError
from helpdesk.core.security import ACCESS_TOKEN_TYPE, decode_token
from helpdesk.db.session import get_db
from helpdesk.models.user import User


def _invalid_token() -> AuthenticationException:
    return AuthenticationException("invalid_token", error_code="INVALID_TOKEN", status_code=401)


def _extract_bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """The authenticated, active user; passed into services as the actor."""
    token = _extract_bearer_token(request) or request.cookies.get(settings.COOKIE_NAME)
    if not token:
        raise AuthenticationException("not_authenticated", error_code="NOT_AUTHENTICATED", status_code=401)

    try:
        payload = decode_token(token)
    except ValueError as exc:
        if str(exc) == "expired_token":
            raise ExpiredTokenError("access_token_expired")
        raise _invalid_token()
    if payload.get("type", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
        raise _invalid_token()
    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise _invalid_token()

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise AuthenticationException("user_not_found", error_code="USER_NOT_FOUND", status_code=401)
    return user
