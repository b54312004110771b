from __future__ import annotations

import secrets

from fastapi import Header

from plan_of_life.errors import Forbidden, NotAuthenticated
from plan_of_life.settings import get_settings


async def require_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_backend_token: str | None = Header(default=None, alias="X-Backend-Token"),
) -> str:
    settings = get_settings()
    if not x_backend_token or not secrets.compare_digest(x_backend_token, settings.backend_session_secret):
        raise NotAuthenticated("Invalid backend token")
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise NotAuthenticated("Missing user id")
    if settings.allowed_users and user_id not in settings.allowed_users:
        raise Forbidden("User not allowed")
    return user_id
