"""Admin session API — login issues a bearer token plus the admin_session cookie."""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resolveai.api.auth import user_schema
from resolveai.api.deps import get_db
from resolveai.auth.jwt import create_admin_session_token
from resolveai.auth.passwords import verify_password
from resolveai.config import settings
from resolveai.errors import Forbidden, Unauthenticated, ValidationError
from resolveai.middleware.metrics import logins_total
from resolveai.models import User
from resolveai.models.enums import UserRole
from resolveai.schemas.schemas import AdminLoginRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/auth", tags=["admin"])


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.admin_session_cookie,
        token,
        max_age=settings.admin_session_expire_days * 86400,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


@router.post("/login")
async def admin_login(body: AdminLoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    email = body.email.strip().lower()
    if not email or not body.password:
        raise ValidationError("Email and password are required")

    user = (await db.execute(
        select(User).where(User.email == email)
    )).scalar_one_or_none()

    if not user or user.role != UserRole.ADMIN.value:
        logins_total.labels(kind="admin", outcome="denied").inc()
        raise Forbidden()

    if not verify_password(body.password, user.password_hash):
        logins_total.labels(kind="admin", outcome="rejected").inc()
        raise Unauthenticated("Invalid credentials")

    token = create_admin_session_token(user.id)
    set_session_cookie(response, token)

    logins_total.labels(kind="admin", outcome="ok").inc()
    logger.info("Admin session opened: %s", user.email)
    return {"ok": True, "token": token, "user": user_schema(user)}


@router.post("/logout")
async def admin_logout(response: Response):
    response.delete_cookie(settings.admin_session_cookie, path="/")
    return {"ok": True}
