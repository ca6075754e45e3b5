"""
API Dependencies — DB session, actor resolution, admin guard.

`get_actor`:
  1. Extracts the Bearer token from the Authorization header
  2. Verifies it and validates its claims by kind (auth/jwt.py)
  3. Loads the account behind it (auth/resolver.py)
  4. Returns the Actor every service call is made on behalf of

A token whose account no longer exists fails closed with 401; a
deactivated employee gets 403. Neither ever falls back to citizen access.
"""

import logging
from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from resolveai.auth.context import Actor
from resolveai.auth.jwt import verify_token
from resolveai.auth.resolver import resolve_actor
from resolveai.database import async_session
from resolveai.errors import Forbidden, NotFound, Unauthenticated

logger = logging.getLogger(__name__)


# ── Database session ─────────────────────────────────────────────────────────

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session per request, commit on success, rollback on error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── Actor (JWT authentication) ───────────────────────────────────────────────

def bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_actor(request: Request, db: AsyncSession = Depends(get_db)) -> Actor:
    token = bearer_token(request)
    if token is None:
        raise Unauthenticated("Missing or invalid Authorization header")

    claims = verify_token(token)
    try:
        return await resolve_actor(claims, db)
    except NotFound as e:
        logger.info("Token subject %s:%s no longer exists", claims.kind, claims.sub)
        raise Unauthenticated("Account not found") from e


async def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_admin:
        raise Forbidden("Administrator access required")
    return actor
