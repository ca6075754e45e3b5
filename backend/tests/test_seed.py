"""Tests for the bootstrap administrator."""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resolveai.auth.passwords import verify_password
from resolveai.models import User
from resolveai.seed.admin import ensure_admin


@pytest.mark.asyncio
class TestEnsureAdmin:
    async def test_creates_admin(self, db_session: AsyncSession):
        user = await ensure_admin(db_session, " Root@Example.com ", "rootpass")
        assert user.id is not None
        assert user.email == "root@example.com"
        assert user.role == "ADMIN"
        assert verify_password("rootpass", user.password_hash)

    async def test_promotes_existing_account(self, db_session: AsyncSession, citizen: User):
        user = await ensure_admin(db_session, "maria@example.com", "newpass")
        assert user.id == citizen.id
        assert user.role == "ADMIN"
        assert verify_password("newpass", user.password_hash)

        count = len((await db_session.execute(select(User))).scalars().all())
        assert count == 1
