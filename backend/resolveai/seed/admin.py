"""
Bootstrap administrator account.

Called at startup when BOOTSTRAP_ADMIN_EMAIL / BOOTSTRAP_ADMIN_PASSWORD are
set: creates the account, or forces an existing one to ADMIN with the
configured password.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resolveai.auth.passwords import hash_password
from resolveai.models import User
from resolveai.models.enums import UserRole

logger = logging.getLogger(__name__)


async def ensure_admin(session: AsyncSession, email: str, password: str, name: str = "Administrator") -> User:
    email = email.strip().lower()
    user = (await session.execute(
        select(User).where(User.email == email)
    )).scalar_one_or_none()

    if user is None:
        user = User(email=email, name=name, role=UserRole.ADMIN.value, password_hash=hash_password(password))
        session.add(user)
        logger.info("Bootstrap admin created: %s", email)
    else:
        user.role = UserRole.ADMIN.value
        user.password_hash = hash_password(password)
        logger.info("Bootstrap admin refreshed: %s", email)

    await session.flush()
    return user
