"""Resolve verified token claims into an Actor using the current database row."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from resolveai.auth.context import Actor
from resolveai.auth.jwt import AdminClaims, EmployeeClaims, UserClaims
from resolveai.auth.roles import ALL_CATEGORIES, EMPLOYEE_ROLE_SCOPE, ActorKind
from resolveai.errors import Deactivated, Forbidden, NotFound
from resolveai.models import Employee, User
from resolveai.models.enums import EmployeeRole, UserRole

logger = logging.getLogger(__name__)


def employee_actor(employee: Employee) -> Actor:
    try:
        scope = EMPLOYEE_ROLE_SCOPE[EmployeeRole(employee.role)]
    except ValueError:
        # Unknown stored role: the employee exists but may act on nothing
        scope = frozenset()
    return Actor(
        kind=ActorKind.EMPLOYEE,
        id=employee.id,
        category_scope=scope,
        name=employee.name,
        employee_code=employee.employee_code,
        employee_role=employee.role,
    )


def user_actor(user: User) -> Actor:
    if user.role == UserRole.ADMIN.value:
        return Actor(kind=ActorKind.ADMIN, id=user.id, category_scope=ALL_CATEGORIES,
                     name=user.name, email=user.email)
    return Actor(kind=ActorKind.CITIZEN, id=user.id, name=user.name, email=user.email)


async def resolve_actor(
    claims: UserClaims | EmployeeClaims | AdminClaims,
    db: AsyncSession,
) -> Actor:
    """
    Load the identity behind ``claims`` and build its Actor.

    Tokens are not revoked server-side, so this lookup is what enforces
    deactivation and deletion: a disabled employee never resolves, even
    while its token is still cryptographically valid.
    """
    if isinstance(claims, EmployeeClaims):
        employee = await db.get(Employee, claims.subject_id)
        if employee is None:
            raise NotFound("Employee not found")
        if not employee.is_active:
            logger.info("Rejected token for deactivated employee %s", employee.id)
            raise Deactivated()
        return employee_actor(employee)

    user = await db.get(User, claims.subject_id)
    if user is None:
        raise NotFound("User not found")

    actor = user_actor(user)
    if isinstance(claims, AdminClaims) and not actor.is_admin:
        raise Forbidden("Admin session is no longer valid for this account")
    return actor
