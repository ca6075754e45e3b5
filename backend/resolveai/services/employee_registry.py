"""
Employee registry — registration, code generation, activation toggle, search.

Employee codes are seven-digit integers: the role's prefix digit followed by
six random digits. The database's unique constraint on ``employee_code`` is
the authority; the existence checks here only avoid obvious collisions.
"""

import logging
import random

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from resolveai.auth.context import Actor
from resolveai.auth.passwords import check_new_password, hash_password
from resolveai.auth.roles import EMPLOYEE_ROLE_PREFIX
from resolveai.config import settings
from resolveai.errors import CodeGenerationExhausted, Conflict, NotFound, ValidationError
from resolveai.models import Employee
from resolveai.models.enums import EmployeeRole
from resolveai.schemas.schemas import EmployeeCreate

logger = logging.getLogger(__name__)

CPF_LENGTH = 11


def only_digits(value: str | None) -> str:
    return "".join(ch for ch in (value or "") if ch.isdigit())


def generate_employee_code(role: EmployeeRole, rng: random.Random | None = None) -> int:
    prefix = EMPLOYEE_ROLE_PREFIX[role]
    rng = rng or random.SystemRandom()
    return int(f"{prefix}{rng.randint(100000, 999999)}")


def code_matches_role(code: int, role: EmployeeRole) -> bool:
    digits = str(code)
    return len(digits) == 7 and digits[0] == str(EMPLOYEE_ROLE_PREFIX[role])


class EmployeeRegistry:
    def __init__(
        self,
        session: AsyncSession,
        *,
        attempts: int | None = None,
        rng: random.Random | None = None,
    ):
        self.session = session
        self.attempts = attempts if attempts is not None else settings.employee_code_attempts
        self.rng = rng

    async def _code_taken(self, code: int) -> bool:
        result = await self.session.execute(
            select(Employee.id).where(Employee.employee_code == code)
        )
        return result.scalar_one_or_none() is not None

    async def generate_unique_code(self, role: EmployeeRole) -> int:
        for _ in range(self.attempts):
            code = generate_employee_code(role, self.rng)
            if not await self._code_taken(code):
                return code
        raise CodeGenerationExhausted()

    async def _choose_code(self, role: EmployeeRole, suggested: int | None) -> int:
        """Keep a client-suggested code only if it fits the role and is free."""
        if suggested and code_matches_role(suggested, role) and not await self._code_taken(suggested):
            return suggested
        if suggested:
            logger.info("Suggested employee code %s rejected, regenerating", suggested)
        return await self.generate_unique_code(role)

    async def register(self, body: EmployeeCreate, actor: Actor) -> Employee:
        name = body.name.strip()
        cpf = only_digits(body.cpf)
        if not name or not cpf or not body.role or not body.password or not body.confirm_password:
            raise ValidationError("Incomplete data")
        if len(cpf) != CPF_LENGTH:
            raise ValidationError(f"Invalid CPF (must have {CPF_LENGTH} digits)")
        try:
            role = EmployeeRole(body.role.strip().upper())
        except ValueError:
            raise ValidationError("Invalid role") from None
        check_new_password(body.password, body.confirm_password)

        existing = await self.session.execute(select(Employee.id).where(Employee.cpf == cpf))
        if existing.scalar_one_or_none() is not None:
            raise Conflict("An employee with this CPF already exists")

        employee = Employee(
            name=name,
            cpf=cpf,
            role=role.value,
            employee_code=await self._choose_code(role, body.employee_code),
            password_hash=hash_password(body.password),
            is_active=True,
        )
        self.session.add(employee)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost a race on CPF or employee code against a concurrent registration
            raise Conflict("Employee CPF or code already registered") from e

        logger.info(
            "Employee %s registered (%s, code %s) by %s",
            employee.id, employee.role, employee.employee_code, actor.label,
        )
        return employee

    async def toggle(self, employee_id: int, actor: Actor) -> Employee:
        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise NotFound("Employee not found")
        employee.is_active = not employee.is_active
        await self.session.flush()
        logger.info(
            "Employee %s %s by %s",
            employee.id, "activated" if employee.is_active else "deactivated", actor.label,
        )
        return employee

    async def search(self, q: str | None = None) -> list[Employee]:
        query = select(Employee)
        q = (q or "").strip()
        if q:
            conditions = [Employee.name.ilike(f"%{q}%"), Employee.cpf.contains(q)]
            if q.isdigit():
                conditions.append(Employee.employee_code == int(q))
            query = query.where(or_(*conditions))
        query = query.order_by(
            Employee.is_active.desc(), Employee.created_at.desc(), Employee.id.desc()
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
