"""
Actor — the "who is asking and what may they touch" abstraction.

An Actor is rebuilt on every request from a verified token plus the current
database row behind it (see resolver.py). It is never persisted. Everything
downstream (policy, case manager, audit events) works from this object
instead of from raw token claims.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from resolveai.auth.roles import ActorKind
from resolveai.models.enums import CaseCategory


@dataclass(frozen=True)
class Actor:
    kind: ActorKind
    id: int
    category_scope: frozenset[CaseCategory] = field(default_factory=frozenset)
    name: str | None = None
    email: str | None = None
    employee_code: int | None = None
    employee_role: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.kind is ActorKind.ADMIN

    @property
    def is_employee(self) -> bool:
        return self.kind is ActorKind.EMPLOYEE

    @property
    def is_citizen(self) -> bool:
        return self.kind is ActorKind.CITIZEN

    @property
    def label(self) -> str:
        """Identity string for logging."""
        return f"{self.kind.value.lower()}:{self.id}"
