"""
Case authorization policy.

The single place that decides what an Actor may do with cases. Every
case-touching endpoint asks here instead of re-deriving role checks.

    ADMIN     read / write / delete any case, list everything
    EMPLOYEE  read / write cases whose category is in its scope,
              list filtered to that scope, never delete or create
    CITIZEN   read / write own cases, list only via "my cases",
              never delete
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from resolveai.auth.context import Actor
from resolveai.auth.roles import ALL_CATEGORIES
from resolveai.errors import Forbidden
from resolveai.models.enums import CaseCategory


@dataclass(frozen=True)
class CaseAccess:
    read: bool
    write: bool
    delete: bool

    def require(self, action: str) -> None:
        if not getattr(self, action):
            raise Forbidden()


NO_ACCESS = CaseAccess(read=False, write=False, delete=False)


class ListMode(str, Enum):
    ALL = "all"
    CATEGORIES = "categories"
    DENIED = "denied"


@dataclass(frozen=True)
class ListScope:
    mode: ListMode
    categories: frozenset[CaseCategory] = frozenset()

    def require_allowed(self) -> None:
        if self.mode is ListMode.DENIED:
            raise Forbidden()


def _category(value: str | CaseCategory) -> CaseCategory | None:
    try:
        return CaseCategory(value)
    except ValueError:
        return None


def can_access(actor: Actor, category: str | CaseCategory, owner_id: int | None) -> CaseAccess:
    """Decide read/write/delete for ``actor`` on a case with this category and owner."""
    if actor.is_admin:
        return CaseAccess(read=True, write=True, delete=True)

    if actor.is_citizen:
        owns = owner_id is not None and owner_id == actor.id
        return CaseAccess(read=owns, write=owns, delete=False)

    if actor.is_employee:
        in_scope = _category(category) in actor.category_scope
        return CaseAccess(read=in_scope, write=in_scope, delete=False)

    return NO_ACCESS


def list_scope(actor: Actor) -> ListScope:
    """Which cases ``actor`` may see in the staff listing."""
    if actor.is_admin:
        return ListScope(ListMode.ALL)
    if actor.is_employee:
        if actor.category_scope >= ALL_CATEGORIES:
            return ListScope(ListMode.ALL)
        return ListScope(ListMode.CATEGORIES, actor.category_scope)
    return ListScope(ListMode.DENIED)


def can_create(actor: Actor) -> bool:
    return actor.is_citizen or actor.is_admin
