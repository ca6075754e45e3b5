from resolveai.auth.roles import ActorKind, EMPLOYEE_ROLE_SCOPE, EMPLOYEE_ROLE_PREFIX
from resolveai.auth.context import Actor
from resolveai.auth.policy import CaseAccess, ListMode, ListScope, can_access, can_create, list_scope

__all__ = [
    "ActorKind", "EMPLOYEE_ROLE_SCOPE", "EMPLOYEE_ROLE_PREFIX", "Actor",
    "CaseAccess", "ListMode", "ListScope", "can_access", "can_create", "list_scope",
]
