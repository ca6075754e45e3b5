"""
Actor kinds and employee role scopes.

Three kinds of identity can call the API:

    CITIZEN   a User row with role USER; sees only cases it filed
    EMPLOYEE  an Employee row; sees the categories its role covers
    ADMIN     a User row with role ADMIN; sees and manages everything

An employee role is named after the case category it works on, except
ADMINISTRATIVE, which covers all categories. Each role also owns the
leading digit of the employee codes issued for it.
"""

from enum import Enum

from resolveai.models.enums import CaseCategory, EmployeeRole


class ActorKind(str, Enum):
    CITIZEN = "CITIZEN"
    EMPLOYEE = "EMPLOYEE"
    ADMIN = "ADMIN"


ALL_CATEGORIES: frozenset[CaseCategory] = frozenset(CaseCategory)


EMPLOYEE_ROLE_SCOPE: dict[EmployeeRole, frozenset[CaseCategory]] = {
    EmployeeRole.PUBLIC_LIGHTING: frozenset({CaseCategory.PUBLIC_LIGHTING}),
    EmployeeRole.POTHOLE: frozenset({CaseCategory.POTHOLE}),
    EmployeeRole.GARBAGE_COLLECTION: frozenset({CaseCategory.GARBAGE_COLLECTION}),
    EmployeeRole.SIDEWALK_OBSTRUCTION: frozenset({CaseCategory.SIDEWALK_OBSTRUCTION}),
    EmployeeRole.WATER_LEAK: frozenset({CaseCategory.WATER_LEAK}),
    EmployeeRole.OTHER: frozenset({CaseCategory.OTHER}),
    EmployeeRole.ADMINISTRATIVE: ALL_CATEGORIES,
}


# Leading digit of every employee code issued for the role
EMPLOYEE_ROLE_PREFIX: dict[EmployeeRole, int] = {
    EmployeeRole.PUBLIC_LIGHTING: 1,
    EmployeeRole.POTHOLE: 2,
    EmployeeRole.GARBAGE_COLLECTION: 3,
    EmployeeRole.SIDEWALK_OBSTRUCTION: 4,
    EmployeeRole.WATER_LEAK: 5,
    EmployeeRole.ADMINISTRATIVE: 8,
    EmployeeRole.OTHER: 9,
}
