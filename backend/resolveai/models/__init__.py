from resolveai.models.user import User  # noqa: F401
from resolveai.models.employee import Employee  # noqa: F401
from resolveai.models.case import Case, CasePhoto, CaseEvent  # noqa: F401
