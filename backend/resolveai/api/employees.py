"""Admin employee management — registration, activation toggle, listing."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from resolveai.api.auth import employee_schema
from resolveai.api.deps import get_db, require_admin
from resolveai.auth.context import Actor
from resolveai.schemas.schemas import EmployeeCreate, EmployeeSchema, EmployeeToggleResponse
from resolveai.services.employee_registry import EmployeeRegistry

router = APIRouter(prefix="/api/admin/employees", tags=["admin"])


@router.get("", response_model=list[EmployeeSchema])
async def list_employees(
    q: str | None = Query(None, max_length=100),
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Search by name, CPF or exact employee code. Active employees first."""
    employees = await EmployeeRegistry(db).search(q)
    return [employee_schema(e, include_cpf=True) for e in employees]


@router.post("", response_model=EmployeeSchema, status_code=201)
async def register_employee(
    body: EmployeeCreate,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Register an employee. The employee code is generated server-side."""
    employee = await EmployeeRegistry(db).register(body, actor)
    return employee_schema(employee, include_cpf=True)


@router.patch("/{employee_id}/toggle", response_model=EmployeeToggleResponse)
async def toggle_employee(
    employee_id: int,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    employee = await EmployeeRegistry(db).toggle(employee_id, actor)
    return EmployeeToggleResponse(id=employee.id, is_active=employee.is_active)
