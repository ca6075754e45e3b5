"""
Cases API

Filing, role-scoped listings, detail, updates with history, and admin
deletion. All decisions about who may do what live in auth.policy and
services.case_manager; this module only maps HTTP to those calls.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from resolveai.api.deps import get_actor, get_db
from resolveai.auth.context import Actor
from resolveai.models import Case, CaseEvent, CasePhoto
from resolveai.schemas.schemas import (
    CaseCreate,
    CaseDetail,
    CaseSummary,
    CaseUpdate,
    CaseUpdateResponse,
    EmployeeSummary,
    EventSchema,
    PersonSummary,
    PhotoSchema,
)
from resolveai.services.case_manager import CaseManager, canonical_photo

router = APIRouter(prefix="/api/cases", tags=["cases"])


# ── Serialization ────────────────────────────────────────────────────────────

def _photo(photo: CasePhoto | None) -> PhotoSchema | None:
    if photo is None:
        return None
    return PhotoSchema(id=photo.id, url=photo.url, kind=photo.kind, created_at=photo.created_at)


def _event(event: CaseEvent) -> EventSchema:
    return EventSchema(
        id=event.id,
        status=event.status,
        message=event.message,
        photo_url=event.photo_url,
        author_id=event.author_id,
        employee_id=event.employee_id,
        author=(
            PersonSummary(id=event.author.id, name=event.author.name, email=event.author.email)
            if event.author else None
        ),
        employee=(
            EmployeeSummary(
                id=event.employee.id,
                employee_code=event.employee.employee_code,
                name=event.employee.name,
                role=event.employee.role,
            )
            if event.employee else None
        ),
        created_at=event.created_at,
    )


def _coord(value) -> float | None:
    return float(value) if value is not None else None


def _events_in_order(case: Case) -> list[CaseEvent]:
    return sorted(case.events, key=lambda e: e.id)


def case_summary(case: Case, preview: list[CaseEvent]) -> CaseSummary:
    return CaseSummary(
        id=case.id,
        protocol=case.protocol,
        category=case.category,
        status=case.status,
        description=case.description,
        address=case.address,
        latitude=_coord(case.latitude),
        longitude=_coord(case.longitude),
        owner_id=case.owner_id,
        photo=_photo(canonical_photo(case)),
        recent_events=[_event(e) for e in preview],
        created_at=case.created_at,
    )


def case_detail(case: Case) -> CaseDetail:
    owner = case.owner
    return CaseDetail(
        id=case.id,
        protocol=case.protocol,
        category=case.category,
        status=case.status,
        description=case.description,
        address=case.address,
        latitude=_coord(case.latitude),
        longitude=_coord(case.longitude),
        owner_id=case.owner_id,
        owner=PersonSummary(id=owner.id, name=owner.name, email=owner.email) if owner else None,
        photo=_photo(canonical_photo(case)),
        photos=[_photo(p) for p in sorted(case.photos, key=lambda p: p.id, reverse=True)],
        events=[_event(e) for e in _events_in_order(case)],
        created_at=case.created_at,
        updated_at=case.updated_at,
    )


# ── GET /api/cases — staff queue ─────────────────────────────────────────────

@router.get("", response_model=list[CaseSummary])
async def list_cases(actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    """Newest first. Admins see everything, employees their categories."""
    manager = CaseManager(db)
    cases = await manager.list_cases(actor)
    previews = await manager.recent_events([c.id for c in cases])
    return [case_summary(c, previews.get(c.id, [])) for c in cases]


# ── GET /api/cases/my — citizen's own cases ──────────────────────────────────

@router.get("/my", response_model=list[CaseSummary])
async def list_my_cases(actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    manager = CaseManager(db)
    cases = await manager.list_my_cases(actor)
    previews = await manager.recent_events([c.id for c in cases])
    return [case_summary(c, previews.get(c.id, [])) for c in cases]


# ── POST /api/cases — file a case ────────────────────────────────────────────

@router.post("", response_model=CaseDetail, status_code=201)
async def create_case(body: CaseCreate, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    case = await CaseManager(db).create_case(actor, body)
    return case_detail(case)


# ── GET /api/cases/{case_id} — full case detail ─────────────────────────────

@router.get("/{case_id}", response_model=CaseDetail)
async def get_case(case_id: int, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    case = await CaseManager(db).get_case(actor, case_id)
    return case_detail(case)


# ── PATCH /api/cases/{case_id} — status / description / message / photo ─────

@router.patch("/{case_id}", response_model=CaseUpdateResponse)
async def update_case(
    case_id: int,
    body: CaseUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Apply an update and append exactly one history event.

    COMPLETED requires ``photo_url``; IN_PROGRESS refuses one.
    """
    case = await CaseManager(db).update_case(actor, case_id, body)
    return CaseUpdateResponse(case=case_detail(case))


# ── DELETE /api/cases/{case_id} — admin only ─────────────────────────────────

@router.delete("/{case_id}")
async def delete_case(case_id: int, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    await CaseManager(db).delete_case(actor, case_id)
    return {"ok": True}
