"""
Case Manager Service

Owns the case lifecycle for every actor kind:
- Filing (citizens and admins) with an optional REPORT photo
- Role-scoped listings (staff queue, citizen "my cases") with a bounded event preview
- Updates through the status rules in case_status.py, one event per update
- Admin-only deletion of a case together with its events and photos

Authorization is always delegated to auth.policy.
"""

import logging
import secrets
import time
from collections import defaultdict

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from resolveai.auth.context import Actor
from resolveai.auth.policy import ListMode, can_access, can_create, list_scope
from resolveai.config import settings
from resolveai.errors import Conflict, Forbidden, NotFound, ValidationError
from resolveai.middleware.metrics import case_events_total, cases_created_total, cases_deleted_total
from resolveai.models import Case, CaseEvent, CasePhoto
from resolveai.models.enums import CaseCategory, PhotoKind
from resolveai.schemas.schemas import CaseCreate, CaseUpdate
from resolveai.services.case_status import INITIAL_STATUS, apply_change, build_change

logger = logging.getLogger(__name__)

PROTOCOL_PREFIX = "EPF"


def generate_protocol() -> str:
    """Human-readable case reference, e.g. ``EPF-1760850000123-3FA9C1``."""
    return f"{PROTOCOL_PREFIX}-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


def canonical_photo(case: Case) -> CasePhoto | None:
    """Most recent REPORT photo; UPDATE photos never replace it."""
    reports = [p for p in case.photos if p.kind == PhotoKind.REPORT.value]
    return max(reports, key=lambda p: p.id) if reports else None


def _with_summary_relations(query):
    return query.options(selectinload(Case.owner), selectinload(Case.photos))


def _with_relations(query):
    return query.options(
        selectinload(Case.owner),
        selectinload(Case.photos),
        selectinload(Case.events).selectinload(CaseEvent.author),
        selectinload(Case.events).selectinload(CaseEvent.employee),
    )


class CaseManager:
    """Manages the full case lifecycle."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Lookup ───────────────────────────────────────────────────────────

    async def _load(self, case_id: int, *, load_relations: bool = False) -> Case:
        """Fetch a case by id, raising NotFound if missing."""
        query = select(Case).where(Case.id == case_id)
        if load_relations:
            query = _with_relations(query).execution_options(populate_existing=True)
        result = await self.session.execute(query)
        case = result.scalar_one_or_none()
        if case is None:
            raise NotFound("Case not found")
        return case

    async def get_case(self, actor: Actor, case_id: int) -> Case:
        case = await self._load(case_id, load_relations=True)
        can_access(actor, case.category, case.owner_id).require("read")
        return case

    # ── Creation ─────────────────────────────────────────────────────────

    async def create_case(self, actor: Actor, body: CaseCreate) -> Case:
        if not can_create(actor):
            raise Forbidden("Employees cannot file cases")

        category = body.category.strip().upper()
        description = body.description.strip()
        address = body.address.strip()
        if not category or not description or not address:
            raise ValidationError("Missing required fields (category, description, address)")
        try:
            category = CaseCategory(category)
        except ValueError:
            raise ValidationError("Invalid category") from None

        case = Case(
            protocol=generate_protocol(),
            category=category.value,
            status=INITIAL_STATUS.value,
            description=description,
            address=address,
            latitude=body.latitude,
            longitude=body.longitude,
            owner_id=actor.id,
        )
        self.session.add(case)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise Conflict("Could not assign a unique protocol. Try again.") from e

        photo_url = (body.photo_url or "").strip()
        if photo_url:
            self.session.add(CasePhoto(case_id=case.id, url=photo_url, kind=PhotoKind.REPORT.value))
            await self.session.flush()

        cases_created_total.labels(category=case.category).inc()
        logger.info("Case %s (%s) filed by %s", case.protocol, case.category, actor.label)
        return await self._load(case.id, load_relations=True)

    # ── Listings ─────────────────────────────────────────────────────────

    async def list_cases(self, actor: Actor) -> list[Case]:
        """Staff queue: everything for admins, category-scoped for employees."""
        scope = list_scope(actor)
        scope.require_allowed()

        query = select(Case)
        if scope.mode is ListMode.CATEGORIES:
            query = query.where(Case.category.in_(sorted(c.value for c in scope.categories)))
        return await self._newest_first(query)

    async def list_my_cases(self, actor: Actor) -> list[Case]:
        if not actor.is_citizen and not actor.is_admin:
            raise Forbidden("Only citizens have their own cases")
        return await self._newest_first(select(Case).where(Case.owner_id == actor.id))

    async def _newest_first(self, query) -> list[Case]:
        query = (
            _with_summary_relations(query)
            .order_by(Case.created_at.desc(), Case.id.desc())
            .limit(settings.case_page_size)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def recent_events(self, case_ids: list[int]) -> dict[int, list[CaseEvent]]:
        """Last ``case_preview_events`` events of each case, oldest first."""
        limit = settings.case_preview_events
        if not case_ids or limit <= 0:
            return {}

        ranked = (
            select(
                CaseEvent.id,
                func.row_number()
                .over(partition_by=CaseEvent.case_id, order_by=CaseEvent.id.desc())
                .label("recency"),
            )
            .where(CaseEvent.case_id.in_(case_ids))
            .subquery()
        )
        query = (
            select(CaseEvent)
            .join(ranked, ranked.c.id == CaseEvent.id)
            .where(ranked.c.recency <= limit)
            .options(selectinload(CaseEvent.author), selectinload(CaseEvent.employee))
            .order_by(CaseEvent.case_id, CaseEvent.id)
            .execution_options(populate_existing=True)
        )
        previews: dict[int, list[CaseEvent]] = defaultdict(list)
        for event in (await self.session.execute(query)).scalars():
            previews[event.case_id].append(event)
        return previews

    # ── Updates ──────────────────────────────────────────────────────────

    async def update_case(self, actor: Actor, case_id: int, body: CaseUpdate) -> Case:
        case = await self._load(case_id)
        can_access(actor, case.category, case.owner_id).require("write")

        change = build_change(
            status=body.status,
            description=body.description,
            message=body.message,
            photo_url=body.photo_url,
        )
        old_status = case.status
        event, photo = apply_change(case, change, actor)
        if photo is not None:
            self.session.add(photo)
        self.session.add(event)
        await self.session.flush()

        case_events_total.labels(status=event.status).inc()
        logger.info(
            "Case %s updated by %s: %s -> %s",
            case.protocol, actor.label, old_status, case.status,
        )
        return await self._load(case.id, load_relations=True)

    # ── Deletion ─────────────────────────────────────────────────────────

    async def delete_case(self, actor: Actor, case_id: int) -> None:
        """
        Remove a case with its events and photos.

        Runs inside the request transaction, so either all three deletes
        commit together or none do.
        """
        if not actor.is_admin:
            raise Forbidden("Only administrators can delete cases")

        case = await self._load(case_id)
        can_access(actor, case.category, case.owner_id).require("delete")
        protocol = case.protocol

        await self.session.execute(delete(CaseEvent).where(CaseEvent.case_id == case_id))
        await self.session.execute(delete(CasePhoto).where(CasePhoto.case_id == case_id))
        await self.session.execute(delete(Case).where(Case.id == case_id))

        cases_deleted_total.inc()
        logger.info("Case %s deleted by %s", protocol, actor.label)
