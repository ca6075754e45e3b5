"""
Case status rules.

Any authorized writer may move a case to any of the four statuses; there is
no forward-only graph. Two statuses carry photo constraints that are always
enforced on the update that sets them:

    COMPLETED    must come with a photo URL (proof of the finished work)
    IN_PROGRESS  must not come with a photo URL

Every accepted update, status change or not, yields exactly one CaseEvent,
and a supplied photo URL is also stored as an UPDATE photo.
"""

from dataclasses import dataclass

from resolveai.auth.context import Actor
from resolveai.errors import NoOpError, ValidationError
from resolveai.models import Case, CaseEvent, CasePhoto
from resolveai.models.enums import CaseStatus, PhotoKind

INITIAL_STATUS = CaseStatus.RECEIVED

PHOTO_REQUIRED: frozenset[CaseStatus] = frozenset({CaseStatus.COMPLETED})
PHOTO_FORBIDDEN: frozenset[CaseStatus] = frozenset({CaseStatus.IN_PROGRESS})


@dataclass(frozen=True)
class StatusChange:
    """A normalized PATCH: blank strings have already been dropped."""

    status: CaseStatus | None = None
    description: str | None = None
    message: str | None = None
    photo_url: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.status or self.description or self.message or self.photo_url)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_status(raw: str | None) -> CaseStatus | None:
    value = _blank_to_none(raw)
    if value is None:
        return None
    try:
        return CaseStatus(value.upper())
    except ValueError:
        allowed = ", ".join(s.value for s in CaseStatus)
        raise ValidationError(f"Invalid status. Must be one of: {allowed}") from None


def build_change(
    status: str | None = None,
    description: str | None = None,
    message: str | None = None,
    photo_url: str | None = None,
) -> StatusChange:
    """Normalize raw PATCH fields and enforce the photo rules."""
    change = StatusChange(
        status=parse_status(status),
        description=_blank_to_none(description),
        message=_blank_to_none(message),
        photo_url=_blank_to_none(photo_url),
    )
    if change.is_empty:
        raise NoOpError()

    if change.status in PHOTO_REQUIRED and not change.photo_url:
        raise ValidationError(f"A photo is required to mark a case as {change.status.value}")
    if change.status in PHOTO_FORBIDDEN and change.photo_url:
        raise ValidationError(f"A photo cannot be attached when marking a case as {change.status.value}")
    return change


def apply_change(case: Case, change: StatusChange, actor: Actor) -> tuple[CaseEvent, CasePhoto | None]:
    """
    Apply ``change`` to ``case`` in memory and build the rows it produces.

    Returns the new CaseEvent and, when a photo URL was supplied, the UPDATE
    CasePhoto. The caller adds both to the session. Category is never touched.
    """
    if change.status is not None:
        case.status = change.status.value
    if change.description is not None:
        case.description = change.description

    photo = None
    if change.photo_url:
        photo = CasePhoto(case_id=case.id, url=change.photo_url, kind=PhotoKind.UPDATE.value)

    event = CaseEvent(
        case_id=case.id,
        status=case.status,
        message=change.message,
        photo_url=change.photo_url,
        author_id=None if actor.is_employee else actor.id,
        employee_id=actor.id if actor.is_employee else None,
    )
    return event, photo
