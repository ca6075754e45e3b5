"""
Token creation and verification.

Tokens are HS256 JWTs whose payload is tagged by ``kind``:

    user      citizen or admin API token      (secret_key)
    employee  employee API token              (secret_key)
    admin     admin session token / cookie    (admin signing key)

``verify_token`` accepts nothing else: the payload must validate against
exactly one of the claim models below or InvalidCredential is raised.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Literal, Union

from jose import JWTError, jwt
from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from resolveai.config import settings
from resolveai.errors import InvalidCredential
from resolveai.models.enums import EmployeeRole, UserRole

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class _BaseClaims(BaseModel):
    sub: str = Field(pattern=r"^\d+$")
    exp: int
    iat: int | None = None

    @property
    def subject_id(self) -> int:
        return int(self.sub)


class UserClaims(_BaseClaims):
    kind: Literal["user"]
    role: UserRole


class EmployeeClaims(_BaseClaims):
    kind: Literal["employee"]
    employee_code: int
    employee_role: EmployeeRole


class AdminClaims(_BaseClaims):
    kind: Literal["admin"]


TokenClaims = Annotated[
    Union[UserClaims, EmployeeClaims, AdminClaims],
    Field(discriminator="kind"),
]

_claims_adapter: TypeAdapter[TokenClaims] = TypeAdapter(TokenClaims)


def _encode(payload: dict, key: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {**payload, "iat": now, "exp": now + lifetime}
    return jwt.encode(payload, key, algorithm=ALGORITHM)


def create_user_token(user_id: int, role: str) -> str:
    return _encode(
        {"sub": str(user_id), "kind": "user", "role": role},
        settings.secret_key,
        timedelta(days=settings.access_token_expire_days),
    )


def create_employee_token(employee_id: int, employee_code: int, employee_role: str) -> str:
    return _encode(
        {
            "sub": str(employee_id),
            "kind": "employee",
            "employee_code": employee_code,
            "employee_role": employee_role,
        },
        settings.secret_key,
        timedelta(days=settings.access_token_expire_days),
    )


def create_admin_session_token(user_id: int) -> str:
    return _encode(
        {"sub": str(user_id), "kind": "admin"},
        settings.admin_signing_key,
        timedelta(days=settings.admin_session_expire_days),
    )


def clean_token(raw: str | None) -> str:
    """Strip surrounding quotes and a stray "Bearer " prefix."""
    token = (raw or "").strip()
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ("'", '"'):
        token = token[1:-1].strip()
    if token[:7].lower() == "bearer ":
        token = token[7:].strip()
    return token


def verify_token(raw: str | None) -> UserClaims | EmployeeClaims | AdminClaims:
    """Verify signature and expiry, then validate the claims by kind."""
    token = clean_token(raw)
    if not token:
        raise InvalidCredential("Missing token")

    try:
        unverified = jwt.get_unverified_claims(token)
    except JWTError as e:
        logger.debug("Malformed token: %s", e)
        raise InvalidCredential() from e

    key = settings.admin_signing_key if unverified.get("kind") == "admin" else settings.secret_key
    try:
        payload = jwt.decode(token, key, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug("JWT decode failed: %s", e)
        raise InvalidCredential() from e

    try:
        return _claims_adapter.validate_python(payload)
    except PydanticValidationError as e:
        logger.debug("Token claims rejected: %s", e)
        raise InvalidCredential("Malformed token claims") from e
