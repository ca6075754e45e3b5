"""
Pydantic schemas for API request/response models.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation

from pydantic import AliasChoices, BaseModel, Field, field_validator

ADDRESS_MAX_LENGTH = 500
URL_MAX_LENGTH = 1000


def _parse_coordinate(value):
    """Accept numbers or numeric strings (decimal comma allowed); junk becomes None."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def _parse_suggested_code(value):
    """A suggested employee code is only a hint; anything but a whole number is dropped."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


# ── Auth ──

class LoginRequest(BaseModel):
    identifier: str = Field(validation_alias=AliasChoices("identifier", "email"))
    password: str


class RegisterRequest(BaseModel):
    name: str = Field("", max_length=200)
    email: str = Field(max_length=255)
    password: str


class AdminLoginRequest(BaseModel):
    email: str
    password: str


class UserSchema(BaseModel):
    id: int
    name: str | None = None
    email: str
    role: str


class EmployeeSchema(BaseModel):
    id: int
    employee_code: int
    name: str
    cpf: str | None = None
    role: str
    is_active: bool = True
    created_at: datetime | None = None


class LoginResponse(BaseModel):
    kind: str  # "user" | "employee"
    token: str
    user: UserSchema | None = None
    employee: EmployeeSchema | None = None


# ── Cases ──

class CaseCreate(BaseModel):
    category: str = Field("", max_length=30)
    description: str = ""
    address: str = Field("", max_length=ADDRESS_MAX_LENGTH)
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    photo_url: str | None = Field(
        None, max_length=URL_MAX_LENGTH, validation_alias=AliasChoices("photo_url", "photoUrl")
    )

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def coerce_coordinate(cls, value):
        return _parse_coordinate(value)


class CaseUpdate(BaseModel):
    """PATCH body. Fields not listed here (category included) are ignored."""

    status: str | None = Field(None, max_length=20)
    description: str | None = None
    message: str | None = None
    photo_url: str | None = Field(
        None, max_length=URL_MAX_LENGTH, validation_alias=AliasChoices("photo_url", "photoUrl")
    )


class PhotoSchema(BaseModel):
    id: int
    url: str
    kind: str
    created_at: datetime | None = None


class PersonSummary(BaseModel):
    id: int
    name: str | None = None
    email: str | None = None


class EmployeeSummary(BaseModel):
    id: int
    employee_code: int
    name: str
    role: str


class EventSchema(BaseModel):
    id: int
    status: str
    message: str | None = None
    photo_url: str | None = None
    author_id: int | None = None
    employee_id: int | None = None
    author: PersonSummary | None = None
    employee: EmployeeSummary | None = None
    created_at: datetime | None = None


class CaseSummary(BaseModel):
    id: int
    protocol: str
    category: str
    status: str
    description: str
    address: str
    latitude: float | None = None
    longitude: float | None = None
    owner_id: int | None = None
    photo: PhotoSchema | None = None
    recent_events: list[EventSchema] = []
    created_at: datetime | None = None


class CaseDetail(BaseModel):
    id: int
    protocol: str
    category: str
    status: str
    description: str
    address: str
    latitude: float | None = None
    longitude: float | None = None
    owner_id: int | None = None
    owner: PersonSummary | None = None
    photo: PhotoSchema | None = None
    photos: list[PhotoSchema] = []
    events: list[EventSchema] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CaseUpdateResponse(BaseModel):
    ok: bool = True
    case: CaseDetail


# ── Employees ──

class EmployeeCreate(BaseModel):
    name: str = Field("", max_length=200)
    cpf: str = ""
    role: str = ""
    password: str = ""
    confirm_password: str = Field("", validation_alias=AliasChoices("confirm_password", "confirmPassword"))
    employee_code: int | None = Field(None, validation_alias=AliasChoices("employee_code", "employeeCode"))

    @field_validator("employee_code", mode="before")
    @classmethod
    def drop_unusable_code(cls, value):
        return _parse_suggested_code(value)


class EmployeeToggleResponse(BaseModel):
    id: int
    is_active: bool


# ── Uploads ──

class UploadSignature(BaseModel):
    cloud_name: str
    api_key: str
    timestamp: int
    folder: str
    signature: str
