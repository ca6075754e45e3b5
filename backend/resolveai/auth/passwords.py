"""Password hashing utilities using passlib + bcrypt."""

from passlib.context import CryptContext

from resolveai.errors import ValidationError

MIN_PASSWORD_LENGTH = 6

_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain: str) -> str:
    return _ctx.hash(plain)


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return _ctx.verify(plain, hashed)


def check_new_password(password: str, confirm: str | None = None) -> None:
    """Reject passwords that are too short or don't match their confirmation."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if confirm is not None and password != confirm:
        raise ValidationError("Passwords do not match")
