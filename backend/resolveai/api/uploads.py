"""Signed upload authorizations for case photos."""

from fastapi import APIRouter, Depends

from resolveai.api.deps import get_actor
from resolveai.auth.context import Actor
from resolveai.schemas.schemas import UploadSignature
from resolveai.services.upload_signer import sign_upload

router = APIRouter(prefix="/api/uploads", tags=["uploads"])


@router.get("/signature", response_model=UploadSignature)
async def upload_signature(actor: Actor = Depends(get_actor)):
    """Time-limited signature scoped to the caller's own upload folder."""
    return sign_upload(actor)
