"""
Signed upload authorizations for the external image host.

The browser uploads photos straight to the host; the API only hands out a
short-lived signature bound to a folder owned by the caller. The host
checks ``sha1("folder=<folder>&timestamp=<ts>" + api_secret)``, so the
parameter order here must match what the client sends.
"""

import hashlib
import time

from resolveai.auth.context import Actor
from resolveai.config import Settings, settings as default_settings
from resolveai.errors import ServiceUnavailable


def actor_folder(actor: Actor, base_folder: str) -> str:
    return f"{base_folder.rstrip('/')}/{actor.kind.value.lower()}/{actor.id}"


def compute_signature(params: dict[str, str | int], api_secret: str) -> str:
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


def sign_upload(actor: Actor, *, settings: Settings = default_settings, now: float | None = None) -> dict:
    if not (settings.cloudinary_cloud_name and settings.cloudinary_api_key and settings.cloudinary_api_secret):
        raise ServiceUnavailable("Image upload is not configured")

    timestamp = int(now if now is not None else time.time())
    folder = actor_folder(actor, settings.cloudinary_folder)
    signature = compute_signature(
        {"folder": folder, "timestamp": timestamp},
        settings.cloudinary_api_secret,
    )
    return {
        "cloud_name": settings.cloudinary_cloud_name,
        "api_key": settings.cloudinary_api_key,
        "timestamp": timestamp,
        "folder": folder,
        "signature": signature,
    }
