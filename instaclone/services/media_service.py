"""Image storage: Cloudinary (with server-side transformation) or local uploads dir"""

from __future__ import annotations

import io
import os
from pathlib import Path
from typing import Optional, Protocol
from uuid import uuid4

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..utils.config import MediaSettings, get_settings
from ..utils.exceptions import ConfigError, MediaUploadError
from ..utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic"}


class MediaUploader(Protocol):
    def upload(self, data: bytes, filename: str, content_type: Optional[str] = None) -> str:
        """Store the image and return its public URL (the post's media_ref)."""
        ...


def validate_image(data: bytes, filename: str, content_type: Optional[str], max_bytes: int) -> str:
    """Return the normalised extension, or raise MediaUploadError."""
    if not data:
        raise MediaUploadError("No image provided", status_code=400)
    if len(data) > max_bytes:
        raise MediaUploadError(f"Image exceeds {max_bytes} bytes", status_code=413)
    ext = Path(filename or "").suffix.lower()
    if content_type and not content_type.startswith("image/"):
        raise MediaUploadError(f"Unsupported content type: {content_type}", status_code=415)
    if ext and ext not in ALLOWED_EXTENSIONS:
        raise MediaUploadError(f"Unsupported image type: {ext}", status_code=415)
    return ext or ".jpg"


class CloudinaryUploader:
    """Uploads to Cloudinary with an incoming transformation (resize/quality/format)."""

    def __init__(self, settings: MediaSettings, cloud_name: str, api_key: str, api_secret: str):
        self.settings = settings
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )

    def _transformation(self) -> list:
        t = self.settings.transformation
        step = {
            "width": t.max_width,
            "height": t.max_height,
            "crop": t.crop,
            "quality": t.quality,
        }
        if t.format:
            step["fetch_format"] = t.format
        return [step]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((cloudinary.exceptions.RateLimited, cloudinary.exceptions.GeneralError)),
        reraise=True,
    )
    def _send(self, data: bytes) -> dict:
        return cloudinary.uploader.upload(
            io.BytesIO(data),
            resource_type="image",
            folder=self.settings.folder,
            public_id=uuid4().hex,
            overwrite=False,
            transformation=self._transformation(),
        )

    def upload(self, data: bytes, filename: str, content_type: Optional[str] = None) -> str:
        validate_image(data, filename, content_type, self.settings.max_upload_bytes)
        try:
            result = self._send(data)
        except cloudinary.exceptions.Error as e:
            logger.error("Cloudinary upload failed", filename=filename, error=str(e))
            raise MediaUploadError(f"Image upload failed: {e}", status_code=502)
        url = result.get("secure_url") or result.get("url")
        if not url:
            raise MediaUploadError("Cloudinary did not return a URL", status_code=502)
        return url


class LocalUploader:
    """Stores files under uploads_dir; served by the web app at /uploads/."""

    def __init__(self, settings: MediaSettings, base_url: str = "/uploads"):
        self.settings = settings
        self.base_url = base_url.rstrip("/")

    @property
    def uploads_dir(self) -> Path:
        return Path(self.settings.uploads_dir)

    def upload(self, data: bytes, filename: str, content_type: Optional[str] = None) -> str:
        ext = validate_image(data, filename, content_type, self.settings.max_upload_bytes)
        name = f"{uuid4().hex}{ext}"
        try:
            self.uploads_dir.mkdir(parents=True, exist_ok=True)
            (self.uploads_dir / name).write_bytes(data)
        except OSError as e:
            logger.error("Local upload failed", filename=filename, error=str(e))
            raise MediaUploadError(f"Image upload failed: {e}", status_code=500)
        return f"{self.base_url}/{name}"


def get_uploader(settings: Optional[MediaSettings] = None) -> MediaUploader:
    """Uploader for the configured provider. Cloudinary needs CLOUDINARY_* env vars."""
    settings = settings or get_settings().media
    if settings.provider == "cloudinary":
        cloud_name = os.getenv("CLOUDINARY_CLOUD_NAME")
        api_key = os.getenv("CLOUDINARY_API_KEY")
        api_secret = os.getenv("CLOUDINARY_API_SECRET")
        if not cloud_name or not api_key or not api_secret:
            raise ConfigError("Cloudinary is selected but CLOUDINARY_* credentials are missing")
        return CloudinaryUploader(settings, cloud_name, api_key, api_secret)
    return LocalUploader(settings)
