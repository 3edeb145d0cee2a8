"""
Local disk storage for property images
Files live under {UPLOAD_DIR}/properties and are referenced as
/uploads/properties/<name>, which app.main serves as static files.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import List, Iterable
import logging
import random
import time
from app.config import settings

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
PUBLIC_PREFIX = "/uploads/"
PROPERTY_FOLDER = "properties"


@dataclass
class ImageUpload:
    filename: str
    content_type: str
    content: bytes


def upload_root() -> Path:
    return Path(settings.UPLOAD_DIR)


def ensure_upload_dirs() -> Path:
    folder = upload_root() / PROPERTY_FOLDER
    folder.mkdir(parents=True, exist_ok=True)
    return folder


def validate_images(files: List[ImageUpload]) -> None:
    """Raise ValueError with the client-facing message for the first violated limit"""
    if len(files) > settings.MAX_PROPERTY_IMAGES:
        raise ValueError(f"Too many files. Maximum {settings.MAX_PROPERTY_IMAGES} images allowed.")

    for upload in files:
        content_type = (upload.content_type or "").lower()
        if not content_type.startswith("image/"):
            raise ValueError("Only image files are allowed")
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise ValueError("Only JPEG, PNG, GIF and WebP images are allowed")
        if len(upload.content) > settings.max_image_size_bytes:
            raise ValueError(f"File too large. Maximum size is {settings.MAX_IMAGE_SIZE_MB}MB per image.")


def _unique_name(original_name: str) -> str:
    extension = Path(original_name or "").suffix
    suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"property-{suffix}{extension}"


def save_property_images(files: List[ImageUpload]) -> List[str]:
    """
    Validate and write uploads to disk.
    Returns public URLs in upload order; if any write fails the files
    already written are removed before the error propagates.
    """
    validate_images(files)
    if not files:
        return []

    folder = ensure_upload_dirs()
    urls: List[str] = []
    try:
        for upload in files:
            name = _unique_name(upload.filename)
            (folder / name).write_bytes(upload.content)
            urls.append(f"{PUBLIC_PREFIX}{PROPERTY_FOLDER}/{name}")
    except OSError:
        delete_local_images(urls)
        raise

    logger.info(f"🖼️ Saved {len(urls)} property image(s)")
    return urls


def local_path_for(url: str) -> Path:
    """Map a /uploads/... URL to its file, refusing paths that escape the upload root"""
    root = upload_root().resolve()
    candidate = (root / url[len(PUBLIC_PREFIX):]).resolve()
    if root not in candidate.parents:
        raise ValueError(f"Image path outside upload directory: {url}")
    return candidate


def delete_local_images(urls: Iterable[str]) -> int:
    """Remove locally stored images; external URLs are ignored. Returns the number deleted."""
    deleted = 0
    for url in urls:
        if not url or not url.startswith(PUBLIC_PREFIX):
            continue
        try:
            local_path_for(url).unlink()
            deleted += 1
        except (OSError, ValueError) as e:
            logger.error(f"❌ Error deleting image {url}: {str(e)}")
    return deleted
