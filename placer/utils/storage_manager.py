"""Photo storage backends and upload checks.

Local disk is the default backend: files land under ``UPLOAD_DIR`` and are
served by the app at ``PUBLIC_UPLOAD_URL``. ``STORAGE_BACKEND=s3`` switches to
``S3PhotoStorage``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from fastapi import UploadFile

from placer.core.config import settings
from placer.core.errors import ValidationError

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


def extension_for(content_type: str) -> str:
    return _EXTENSIONS.get(content_type, "")


@dataclass(frozen=True)
class StoredPhoto:
    url: str
    storage_id: str


class PhotoStorage(Protocol):
    def save(self, folder: str, data: bytes, content_type: str) -> StoredPhoto: ...

    def delete(self, storage_id: str) -> bool: ...


class LocalPhotoStorage:
    """디스크 기반 저장소"""

    def __init__(self, root: str = "uploads", public_url: str = "/uploads") -> None:
        self.root = Path(root)
        self.public_url = public_url.rstrip("/")
        if not self.root.exists():
            self.root.mkdir(parents=True, exist_ok=True)

    def save(self, folder: str, data: bytes, content_type: str) -> StoredPhoto:
        date_str = datetime.now().strftime("%Y%m%d")
        storage_id = f"{folder}/{date_str}/{uuid4().hex}{extension_for(content_type)}"
        path = self.root / storage_id
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return StoredPhoto(url=f"{self.public_url}/{storage_id}", storage_id=storage_id)

    def delete(self, storage_id: str) -> bool:
        path = (self.root / storage_id).resolve()
        # storage_id must stay inside the upload root
        if self.root.resolve() not in path.parents:
            return False
        if not path.exists():
            return False
        path.unlink()
        return True


@lru_cache
def get_photo_storage() -> PhotoStorage:
    """Return the configured storage backend (FastAPI dependency)."""
    if settings.storage_backend == "s3":
        from placer.utils.s3_storage import S3PhotoStorage

        if not settings.s3_bucket:
            raise RuntimeError("S3_BUCKET is not configured.")
        return S3PhotoStorage(
            bucket_name=settings.s3_bucket,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region=settings.s3_region,
            public_url=settings.s3_public_url,
        )
    return LocalPhotoStorage(settings.upload_dir, settings.public_upload_url)


async def read_images(files: list[UploadFile] | None, field: str = "photos") -> list[tuple[bytes, str]]:
    """Read uploads after checking count, type and size.

    Raises ValidationError before anything is stored.
    """
    files = [f for f in (files or []) if f is not None and f.filename]
    if len(files) > settings.max_upload_files:
        raise ValidationError(
            errors=[{"field": field, "message": f"At most {settings.max_upload_files} files allowed"}]
        )
    out: list[tuple[bytes, str]] = []
    for upload in files:
        content_type = (upload.content_type or "").lower()
        if content_type not in settings.allowed_image_types:
            raise ValidationError(
                errors=[{"field": field, "message": f"Unsupported image type: {content_type or 'unknown'}"}]
            )
        data = await upload.read(settings.max_upload_bytes + 1)
        if len(data) > settings.max_upload_bytes:
            raise ValidationError(
                errors=[{"field": field, "message": f"{upload.filename} exceeds the upload size limit"}]
            )
        out.append((data, content_type))
    return out


def discard_photos(storage: PhotoStorage, storage_ids: list[str]) -> None:
    """Best-effort cleanup; a failed delete is logged, never raised."""
    for storage_id in storage_ids:
        try:
            if not storage.delete(storage_id):
                logger.warning("photo %s was not deleted from storage", storage_id)
        except Exception:  # noqa: BLE001
            logger.exception("failed to delete photo %s", storage_id)
