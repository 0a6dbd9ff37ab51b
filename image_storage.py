import io
from typing import NamedTuple, Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
import structlog
from fastapi.concurrency import run_in_threadpool

from config import Settings

logger = structlog.get_logger(__name__)

# Fixed transform applied to every blog image
UPLOAD_TRANSFORM = {
    "width": 1200,
    "crop": "fill",
    "quality": "auto",
    "format": "jpg",
}


class ImageStorageError(Exception):
    pass


class StoredImage(NamedTuple):
    public_id: str
    url: str


class ImageStorage:
    """Cloudinary-backed image host"""

    def __init__(self, settings: Settings):
        self.folder = settings.cloudinary_folder
        if settings.cloudinary_cloud_name:
            cloudinary.config(
                cloud_name=settings.cloudinary_cloud_name,
                api_key=settings.cloudinary_api_key,
                api_secret=settings.cloudinary_api_secret,
                secure=True,
            )

    async def upload(self, content: bytes, filename: Optional[str] = None) -> StoredImage:
        try:
            result = await run_in_threadpool(
                cloudinary.uploader.upload,
                io.BytesIO(content),
                folder=self.folder,
                **UPLOAD_TRANSFORM,
            )
        except cloudinary.exceptions.Error as e:
            raise ImageStorageError(str(e)) from e
        logger.info("image_uploaded", public_id=result["public_id"], filename=filename)
        return StoredImage(public_id=result["public_id"], url=result["secure_url"])

    async def destroy(self, public_id: str) -> None:
        try:
            result = await run_in_threadpool(cloudinary.uploader.destroy, public_id)
        except cloudinary.exceptions.Error as e:
            raise ImageStorageError(str(e)) from e
        if result.get("result") not in ("ok", "not found"):
            raise ImageStorageError(f"destroy returned {result.get('result')!r}")


async def destroy_best_effort(storage: ImageStorage, public_id: str) -> None:
    """Remove an external asset; a failure is logged and never propagated"""
    try:
        await storage.destroy(public_id)
    except ImageStorageError as e:
        logger.warning("image_delete_failed", public_id=public_id, error=str(e))
