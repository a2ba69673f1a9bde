"""
Image hosting

Event images are stored on Cloudinary; only the returned public URL is kept
in the database.
"""
import io
import logging
from typing import Optional

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

import config
from errors import UpstreamError

logger = logging.getLogger(__name__)


class CloudinaryUploader:
    def __init__(self, cloud_name: Optional[str] = None, api_key: Optional[str] = None,
                 api_secret: Optional[str] = None, folder: str = config.CLOUDINARY_FOLDER,
                 timeout: int = config.UPLOAD_TIMEOUT_SECONDS):
        self.folder = folder
        self.timeout = timeout
        cloudinary.config(
            cloud_name=cloud_name or config.CLOUDINARY_CLOUD_NAME,
            api_key=api_key or config.CLOUDINARY_API_KEY,
            api_secret=api_secret or config.CLOUDINARY_API_SECRET,
            secure=True,
        )

    def upload(self, data: bytes) -> str:
        """Upload raw image bytes and return the public https URL."""
        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(data),
                resource_type="image",
                folder=self.folder,
                timeout=self.timeout,
            )
        except CloudinaryError as exc:
            logger.error("Image upload failed: %s", exc)
            raise UpstreamError("Image upload failed") from exc
        url = result.get("secure_url")
        if not url:
            logger.error("Image host returned no URL: %r", result)
            raise UpstreamError("Image upload failed")
        return url
