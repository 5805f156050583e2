"""
Cloudinary image hosting helpers.

Post images are uploaded to Cloudinary and only the durable ``secure_url`` is
stored on the post document.
"""

import logging
import re
import traceback
from typing import Optional

import cloudinary
import cloudinary.uploader

import env

logger = logging.getLogger(__name__)

_CLOUDINARY_UPLOAD_PATH = re.compile(r"^(https?://res\.cloudinary\.com/[^/]+/image/upload/)(.+)$")


class ImageUploadError(Exception):
    """Raised when the image host rejects or fails an upload."""


def configure_cloudinary() -> bool:
    """
    Apply the account credentials from the environment.

    Returns:
        bool: False when the account is not configured
    """
    if not (env.CLOUDINARY_CLOUD_NAME and env.CLOUDINARY_API_KEY and env.CLOUDINARY_API_SECRET):
        return False
    cloudinary.config(
        cloud_name=env.CLOUDINARY_CLOUD_NAME,
        api_key=env.CLOUDINARY_API_KEY,
        api_secret=env.CLOUDINARY_API_SECRET,
        secure=True
    )
    return True


def has_upload(upload) -> bool:
    """True when a form upload actually carries a file."""
    return upload is not None and bool(getattr(upload, "filename", None))


def upload_image(upload) -> str:
    """
    Upload an image file to Cloudinary.

    Args:
        upload: A form upload (``UploadFile``) or any binary file object

    Returns:
        str: The secure delivery URL of the stored image

    Raises:
        ImageUploadError: if the host is not configured or the upload fails
    """
    if not configure_cloudinary():
        logger.error("Cloudinary credentials not found in environment variables")
        raise ImageUploadError("Image host is not configured")

    file_obj = getattr(upload, "file", upload)
    filename = getattr(upload, "filename", None)
    try:
        result = cloudinary.uploader.upload(
            file_obj,
            folder=env.CLOUDINARY_FOLDER,
            resource_type="image"
        )
    except Exception as e:
        logger.error(f"Cloudinary upload failed for '{filename}': {e}")
        logger.error(traceback.format_exc())
        raise ImageUploadError("Error uploading image") from e

    secure_url = result.get("secure_url")
    if not secure_url:
        logger.error(f"Cloudinary returned no secure_url for '{filename}': {result}")
        raise ImageUploadError("Error uploading image")

    logger.info(f"Uploaded image '{filename}' to {secure_url}")
    return secure_url


def image_display_url(url: Optional[str], width: int = 800) -> Optional[str]:
    """
    Rewrite a Cloudinary delivery URL so the CDN serves a resized, optimised
    rendition. Other URLs are returned unchanged.
    """
    if not url:
        return url
    match = _CLOUDINARY_UPLOAD_PATH.match(url)
    if not match:
        return url
    prefix, rest = match.groups()
    if rest.startswith("c_"):
        return url
    return f"{prefix}c_fill,w_{width},q_auto,f_auto/{rest}"
