"""
Image asset storage for dress listings.

Images live as plain files in the upload directory and are referenced by the
URL the static file server exposes them under (``/uploads/<name>``).
"""
import logging
import os
import random
import time
from typing import Optional

from .config import UPLOADS_DIR, UPLOADS_URL_PREFIX
from .exceptions import AssetDeleteError, AssetWriteError, ValidationError

logger = logging.getLogger(__name__)


def generate_filename(original_filename: Optional[str]) -> str:
    """
    Build a collision-resistant file name: ``<epoch millis>-<random><ext>``.

    Only the extension of the uploaded file name is kept, case unchanged.
    """
    extension = os.path.splitext(original_filename or "")[1]
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return unique_suffix + extension


class ImageAssetManager:
    """
    Stores, replaces and deletes dress images.

    Example usage:
        assets = ImageAssetManager("/var/lib/boutique/uploads")
        ref = assets.store(data, "front.jpg")   # "/uploads/1718000000000-42.jpg"
        assets.delete(ref)
    """

    def __init__(self, upload_dir: str = UPLOADS_DIR, url_prefix: str = UPLOADS_URL_PREFIX) -> None:
        self.upload_dir = upload_dir
        self.url_prefix = url_prefix.rstrip("/")

    def path_for(self, ref: str) -> str:
        """
        Filesystem path of an asset reference.

        Only the last path component of ``ref`` is used, so a reference can
        never point outside the upload directory.
        """
        return os.path.join(self.upload_dir, os.path.basename(ref or ""))

    def exists(self, ref: str) -> bool:
        return bool(ref) and os.path.isfile(self.path_for(ref))

    def store(self, data: bytes, original_filename: Optional[str]) -> str:
        """
        Write image bytes under a newly generated name.

        Args:
            data: Raw image bytes
            original_filename: Name of the uploaded file (extension is kept)

        Returns:
            Reference to the stored image, e.g. ``/uploads/<name>``

        Raises:
            ValidationError: if ``data`` is empty
            AssetWriteError: if the file could not be written
        """
        if not data:
            raise ValidationError("Image is required")

        filename = generate_filename(original_filename)
        path = os.path.join(self.upload_dir, filename)
        created = False
        try:
            os.makedirs(self.upload_dir, exist_ok=True)
            with open(path, "xb") as handle:
                created = True
                handle.write(data)
        except OSError as e:
            logger.error(f"Failed to write image '{filename}': {e}")
            if created and os.path.exists(path):
                os.remove(path)
            raise AssetWriteError(f"Could not store image: {e}", details={"filename": filename}) from e

        ref = f"{self.url_prefix}/{filename}"
        logger.info(f"Stored image {ref} ({len(data)} bytes)")
        return ref

    def replace(self, old_ref: Optional[str], data: bytes, original_filename: Optional[str]) -> str:
        """
        Store a new image meant to supersede ``old_ref``.

        ``old_ref`` is left untouched: the caller deletes it once the dress
        row pointing at the new image has been committed.
        """
        ref = self.store(data, original_filename)
        logger.info(f"Image {ref} will supersede {old_ref}")
        return ref

    def delete(self, ref: Optional[str]) -> None:
        """
        Remove an image. Deleting an image that is already gone is a no-op.

        Raises:
            AssetDeleteError: if the file exists but could not be removed
        """
        if not ref:
            return
        path = self.path_for(ref)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.info(f"Image {ref} already absent, nothing to delete")
            return
        except OSError as e:
            logger.error(f"Failed to delete image {ref}: {e}")
            raise AssetDeleteError(f"Could not delete image: {e}", details={"ref": ref}) from e
        logger.info(f"Deleted image {ref}")
