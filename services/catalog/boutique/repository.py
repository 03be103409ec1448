"""
Inventory repository for the Catalog service.

Wraps the row-level operations in :mod:`boutique.crud` with validation,
typed errors and the image lifecycle. The image store and the database are
independent systems, so a dress write and its image are kept consistent with
a compensating sequence (see :func:`write_with_image`) rather than a single
transaction.

Concurrent writes to the same dress are not coordinated: full-record
replacement means the last writer wins.
"""
import logging
from contextlib import contextmanager
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import crud, models, schemas
from .assets import ImageAssetManager
from .catalog import ALL_CATEGORIES
from .exceptions import (
    AssetDeleteError,
    CatalogError,
    DuplicateCodeError,
    EmptyVariantSetError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def release_image(assets: ImageAssetManager, ref: Optional[str]) -> None:
    """Delete an image that no dress references; failures are only logged."""
    try:
        assets.delete(ref)
    except AssetDeleteError as e:
        logger.error(f"Orphaned image {ref} left behind: {e.message}")


def write_with_image(
    db: Session,
    assets: ImageAssetManager,
    write: Callable[[Optional[str]], models.Dress],
    image: Optional[bytes] = None,
    filename: Optional[str] = None,
    previous_ref: Optional[str] = None,
) -> models.Dress:
    """
    Write a dress and its image in the only order that never leaves a dress
    pointing at a missing file:

    1. store the new image (when ``image`` is given)
    2. ``write(new_ref)`` and commit the session
    3. delete ``previous_ref`` (when a new image replaced it)

    If step 2 fails the session is rolled back, the freshly stored image is
    deleted and the error is re-raised. A failure in step 3 is logged; the
    worst case is one unreferenced file.

    Args:
        db: Database session
        assets: Image store
        write: Stages the dress change; receives the new image reference,
            or None when no image was supplied
        image: Optional image bytes
        filename: Original name of the uploaded image
        previous_ref: Image reference superseded by ``image``

    Returns:
        The committed Dress
    """
    new_ref = None
    if image is not None:
        if previous_ref:
            new_ref = assets.replace(previous_ref, image, filename)
        else:
            new_ref = assets.store(image, filename)

    try:
        db_dress = write(new_ref)
        db.commit()
    except Exception:
        db.rollback()
        if new_ref is not None:
            logger.info(f"Rolling back: removing image {new_ref}")
            release_image(assets, new_ref)
        raise

    if new_ref is not None and previous_ref and previous_ref != new_ref:
        release_image(assets, previous_ref)

    db.refresh(db_dress)
    return db_dress


def validate_sizes(sizes: List[schemas.SizeVariant]) -> None:
    """Reject an empty size list before anything is written."""
    if not sizes:
        raise EmptyVariantSetError()


class InventoryRepository:
    """Repository for dress listings and their images.

    Every public method translates database failures into catalog errors,
    reads included.

    Example usage:
        repo = InventoryRepository(db, ImageAssetManager())
        dress = repo.create(fields, sizes, image_bytes, "front.jpg")
        repo.update(dress.id, fields, new_sizes)
        repo.delete(dress.id)
    """

    def __init__(self, db: Session, assets: ImageAssetManager) -> None:
        self.db = db
        self.assets = assets

    @contextmanager
    def _store_errors(self, code: Optional[str] = None):
        """Translate database errors into catalog errors."""
        try:
            yield
        except IntegrityError as e:
            logger.error(f"Integrity error writing dress '{code}': {e.orig}")
            self.db.rollback()
            raise DuplicateCodeError(code) from e
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}")
            self.db.rollback()
            raise CatalogError("Database error", details={"reason": str(e)}) from e

    def list(self, category: Optional[str] = None) -> List[models.Dress]:
        """All dresses, newest first, optionally limited to one category."""
        if category == ALL_CATEGORIES:
            category = None
        with self._store_errors():
            return crud.get_dresses(self.db, category=category)

    def get(self, dress_id: int) -> models.Dress:
        with self._store_errors():
            db_dress = crud.get_dress(self.db, dress_id)
        if db_dress is None:
            raise NotFoundError(dress_id)
        return db_dress

    def distinct_categories(self) -> List[str]:
        with self._store_errors():
            return crud.get_categories(self.db)

    def facets(self) -> List[str]:
        """Category facets for the browsing UI, led by the "All" wildcard."""
        return [ALL_CATEGORIES] + self.distinct_categories()

    def _code_taken(self, code: str, dress_id: Optional[int] = None) -> bool:
        """Whether ``code`` belongs to a dress other than ``dress_id``."""
        with self._store_errors(code):
            other = crud.get_dress_by_code(self.db, code)
        return other is not None and other.id != dress_id

    def create(
        self,
        fields: schemas.DressFields,
        sizes: List[schemas.SizeVariant],
        image: bytes,
        filename: Optional[str] = None,
    ) -> models.Dress:
        """
        Create a dress with its sizes and image.

        The code pre-check can race with a concurrent create; the unique
        constraint then fires at insert time and the stored image is removed.

        Raises:
            ValidationError: no sizes or no image
            DuplicateCodeError: ``fields.code`` is already taken
            AssetWriteError: the image could not be stored
        """
        validate_sizes(sizes)
        if not image:
            raise ValidationError("Image is required")
        if self._code_taken(fields.code):
            raise DuplicateCodeError(fields.code)

        with self._store_errors(fields.code):
            db_dress = write_with_image(
                self.db,
                self.assets,
                lambda ref: crud.add_dress(self.db, fields, sizes, ref),
                image=image,
                filename=filename,
            )
            logger.info(f"Created dress {db_dress.id} ('{db_dress.code}')")
        return db_dress

    def update(
        self,
        dress_id: int,
        fields: schemas.DressFields,
        sizes: List[schemas.SizeVariant],
        image: Optional[bytes] = None,
        filename: Optional[str] = None,
    ) -> models.Dress:
        """
        Replace every field and the whole size list of a dress, and its image
        when one is supplied.

        Raises:
            NotFoundError: no dress with ``dress_id``
            ValidationError: no sizes, or an empty image upload
            DuplicateCodeError: ``fields.code`` belongs to another dress
            AssetWriteError: the new image could not be stored
        """
        db_dress = self.get(dress_id)
        validate_sizes(sizes)
        if image is not None and not image:
            raise ValidationError("Uploaded image is empty")
        if self._code_taken(fields.code, db_dress.id):
            raise DuplicateCodeError(fields.code)

        with self._store_errors(fields.code):
            previous_ref = db_dress.image_url if image is not None else None
            db_dress = write_with_image(
                self.db,
                self.assets,
                lambda ref: crud.replace_dress(self.db, db_dress, fields, sizes, ref),
                image=image,
                filename=filename,
                previous_ref=previous_ref,
            )
            logger.info(f"Updated dress {db_dress.id} ('{db_dress.code}')")
        return db_dress

    def delete(self, dress_id: int) -> None:
        """
        Delete a dress, then its image.

        The dress row is authoritative: once it is gone the deletion stands,
        even if removing the image fails (that failure is only logged).

        Raises:
            NotFoundError: no dress with ``dress_id``
        """
        db_dress = self.get(dress_id)
        with self._store_errors(db_dress.code):
            image_ref = db_dress.image_url
            crud.delete_dress(self.db, db_dress)
            self.db.commit()
        logger.info(f"Deleted dress {dress_id}")
        release_image(self.assets, image_ref)
