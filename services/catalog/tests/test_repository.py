"""Tests for the inventory repository and its image lifecycle."""

import os

import pytest
from sqlalchemy.exc import OperationalError

from boutique import crud, models
from boutique.assets import ImageAssetManager
from boutique.database import engine
from boutique.exceptions import (
    AssetDeleteError,
    AssetWriteError,
    CatalogError,
    DuplicateCodeError,
    EmptyVariantSetError,
    NotFoundError,
    ValidationError,
)
from boutique.repository import InventoryRepository, write_with_image
from tests.factories import JPEG_BYTES, PNG_BYTES, make_fields, make_sizes, uploaded_files


class FailingWriteAssets(ImageAssetManager):
    """Asset store whose writes always fail."""

    def store(self, data, original_filename):
        raise AssetWriteError("disk full")


class FailingDeleteAssets(ImageAssetManager):
    """Asset store whose deletes always fail."""

    def delete(self, ref):
        raise AssetDeleteError("permission denied")


class TestCreate:
    """Tests for InventoryRepository.create."""

    def test_create_then_list(self, repo: InventoryRepository) -> None:
        """A new dress is listed with its image and sizes intact."""
        dress = repo.create(make_fields("A1"), make_sizes(500, 700), JPEG_BYTES, "front.jpg")

        listed = repo.list()
        assert [d.id for d in listed] == [dress.id]
        assert listed[0].image_url == dress.image_url
        assert repo.assets.exists(dress.image_url)
        assert [(s.range, s.price) for s in listed[0].sizes] == [("S", 500), ("M", 700)]
        assert listed[0].created_at is not None

    def test_sizes_keep_their_order(self, repo: InventoryRepository) -> None:
        dress = repo.create(make_fields("A1"), make_sizes(900, 100, 500), JPEG_BYTES, "front.jpg")
        assert [s.range for s in dress.sizes] == ["S", "M", "L"]

    def test_measurements_are_stored(self, repo: InventoryRepository) -> None:
        dress = repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "front.jpg")
        assert dress.sizes[0].body_long == "40"
        assert dress.sizes[0].pant_long == "38"

    def test_empty_sizes_rejected(self, repo: InventoryRepository, upload_dir: str) -> None:
        """No sizes means nothing is written anywhere."""
        with pytest.raises(EmptyVariantSetError):
            repo.create(make_fields("A1"), [], JPEG_BYTES, "front.jpg")
        assert repo.list() == []
        assert uploaded_files(upload_dir) == []

    def test_image_required(self, repo: InventoryRepository) -> None:
        with pytest.raises(ValidationError):
            repo.create(make_fields("A1"), make_sizes(500), b"", "front.jpg")
        assert repo.list() == []

    def test_duplicate_code(self, repo: InventoryRepository, upload_dir: str) -> None:
        """The second dress with the same code is rejected and leaves no image behind."""
        first = repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "front.jpg")
        with pytest.raises(DuplicateCodeError):
            repo.create(make_fields("A1", name="Other"), make_sizes(800), PNG_BYTES, "other.png")

        assert [d.id for d in repo.list()] == [first.id]
        assert uploaded_files(upload_dir) == [os.path.basename(first.image_url)]

    def test_duplicate_code_caught_at_insert(self, repo: InventoryRepository, upload_dir: str, monkeypatch) -> None:
        """A duplicate missed by the pre-check hits the unique constraint and is cleaned up."""
        first = repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "front.jpg")
        monkeypatch.setattr(crud, "get_dress_by_code", lambda db, code: None)

        with pytest.raises(DuplicateCodeError):
            repo.create(make_fields("A1", name="Other"), make_sizes(800), PNG_BYTES, "other.png")

        assert [d.id for d in repo.list()] == [first.id]
        assert uploaded_files(upload_dir) == [os.path.basename(first.image_url)]

    def test_database_error_on_insert(self, repo: InventoryRepository, upload_dir: str, monkeypatch) -> None:
        """Other database failures become a plain CatalogError and remove the new image."""
        def broken_add(db, fields, sizes, image_url):
            raise OperationalError("INSERT INTO dresses", {}, Exception("disk I/O error"))

        monkeypatch.setattr(crud, "add_dress", broken_add)

        with pytest.raises(CatalogError) as exc_info:
            repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "front.jpg")

        assert type(exc_info.value) is CatalogError
        assert "disk I/O error" in exc_info.value.details["reason"]
        assert uploaded_files(upload_dir) == []

    def test_image_write_failure_persists_nothing(self, db, upload_dir: str) -> None:
        repo = InventoryRepository(db, FailingWriteAssets(upload_dir))
        with pytest.raises(AssetWriteError):
            repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "front.jpg")
        assert repo.list() == []


class TestQueries:
    """Tests for list, get and category facets."""

    def test_list_newest_first(self, repo: InventoryRepository) -> None:
        first = repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "a.jpg")
        second = repo.create(make_fields("B2"), make_sizes(500), JPEG_BYTES, "b.jpg")
        assert [d.id for d in repo.list()] == [second.id, first.id]

    def test_list_by_category(self, repo: InventoryRepository) -> None:
        repo.create(make_fields("A1", "Summer"), make_sizes(500), JPEG_BYTES, "a.jpg")
        repo.create(make_fields("B2", "Winter"), make_sizes(800), JPEG_BYTES, "b.jpg")
        assert [d.code for d in repo.list("Summer")] == ["A1"]
        assert len(repo.list("All")) == 2

    def test_facets(self, repo: InventoryRepository) -> None:
        """Facets are the wildcard followed by distinct categories."""
        assert repo.facets() == ["All"]
        repo.create(make_fields("A1", "Winter"), make_sizes(500), JPEG_BYTES, "a.jpg")
        repo.create(make_fields("B2", "Summer"), make_sizes(500), JPEG_BYTES, "b.jpg")
        repo.create(make_fields("C3", "Summer"), make_sizes(500), JPEG_BYTES, "c.jpg")
        assert repo.distinct_categories() == ["Summer", "Winter"]
        assert repo.facets() == ["All", "Summer", "Winter"]

    def test_get_missing(self, repo: InventoryRepository) -> None:
        with pytest.raises(NotFoundError):
            repo.get(999)


class TestUpdate:
    """Tests for InventoryRepository.update."""

    def test_category_only_change(self, repo: InventoryRepository) -> None:
        """Changing the category leaves code, name, sizes and image alone."""
        dress = repo.create(make_fields("A1", "Summer"), make_sizes(500, 700), JPEG_BYTES, "a.jpg")
        image_url = dress.image_url

        updated = repo.update(dress.id, make_fields("A1", "Winter"), make_sizes(500, 700))

        assert updated.category == "Winter"
        assert updated.code == "A1"
        assert updated.name == "Floral Maxi"
        assert updated.image_url == image_url
        assert [(s.range, s.price) for s in updated.sizes] == [("S", 500), ("M", 700)]

    def test_sizes_replaced_wholesale(self, db, repo: InventoryRepository) -> None:
        dress = repo.create(make_fields("A1"), make_sizes(500, 600, 700), JPEG_BYTES, "a.jpg")
        updated = repo.update(dress.id, make_fields("A1"), make_sizes(999))
        assert [s.price for s in updated.sizes] == [999]
        assert db.query(models.DressSize).count() == 1

    def test_replace_image(self, repo: InventoryRepository, upload_dir: str) -> None:
        """The new image is referenced and the old file is removed."""
        dress = repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "a.jpg")
        old_ref = dress.image_url

        updated = repo.update(dress.id, make_fields("A1"), make_sizes(500), PNG_BYTES, "b.png")

        assert updated.image_url != old_ref
        assert updated.image_url.endswith(".png")
        assert not repo.assets.exists(old_ref)
        assert uploaded_files(upload_dir) == [os.path.basename(updated.image_url)]

    def test_old_image_delete_failure_is_tolerated(self, db, upload_dir: str) -> None:
        repo = InventoryRepository(db, FailingDeleteAssets(upload_dir))
        dress = repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "a.jpg")
        updated = repo.update(dress.id, make_fields("A1"), make_sizes(500), PNG_BYTES, "b.png")
        assert updated.image_url.endswith(".png")
        assert len(uploaded_files(upload_dir)) == 2

    def test_missing_dress(self, repo: InventoryRepository) -> None:
        with pytest.raises(NotFoundError):
            repo.update(42, make_fields("A1"), make_sizes(500))

    def test_empty_sizes_rejected(self, repo: InventoryRepository) -> None:
        dress = repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "a.jpg")
        with pytest.raises(ValidationError):
            repo.update(dress.id, make_fields("A1"), [])
        assert len(repo.get(dress.id).sizes) == 1

    def test_code_taken_by_another_dress(self, repo: InventoryRepository, upload_dir: str) -> None:
        repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "a.jpg")
        other = repo.create(make_fields("B2"), make_sizes(500), JPEG_BYTES, "b.jpg")
        with pytest.raises(DuplicateCodeError):
            repo.update(other.id, make_fields("A1"), make_sizes(500), PNG_BYTES, "c.png")
        assert repo.get(other.id).code == "B2"
        assert len(uploaded_files(upload_dir)) == 2


class TestDelete:
    """Tests for InventoryRepository.delete."""

    def test_delete(self, db, repo: InventoryRepository) -> None:
        """Deleted dresses disappear together with their image and sizes."""
        dress = repo.create(make_fields("A1"), make_sizes(500, 600), JPEG_BYTES, "a.jpg")
        dress_id, image_url = dress.id, dress.image_url

        repo.delete(dress_id)

        assert dress_id not in [d.id for d in repo.list()]
        assert not repo.assets.exists(image_url)
        assert db.query(models.DressSize).count() == 0

    def test_second_delete_not_found(self, repo: InventoryRepository) -> None:
        dress = repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "a.jpg")
        dress_id = dress.id
        repo.delete(dress_id)
        with pytest.raises(NotFoundError):
            repo.delete(dress_id)

    def test_image_already_gone(self, repo: InventoryRepository) -> None:
        dress = repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "a.jpg")
        os.remove(repo.assets.path_for(dress.image_url))
        repo.delete(dress.id)
        assert repo.list() == []

    def test_image_delete_failure_keeps_record_deleted(self, db, upload_dir: str) -> None:
        """The dress row is authoritative even when its image cannot be removed."""
        repo = InventoryRepository(db, FailingDeleteAssets(upload_dir))
        dress = repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "a.jpg")
        repo.delete(dress.id)
        assert repo.list() == []


class TestWriteWithImage:
    """Tests for the store, commit, cleanup sequence."""

    def test_failed_write_removes_new_image(self, db, assets: ImageAssetManager, upload_dir: str) -> None:
        """A failing write rolls back and deletes the image it just stored."""
        previous_ref = assets.store(JPEG_BYTES, "old.jpg")

        def write(ref):
            assert assets.exists(ref)
            raise RuntimeError("insert failed")

        with pytest.raises(RuntimeError):
            write_with_image(db, assets, write, PNG_BYTES, "new.png", previous_ref=previous_ref)

        assert uploaded_files(upload_dir) == [os.path.basename(previous_ref)]

    def test_without_image(self, db, repo: InventoryRepository, upload_dir: str) -> None:
        """No image means no asset work; the write receives None."""
        dress = repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "a.jpg")
        received = []

        def write(ref):
            received.append(ref)
            dress.name = "Renamed"
            return dress

        result = write_with_image(db, repo.assets, write)
        assert received == [None]
        assert result.name == "Renamed"
        assert len(uploaded_files(upload_dir)) == 1


class TestDatabaseErrors:
    """Database failures surface as catalog errors, never as raw SQLAlchemy exceptions."""

    @pytest.fixture
    def missing_tables(self) -> None:
        models.Base.metadata.drop_all(bind=engine)

    def test_list(self, repo: InventoryRepository, missing_tables) -> None:
        with pytest.raises(CatalogError) as exc_info:
            repo.list()
        assert type(exc_info.value) is CatalogError

    def test_categories(self, repo: InventoryRepository, missing_tables) -> None:
        with pytest.raises(CatalogError):
            repo.distinct_categories()
        with pytest.raises(CatalogError):
            repo.facets()

    def test_get(self, repo: InventoryRepository, missing_tables) -> None:
        with pytest.raises(CatalogError) as exc_info:
            repo.get(1)
        assert not isinstance(exc_info.value, NotFoundError)

    def test_create_stores_no_image(self, repo: InventoryRepository, upload_dir: str, missing_tables) -> None:
        """The duplicate-code lookup fails before any image is written."""
        with pytest.raises(CatalogError):
            repo.create(make_fields("A1"), make_sizes(500), JPEG_BYTES, "front.jpg")
        assert uploaded_files(upload_dir) == []

    def test_update(self, repo: InventoryRepository, missing_tables) -> None:
        with pytest.raises(CatalogError):
            repo.update(1, make_fields("A1"), make_sizes(500), PNG_BYTES, "new.png")

    def test_delete(self, repo: InventoryRepository, missing_tables) -> None:
        with pytest.raises(CatalogError):
            repo.delete(1)
