"""
    Catalog Service API

    This module implements a FastAPI-based service for a dress shop catalog.
    It exposes a public browsing API (list, category facets, fuzzy search, sort)
    and an admin API for creating, updating and deleting dresses together with
    their images, with SQLAlchemy persistence.

    The service exposes:
    - Public endpoints under /api for browsing the catalog
    - Admin endpoints under /api/admin, protected by JWT bearer tokens
    - Uploaded images as static files under /uploads
    - Health endpoint: Provides service health status for monitoring and orchestration
"""
from contextlib import asynccontextmanager
from typing import List, Optional, Tuple
import json
import logging
import os

import pydantic
from fastapi import FastAPI, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session

from . import auth, models, schemas
from .assets import ImageAssetManager
from .catalog import ALL_CATEGORIES, CatalogQueryEngine, SortKey
from .config import LOG_LEVEL, UPLOADS_DIR, UPLOADS_URL_PREFIX
from .database import SessionLocal, engine, get_db
from .exceptions import (
    AssetDeleteError,
    AssetWriteError,
    AuthError,
    CatalogError,
    DuplicateCodeError,
    NotFoundError,
    ValidationError,
)
from .repository import InventoryRepository

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Create database tables
models.Base.metadata.create_all(bind=engine)

# Ensure uploads directory exists
os.makedirs(UPLOADS_DIR, exist_ok=True)

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicateCodeError: status.HTTP_409_CONFLICT,
    AssetWriteError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    AssetDeleteError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_size_list = pydantic.TypeAdapter(List[schemas.SizeVariant])


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Seed the admin account on startup."""
    db = SessionLocal()
    try:
        auth.seed_admin(db)
    finally:
        db.close()
    yield


app = FastAPI(title="catalog-service", lifespan=lifespan)
app.mount(UPLOADS_URL_PREFIX, StaticFiles(directory=UPLOADS_DIR), name="uploads")


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    """Render catalog errors as JSON with a status matching their kind."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS:
            status_code = ERROR_STATUS[error_type]
            break
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.message, "details": exc.details},
        headers=headers,
    )


def get_assets() -> ImageAssetManager:
    """Dependency providing the image store."""
    return ImageAssetManager(UPLOADS_DIR)


def get_repository(
    db: Session = Depends(get_db),
    assets: ImageAssetManager = Depends(get_assets),
) -> InventoryRepository:
    """Dependency providing a repository bound to the request's session."""
    return InventoryRepository(db, assets)


def get_query_engine() -> CatalogQueryEngine:
    return CatalogQueryEngine()


def parse_dress_form(
    code: str,
    name: str,
    category: str,
    note: Optional[str],
    sizes: str,
) -> Tuple[schemas.DressFields, List[schemas.SizeVariant]]:
    """
    Validate the multipart admin form.

    Args:
        code, name, category, note: Descriptive fields
        sizes: JSON array of {range, price, bodyLong, pantLong}

    Returns:
        Typed fields and size variants

    Raises:
        ValidationError: if any field is missing or malformed
    """
    try:
        fields = schemas.DressFields(code=code, name=name, category=category, note=note)
        size_list = _size_list.validate_python(json.loads(sizes or "[]"))
    except json.JSONDecodeError as e:
        raise ValidationError("sizes must be a JSON array", details={"reason": str(e)}) from e
    except pydantic.ValidationError as e:
        errors = [
            {"loc": [str(part) for part in error["loc"]], "msg": error["msg"]}
            for error in e.errors()
        ]
        raise ValidationError("Invalid dress data", details={"errors": errors}) from e
    return fields, size_list


def read_upload(image: Optional[UploadFile]) -> Tuple[Optional[bytes], Optional[str]]:
    """Read an uploaded image; no file (or an unnamed empty part) means no image."""
    if image is None or not image.filename:
        return None, None
    return image.file.read(), image.filename


@app.get("/healthz", response_model=dict)
def health():
    """
    Health check endpoint for the catalog service.

    Returns:
        dict: A dictionary containing the health status of the service.
            - status (str): "healthy" if the service is operational.

    Example:
        GET /healthz
        Response: {"status": "healthy"}
    """
    return {"status": "healthy"}


@app.get("/api/dresses", response_model=List[schemas.Dress])
def list_dresses(
    category: str = ALL_CATEGORIES,
    search: str = "",
    sort: SortKey = SortKey.NEWEST,
    repo: InventoryRepository = Depends(get_repository),
    query_engine: CatalogQueryEngine = Depends(get_query_engine),
):
    """
    List dresses for the public catalog.

    Args:
        category: Exact category to show, or "All" (default)
        search: Fuzzy search over name, code, category and note
        sort: newest (default), price_asc or price_desc

    Returns:
        List of dress objects, filtered and ordered
    """
    return query_engine.apply(repo.list(), category=category, search_text=search, sort_key=sort)


@app.get("/api/dresses/{dress_id}", response_model=schemas.Dress)
def get_dress(dress_id: int, repo: InventoryRepository = Depends(get_repository)):
    """
    Get a single dress by ID.

    Raises:
        NotFoundError: 404 if the dress does not exist
    """
    return repo.get(dress_id)


@app.get("/api/categories", response_model=List[str])
def list_categories(repo: InventoryRepository = Depends(get_repository)):
    """
    Category facets: "All" followed by every category in use.

    Example:
        GET /api/categories
        Response: ["All", "Summer", "Winter"]
    """
    return repo.facets()


@app.post("/api/admin/login", response_model=schemas.Token)
def login(credentials: schemas.AdminLogin, db: Session = Depends(get_db)):
    """
    Authenticate the admin and issue a JWT.

    Raises:
        AuthError: 401 if credentials are invalid
    """
    user = auth.authenticate_admin(db, credentials.username, credentials.password)
    return auth.issue_token(user)


@app.post("/api/admin/dresses", response_model=schemas.Dress, status_code=status.HTTP_201_CREATED)
def create_dress(
    code: str = Form(""),
    name: str = Form(""),
    category: str = Form(""),
    note: Optional[str] = Form(None),
    sizes: str = Form("[]"),
    image: Optional[UploadFile] = File(None),
    repo: InventoryRepository = Depends(get_repository),
    current_admin: schemas.AdminIdentity = Depends(auth.require_admin),
):
    """
    Create a dress (admin only).

    Multipart form fields: code, name, category, note, sizes (JSON array), image (file).

    Raises:
        ValidationError: 400 if a field is missing, sizes is empty or no image was sent
        DuplicateCodeError: 409 if the code already exists
    """
    fields, size_list = parse_dress_form(code, name, category, note, sizes)
    data, filename = read_upload(image)
    if not data:
        raise ValidationError("Image is required")
    logger.info(f"Admin '{current_admin.username}' creating dress '{fields.code}'")
    return repo.create(fields, size_list, data, filename)


@app.put("/api/admin/dresses/{dress_id}", response_model=schemas.Dress)
def update_dress(
    dress_id: int,
    code: str = Form(""),
    name: str = Form(""),
    category: str = Form(""),
    note: Optional[str] = Form(None),
    sizes: str = Form("[]"),
    image: Optional[UploadFile] = File(None),
    repo: InventoryRepository = Depends(get_repository),
    current_admin: schemas.AdminIdentity = Depends(auth.require_admin),
):
    """
    Replace a dress (admin only). The image is only replaced when a new one is sent.

    Raises:
        NotFoundError: 404 if the dress does not exist
        ValidationError: 400 if a field is missing or sizes is empty
        DuplicateCodeError: 409 if the code belongs to another dress
    """
    fields, size_list = parse_dress_form(code, name, category, note, sizes)
    data, filename = read_upload(image)
    logger.info(f"Admin '{current_admin.username}' updating dress {dress_id}")
    return repo.update(dress_id, fields, size_list, data, filename)


@app.delete("/api/admin/dresses/{dress_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_dress(
    dress_id: int,
    repo: InventoryRepository = Depends(get_repository),
    current_admin: schemas.AdminIdentity = Depends(auth.require_admin),
):
    """
    Delete a dress and its image (admin only).

    Raises:
        NotFoundError: 404 if the dress does not exist
    """
    logger.info(f"Admin '{current_admin.username}' deleting dress {dress_id}")
    repo.delete(dress_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.api_route("/api/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH"], include_in_schema=False)
def api_not_found(path: str):
    """Unknown API routes get a JSON 404."""
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": f"API route not found: /api/{path}"})
