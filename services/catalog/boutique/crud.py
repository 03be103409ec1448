"""
CRUD (Create, Read, Update, Delete) operations for the Catalog service.

This module contains the row-level database operations for dresses. None of
these functions commit; committing (and cleaning up images when a commit
fails) is the job of :mod:`boutique.repository`.
"""
from typing import List, Optional
from sqlalchemy.orm import Session
from . import models, schemas

def get_dress(db: Session, dress_id: int) -> Optional[models.Dress]:
    """
    Retrieve a single dress by ID.
    
    Args:
        db: Database session
        dress_id: ID of the dress to retrieve
        
    Returns:
        Dress object or None if not found
    """
    return db.query(models.Dress).filter(models.Dress.id == dress_id).first()

def get_dress_by_code(db: Session, code: str) -> Optional[models.Dress]:
    """
    Retrieve a dress by its code.
    
    Args:
        db: Database session
        code: Dress code to search for
        
    Returns:
        Dress object or None if not found
    """
    return db.query(models.Dress).filter(models.Dress.code == code).first()

def get_dresses(db: Session, category: Optional[str] = None) -> List[models.Dress]:
    """
    Retrieve all dresses, newest first.
    
    Args:
        db: Database session
        category: Optional exact category to restrict the result to
        
    Returns:
        List of Dress objects
    """
    query = db.query(models.Dress)
    if category is not None:
        query = query.filter(models.Dress.category == category)
    return query.order_by(models.Dress.created_at.desc(), models.Dress.id.desc()).all()

def get_categories(db: Session) -> List[str]:
    """Distinct category values across all dresses, alphabetically."""
    rows = db.query(models.Dress.category).distinct().order_by(models.Dress.category).all()
    return [row[0] for row in rows]

def build_sizes(sizes: List[schemas.SizeVariant]) -> List[models.DressSize]:
    """Turn validated size variants into ORM rows, keeping their order."""
    return [
        models.DressSize(
            position=position,
            range=size.range,
            price=size.price,
            body_long=size.body_long,
            pant_long=size.pant_long,
        )
        for position, size in enumerate(sizes)
    ]

def add_dress(
    db: Session,
    fields: schemas.DressFields,
    sizes: List[schemas.SizeVariant],
    image_url: str,
) -> models.Dress:
    """
    Stage a new dress together with its sizes.
    
    Args:
        db: Database session
        fields: Descriptive fields of the dress
        sizes: Size variants, in display order
        image_url: Reference of the already stored image
        
    Returns:
        The pending Dress object (flushed, so its ID is assigned)
    """
    db_dress = models.Dress(
        code=fields.code,
        name=fields.name,
        category=fields.category,
        note=fields.note,
        image_url=image_url,
        sizes=build_sizes(sizes),
    )
    db.add(db_dress)
    db.flush()
    return db_dress

def replace_dress(
    db: Session,
    db_dress: models.Dress,
    fields: schemas.DressFields,
    sizes: List[schemas.SizeVariant],
    image_url: Optional[str] = None,
) -> models.Dress:
    """
    Overwrite every field of a dress and replace its sizes wholesale.

    The image reference only changes when ``image_url`` is given.
    """
    update_data = fields.model_dump()
    for key, value in update_data.items():
        setattr(db_dress, key, value)
    db_dress.sizes = build_sizes(sizes)
    if image_url is not None:
        db_dress.image_url = image_url
    db.flush()
    return db_dress

def delete_dress(db: Session, db_dress: models.Dress) -> None:
    """Stage the removal of a dress; its sizes go with it."""
    db.delete(db_dress)
    db.flush()
