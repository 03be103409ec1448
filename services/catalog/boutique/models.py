"""
SQLAlchemy ORM models for the Catalog service.

Defines the database schema for dresses, their size variants and the
admin account.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey, Text
from sqlalchemy.orm import relationship
from .database import Base

class Dress(Base):
    """
    Dress listing shown in the public catalog.
    
    Attributes:
        id (int): Primary key, auto-incremented dress ID
        code (str): Short human-facing code (unique)
        name (str): Display name
        category (str): Free-text facet label
        note (str): Optional free text
        image_url (str): Reference to the stored image, e.g. /uploads/<name>
        created_at (datetime): Timestamp when the dress was created
        sizes (list[DressSize]): Size/price variants in display order
    """
    __tablename__ = "dresses"
    
    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    category = Column(String, index=True, nullable=False)
    note = Column(Text, nullable=True)
    image_url = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    sizes = relationship(
        "DressSize",
        back_populates="dress",
        order_by="DressSize.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class DressSize(Base):
    """
    One size/price/measurement option of a dress.
    
    Rows are written in the same transaction as their parent and are
    replaced wholesale whenever the dress is updated.
    """
    __tablename__ = "dress_sizes"

    id = Column(Integer, primary_key=True, index=True)
    dress_id = Column(Integer, ForeignKey("dresses.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    range = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    body_long = Column(String, nullable=True)
    pant_long = Column(String, nullable=True)

    dress = relationship("Dress", back_populates="sizes")


class AdminUser(Base):
    """
    Admin account allowed to manage the catalog.
    
    Attributes:
        id (int): Primary key
        username (str): Login name (unique)
        password_hash (str): bcrypt hash of the password
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
