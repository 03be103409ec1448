"""
Pydantic schemas for request/response validation in the Catalog service.

These schemas define the structure of data for API requests and responses.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from . import variants


class SizeVariant(BaseModel):
    """
    One size/price/measurement option.

    Accepts both the camelCase names used by the admin form (``bodyLong``)
    and the ORM attribute names (``body_long``).
    """
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    range: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    body_long: Optional[str] = Field(default=None, alias="bodyLong")
    pant_long: Optional[str] = Field(default=None, alias="pantLong")

    @field_validator("range")
    @classmethod
    def range_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("size range must not be blank")
        return value


class DressFields(BaseModel):
    """Descriptive fields of a dress, as submitted by the admin form."""
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    note: Optional[str] = None

    @field_validator("code", "name", "category")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("note")
    @classmethod
    def empty_note_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value


class Dress(BaseModel):
    """
    Schema for dress responses, includes all database fields plus the
    derived price range.
    
    Attributes:
        id (int): Dress unique identifier
        code (str): Unique dress code
        name (str): Display name
        category (str): Facet label
        note (str): Optional free text
        sizes (list): Size variants in display order
        image_url (str): Reference to the stored image
        created_at (datetime): When the dress was created
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    category: str
    note: Optional[str] = None
    sizes: List[SizeVariant]
    image_url: str
    created_at: Optional[datetime] = None

    @computed_field
    @property
    def min_price(self) -> Optional[float]:
        return variants.min_price(self.sizes)

    @computed_field
    @property
    def max_price(self) -> Optional[float]:
        return variants.max_price(self.sizes)

    @computed_field
    @property
    def price_display(self) -> Optional[str]:
        return variants.format_price_range(self.sizes)


class AdminLogin(BaseModel):
    """Schema for admin login."""
    username: str
    password: str


class Token(BaseModel):
    """Schema for JWT token response."""
    access_token: str
    token_type: str = "bearer"


class AdminIdentity(BaseModel):
    """Identity extracted from a validated admin token."""
    id: int
    username: str
