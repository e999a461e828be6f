# backend/schemas/product.py
from decimal import Decimal
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Dict, Any


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Schema for creating a new product in the owner's shop
class ProductCreate(ORMBase):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    category: str = Field(min_length=1)
    price: Decimal = Field(ge=Decimal("0.01"), decimal_places=2)
    cost_price: Decimal = Field(ge=0, decimal_places=2)
    stock_quantity: int = Field(ge=0)
    details: Dict[str, Any] = Field(default_factory=dict)


# Schema for partial product updates
class ProductUpdate(ORMBase):
    """Schema for PUT requests - all fields optional."""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    price: Optional[Decimal] = Field(None, ge=Decimal("0.01"), decimal_places=2)
    cost_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    stock_quantity: Optional[int] = Field(None, ge=0)
    details: Optional[Dict[str, Any]] = None


# Full product representation for the owning shop
class ProductOut(ORMBase):
    id: int
    shop_id: int
    name: str
    description: str
    category: str
    price: Decimal
    cost_price: Decimal
    stock_quantity: int
    details: Dict[str, Any] = Field(default_factory=dict)


# Customer facing view, cost price excluded
class PublicProductOut(ORMBase):
    id: int
    shop_id: int
    name: str
    description: str
    price: Decimal
    stock_quantity: int
