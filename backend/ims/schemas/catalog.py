from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ims.schemas.common import NamedRef


class NamedCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)


class ProductModelCreate(BaseModel):
    model_number: str = Field(min_length=1, max_length=128)
    description: Optional[str] = None
    selling_price: Optional[Decimal] = Field(default=None, ge=0)
    category_id: int
    brand_id: int


class ProductModelUpdate(BaseModel):
    model_number: Optional[str] = Field(default=None, min_length=1, max_length=128)
    description: Optional[str] = None
    selling_price: Optional[Decimal] = Field(default=None, ge=0)
    category_id: Optional[int] = None
    brand_id: Optional[int] = None


class ProductModelBrief(BaseModel):
    id: int
    model_number: str
    description: Optional[str] = None
    selling_price: Optional[float] = None
    category: Optional[NamedRef] = None
    brand: Optional[NamedRef] = None

    class Config:
        from_attributes = True


class ProductModelResponse(ProductModelBrief):
    category_id: int
    brand_id: int
    created_by_id: Optional[int] = None
    created_at: Optional[datetime] = None
