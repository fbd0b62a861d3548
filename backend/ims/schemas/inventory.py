from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ims.models.inventory import ItemStatus, ItemType
from ims.schemas.catalog import ProductModelBrief
from ims.schemas.user import UserBrief


class _IdentifierFields(BaseModel):
    @field_validator("serial_number", "mac_address", "asset_code", mode="before", check_fields=False)
    @classmethod
    def blank_to_none(cls, v):
        # Unique columns: "" would collide with every other blank value
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class InventoryItemCreate(_IdentifierFields):
    serial_number: Optional[str] = None
    mac_address: Optional[str] = None
    asset_code: Optional[str] = None  # Rejected: only assets carry one
    product_model_id: int


class InventoryItemUpdate(_IdentifierFields):
    serial_number: Optional[str] = None
    mac_address: Optional[str] = None
    asset_code: Optional[str] = None
    product_model_id: Optional[int] = None
    status: Optional[ItemStatus] = None


class AssetCreate(_IdentifierFields):
    asset_code: Optional[str] = None
    serial_number: Optional[str] = None
    mac_address: Optional[str] = None
    product_model_id: int


class InventoryItemBrief(BaseModel):
    id: int
    item_type: ItemType
    status: ItemStatus
    serial_number: Optional[str] = None
    mac_address: Optional[str] = None
    asset_code: Optional[str] = None
    product_model: Optional[ProductModelBrief] = None

    class Config:
        from_attributes = True


class InventoryItemResponse(InventoryItemBrief):
    product_model_id: int
    added_by_id: Optional[int] = None
    sale_id: Optional[int] = None
    assigned_to_id: Optional[int] = None
    assigned_to: Optional[UserBrief] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
