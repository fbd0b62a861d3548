from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from ims.schemas.customer import CustomerBrief
from ims.schemas.inventory import InventoryItemBrief
from ims.schemas.user import UserBrief


class SaleCreate(BaseModel):
    customer_id: int
    inventory_item_ids: List[int]


class SaleUpdate(BaseModel):
    customer_id: Optional[int] = None
    inventory_item_ids: List[int]


class SaleResponse(BaseModel):
    id: int
    customer_id: int
    customer: Optional[CustomerBrief] = None
    sold_by_id: int
    sold_by: Optional[UserBrief] = None
    subtotal: float
    vat_amount: float
    total: float
    sale_date: Optional[datetime] = None
    items: List[InventoryItemBrief] = []

    class Config:
        from_attributes = True
