from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field

from ims.models.borrowing import BorrowingStatus
from ims.schemas.customer import CustomerBrief
from ims.schemas.inventory import InventoryItemBrief
from ims.schemas.user import UserBrief


class BorrowingCreate(BaseModel):
    customer_id: int
    inventory_item_ids: List[int]
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


class BorrowingReturn(BaseModel):
    item_ids_to_return: List[int]


class BorrowedItem(BaseModel):
    inventory_item_id: int
    linked_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    item: Optional[InventoryItemBrief] = None

    class Config:
        from_attributes = True


class BorrowingResponse(BaseModel):
    id: int
    borrower_id: int
    borrower: Optional[CustomerBrief] = None
    approved_by_id: int
    approved_by: Optional[UserBrief] = None
    status: BorrowingStatus
    borrow_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[BorrowedItem] = Field(default=[], validation_alias=AliasChoices("items", "links"))

    class Config:
        from_attributes = True
