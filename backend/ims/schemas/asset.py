from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field

from ims.models.asset import AssignmentOutcome
from ims.schemas.inventory import InventoryItemBrief
from ims.schemas.user import UserBrief


class AssetAssign(BaseModel):
    user_id: int
    notes: Optional[str] = None


class AssignmentCreate(BaseModel):
    user_id: int
    inventory_item_ids: List[int]
    notes: Optional[str] = None


class AssignedItem(BaseModel):
    inventory_item_id: int
    linked_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    item: Optional[InventoryItemBrief] = None

    class Config:
        from_attributes = True


class AssignmentResponse(BaseModel):
    id: int
    assignee_id: int
    assignee: Optional[UserBrief] = None
    approved_by_id: int
    approved_by: Optional[UserBrief] = None
    assigned_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[AssignedItem] = Field(default=[], validation_alias=AliasChoices("items", "links"))

    class Config:
        from_attributes = True


class AssetHistoryResponse(BaseModel):
    id: int
    inventory_item_id: int
    assignment_id: int
    assignee_id: int
    assignee: Optional[UserBrief] = None
    assigned_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    outcome: AssignmentOutcome

    class Config:
        from_attributes = True
