import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ims.db.base import Base


class ItemType(str, enum.Enum):
    SALE = "SALE"
    ASSET = "ASSET"


class ItemStatus(str, enum.Enum):
    IN_STOCK = "IN_STOCK"
    SOLD = "SOLD"
    BORROWED = "BORROWED"
    IN_WAREHOUSE = "IN_WAREHOUSE"
    ASSIGNED = "ASSIGNED"
    DECOMMISSIONED = "DECOMMISSIONED"
    DEFECTIVE = "DEFECTIVE"


# Status an item of each type is created in and returns to
RESTING_STATUS = {
    ItemType.SALE: ItemStatus.IN_STOCK,
    ItemType.ASSET: ItemStatus.IN_WAREHOUSE,
}


class InventoryItem(Base):
    """
    One physical unit.

    `status` is only ever changed through the transitions in
    ims.services.lifecycle, which keep it consistent with the item's links:
    SOLD <-> sale_id set, BORROWED <-> one open borrowing link,
    ASSIGNED <-> one open assignment link.
    """
    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True, index=True)
    item_type = Column(Enum(ItemType, name="item_type"), nullable=False, default=ItemType.SALE)
    status = Column(Enum(ItemStatus, name="item_status"), nullable=False, default=ItemStatus.IN_STOCK, index=True)
    serial_number = Column(String(128), unique=True, nullable=True)
    mac_address = Column(String(64), unique=True, nullable=True)
    asset_code = Column(String(64), unique=True, nullable=True)
    product_model_id = Column(Integer, ForeignKey("product_models.id"), nullable=False)
    added_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=True, index=True)
    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product_model = relationship("ProductModel")
    added_by = relationship("User", foreign_keys=[added_by_id])
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])
    sale = relationship("Sale", back_populates="items")
