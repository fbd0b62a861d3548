import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ims.db.base import Base


class AssignmentOutcome(str, enum.Enum):
    RETURNED = "RETURNED"
    DECOMMISSIONED = "DECOMMISSIONED"


class AssetAssignment(Base):
    __tablename__ = "asset_assignments"

    id = Column(Integer, primary_key=True, index=True)
    assignee_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    returned_at = Column(DateTime(timezone=True), nullable=True)  # Set when the last asset comes back
    notes = Column(String(1024), nullable=True)

    assignee = relationship("User", foreign_keys=[assignee_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])
    links = relationship("AssetAssignmentItem", back_populates="assignment", order_by="AssetAssignmentItem.inventory_item_id")


class AssetAssignmentItem(Base):
    __tablename__ = "asset_assignment_items"
    __table_args__ = (
        # At most one open assignment per asset
        Index(
            "uq_asset_assignment_items_open_item",
            "inventory_item_id",
            unique=True,
            sqlite_where=text("returned_at IS NULL"),
            postgresql_where=text("returned_at IS NULL"),
        ),
    )

    assignment_id = Column(Integer, ForeignKey("asset_assignments.id"), primary_key=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), primary_key=True)
    linked_at = Column(DateTime(timezone=True), server_default=func.now())
    returned_at = Column(DateTime(timezone=True), nullable=True)

    assignment = relationship("AssetAssignment", back_populates="links")
    item = relationship("InventoryItem")


class AssetHistory(Base):
    """Closed assignment period of one asset."""
    __tablename__ = "asset_history"

    id = Column(Integer, primary_key=True, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False, index=True)
    assignment_id = Column(Integer, ForeignKey("asset_assignments.id"), nullable=False)
    assignee_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_at = Column(DateTime(timezone=True), nullable=True)
    returned_at = Column(DateTime(timezone=True), server_default=func.now())
    outcome = Column(Enum(AssignmentOutcome, name="assignment_outcome"), nullable=False)

    assignee = relationship("User")
