import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ims.db.base import Base


class BorrowingStatus(str, enum.Enum):
    BORROWED = "BORROWED"
    RETURNED = "RETURNED"


class Borrowing(Base):
    __tablename__ = "borrowings"

    id = Column(Integer, primary_key=True, index=True)
    borrower_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(Enum(BorrowingStatus, name="borrowing_status"), nullable=False, default=BorrowingStatus.BORROWED)
    borrow_date = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    due_date = Column(DateTime(timezone=True), nullable=True)  # None: open-ended loan
    return_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(String(1024), nullable=True)

    borrower = relationship("Customer", backref="borrowings")
    approved_by = relationship("User")
    links = relationship("BorrowingItem", back_populates="borrowing", order_by="BorrowingItem.inventory_item_id")


class BorrowingItem(Base):
    """Item lent under a borrowing. Kept after return as history."""
    __tablename__ = "borrowing_items"
    __table_args__ = (
        # An item can be out on at most one open borrowing
        Index(
            "uq_borrowing_items_open_item",
            "inventory_item_id",
            unique=True,
            sqlite_where=text("returned_at IS NULL"),
            postgresql_where=text("returned_at IS NULL"),
        ),
    )

    borrowing_id = Column(Integer, ForeignKey("borrowings.id"), primary_key=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), primary_key=True)
    linked_at = Column(DateTime(timezone=True), server_default=func.now())
    returned_at = Column(DateTime(timezone=True), nullable=True)  # None while open

    borrowing = relationship("Borrowing", back_populates="links")
    item = relationship("InventoryItem")
