from ims.models.user import User
from ims.models.customer import Customer
from ims.models.catalog import Brand, Category, ProductModel
from ims.models.inventory import InventoryItem
from ims.models.sale import Sale
from ims.models.borrowing import Borrowing, BorrowingItem
from ims.models.asset import AssetAssignment, AssetAssignmentItem, AssetHistory

__all__ = [
    "User",
    "Customer",
    "Brand",
    "Category",
    "ProductModel",
    "InventoryItem",
    "Sale",
    "Borrowing",
    "BorrowingItem",
    "AssetAssignment",
    "AssetAssignmentItem",
    "AssetHistory",
]
