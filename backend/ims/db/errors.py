"""Translate store integrity failures into typed errors.

SQLite and PostgreSQL report constraint violations with different message
formats; both are recognised here so the rest of the code only sees
`UniqueConstraintViolation`, `ForeignKeyViolation` or `ValidationError`.
"""
import re
from typing import List

from sqlalchemy.exc import IntegrityError

from ims.core.exceptions import (
    ConflictError,
    ForeignKeyViolation,
    InventoryError,
    UniqueConstraintViolation,
    ValidationError,
)

# sqlite: "UNIQUE constraint failed: inventory_items.serial_number, inventory_items.mac_address"
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (?P<cols>[\w., ]+)")
# postgres: 'DETAIL:  Key (serial_number)=(SN-1) already exists.'
_PG_UNIQUE_KEY = re.compile(r"Key \((?P<cols>[^)]+)\)=")
_NOT_NULL = re.compile(r"NOT NULL constraint failed: (?:\w+\.)?(?P<col>\w+)|null value in column \"(?P<pgcol>\w+)\"")


def unique_fields(message: str) -> List[str]:
    match = _SQLITE_UNIQUE.search(message)
    if match:
        return [col.strip().split(".")[-1] for col in match.group("cols").split(",") if col.strip()]
    match = _PG_UNIQUE_KEY.search(message)
    if match:
        return [col.strip() for col in match.group("cols").split(",")]
    return []


def translate_integrity_error(error: IntegrityError) -> InventoryError:
    message = str(error.orig) if error.orig is not None else str(error)
    lowered = message.lower()

    if "unique" in lowered or "duplicate key" in lowered:
        return UniqueConstraintViolation(unique_fields(message))
    if "foreign key" in lowered:
        return ForeignKeyViolation()
    not_null = _NOT_NULL.search(message)
    if not_null:
        column = not_null.group("col") or not_null.group("pgcol")
        return ValidationError(f"{column} is required.")
    return ConflictError()
