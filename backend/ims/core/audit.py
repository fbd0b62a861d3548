"""
Audit logging for security-critical and stock-moving operations.

One JSON line per event on the `audit` logger, so the stream can be
shipped to centralized logging separately from application logs.
Passwords and tokens are never logged.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ims.models.user import User

audit_logger = logging.getLogger("audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditLog:
    """Central audit logging."""

    @staticmethod
    def log_authentication(
        action: str,  # "login", "register", "failed_login"
        username: str,
        ip_address: str,
        success: bool,
        reason: str = "",
    ):
        """
        Usage:
            AuditLog.log_authentication("login", "somchai", "192.168.1.1", True)
            AuditLog.log_authentication("failed_login", "somchai", "192.168.1.1", False, reason="Invalid password")
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": f"auth.{action}",
            "username": username,
            "ip_address": ip_address,
            "success": success,
        }
        if reason and not success:
            log_entry["reason"] = reason

        if success:
            audit_logger.info(json.dumps(log_entry))
        else:
            audit_logger.warning(json.dumps(log_entry))

    @staticmethod
    def log_action(
        action: str,  # "create", "update", "delete", "return", "assign", "decommission"
        resource_type: str,  # "sale", "borrowing", "asset", "inventory_item", ...
        resource_id: int,
        user: User,
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Record who changed what, and when.

        Usage:
            AuditLog.log_action("delete", "sale", 12, current_user, changes={"item_ids": [4, 5]})
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": f"{resource_type}.{action}",
            "user_id": user.id,
            "username": user.username,
            "resource_id": resource_id,
        }
        if changes:
            log_entry["changes"] = changes

        audit_logger.info(json.dumps(log_entry, default=str))

    @staticmethod
    def log_access_denied(path: str, user_id: int, role: str, required: str):
        """Role gate rejected an authenticated user."""
        log_entry = {
            "timestamp": _now(),
            "event_type": "access.denied",
            "path": path,
            "user_id": user_id,
            "role": role,
            "required": required,
        }
        audit_logger.warning(json.dumps(log_entry))

    @staticmethod
    def log_permission_change(
        user_id: int,
        changed_by: int,
        field: str,  # "role" or "account_status"
        old: str,
        new: str,
    ):
        """Track role and account status changes (privilege escalation, lockouts)."""
        log_entry = {
            "timestamp": _now(),
            "event_type": "permissions.changed",
            "user_id": user_id,
            "changed_by": changed_by,
            "field": field,
            "old": old,
            "new": new,
        }
        audit_logger.info(json.dumps(log_entry))
