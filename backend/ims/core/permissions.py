"""
Role tiers.

SUPER_ADMIN > ADMIN > EMPLOYEE. Route groups name the roles they accept;
ims.api.deps.require_roles enforces them.
"""
from ims.models.user import UserRole

ADMIN_ACCESS = (UserRole.ADMIN, UserRole.SUPER_ADMIN)
SUPER_ADMIN_ONLY = (UserRole.SUPER_ADMIN,)
