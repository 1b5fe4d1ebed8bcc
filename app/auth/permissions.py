# app/auth/permissions.py
from typing import List, Dict, Any, Iterable, Optional
from app.core.exceptions import PermissionDeniedError
import logging

logger = logging.getLogger(__name__)

READ_ACTIONS = [
    ("catalog", "read"),
    ("inventory", "read"),
    ("purchase_order", "read"),
    ("procurement", "read"),
    ("alert", "read"),
]

STAFF_ACTIONS = READ_ACTIONS + [
    ("inventory", "move"),
    ("inventory", "reserve"),
    ("inventory", "transfer"),
    ("purchase_order", "create"),
    ("purchase_order", "update"),
    ("purchase_order", "receive"),
    ("alert", "acknowledge"),
]

MANAGER_ACTIONS = STAFF_ACTIONS + [
    ("catalog", "write"),
    ("purchase_order", "admin"),
    ("procurement", "run"),
    ("alert", "admin"),
]

ROLE_PERMISSIONS: Dict[str, List[tuple]] = {
    "ADMIN": [("system", "admin")],
    "MANAGER": MANAGER_ACTIONS,
    "STAFF": STAFF_ACTIONS,
    "VIEWER": READ_ACTIONS,
}


class PermissionChecker:
    """
    Check user permissions from JWT token claims
    """

    def __init__(self, user_permissions: List[Dict[str, Any]]):
        self.permissions = user_permissions or []
        self._permission_map = {}

        for perm in self.permissions:
            resource = perm.get("resource")
            action = perm.get("action")
            if resource and action:
                self._permission_map[f"{resource}:{action}"] = True

        logger.debug(f"PermissionChecker initialized with {len(self.permissions)} permissions")

    @classmethod
    def from_roles(cls, roles: Iterable[str], extra_permissions: Optional[List[Dict[str, Any]]] = None) -> "PermissionChecker":
        """Expand role names into resource:action grants"""
        permissions = list(extra_permissions or [])
        for role in roles or []:
            for resource, action in ROLE_PERMISSIONS.get(str(role).upper(), []):
                permissions.append({
                    "name": f"{resource}:{action}",
                    "resource": resource,
                    "action": action,
                })
        return cls(permissions)

    @classmethod
    def system(cls) -> "PermissionChecker":
        """Checker used by scheduled jobs acting as the system user"""
        return cls.from_roles(["ADMIN"])

    def can(self, resource: str, action: str) -> bool:
        """
        Check if user can perform action on resource

        Examples:
            can("purchase_order", "approve")
        """
        permission_key = f"{resource}:{action}"
        if permission_key in self._permission_map:
            return True

        # Admin permission on this resource
        if f"{resource}:admin" in self._permission_map:
            return True

        # System admin (full access)
        if "system:admin" in self._permission_map:
            return True

        logger.debug(f"Permission denied: {permission_key}")
        return False

    def cannot(self, resource: str, action: str) -> bool:
        return not self.can(resource, action)

    def require(
        self,
        resource: str,
        action: str,
        custom_message: Optional[str] = None
    ):
        """
        Require permission or raise PermissionDeniedError
        """
        if self.cannot(resource, action):
            message = custom_message or f"Insufficient permissions to {action} {resource}"
            logger.warning(f"Permission check failed: {message}")
            raise PermissionDeniedError(message)

    def has_any(self, *permission_tuples) -> bool:
        for resource, action in permission_tuples:
            if self.can(resource, action):
                return True
        return False

    def get_all_permissions(self) -> List[str]:
        return sorted(self._permission_map)
