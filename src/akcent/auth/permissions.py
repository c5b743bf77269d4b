"""Roles and the permission table.

Learn: Handlers never compare role strings directly. Each protected
endpoint asks for a named permission and this table answers which roles
hold it, so widening or narrowing access is a one-line change here.
"""

import enum


class Role(str, enum.Enum):
    ADMIN = "admin"
    MODERATOR = "moderator"
    CUSTOMER = "customer"


ALL_ROLES = frozenset(r.value for r in Role)
STAFF_ROLES = frozenset({Role.ADMIN.value, Role.MODERATOR.value})
ADMIN_ONLY = frozenset({Role.ADMIN.value})


PERMISSIONS: dict[str, frozenset[str]] = {
    # Users and invites
    "users.read": STAFF_ROLES,
    "users.manage": ADMIN_ONLY,
    "users.count": ADMIN_ONLY,
    "invites.manage": ADMIN_ONLY,
    # Files
    "files.read_all": STAFF_ROLES,
    "files.manage": ADMIN_ONLY,
    "files.comment": ADMIN_ONLY,
    "downloads.read_all": ADMIN_ONLY,
    # Content
    "faq.manage": ADMIN_ONLY,
    "announcements.manage": ADMIN_ONLY,
    "tags.manage": ADMIN_ONLY,
    "collections.manage": ADMIN_ONLY,
    "forum.manage": ADMIN_ONLY,
    "forum.moderate": STAFF_ROLES,
    "chat.moderate": STAFF_ROLES,
    # Operations
    "audit.read": ADMIN_ONLY,
    "webhooks.manage": ADMIN_ONLY,
    "analytics.read": STAFF_ROLES,
}


def has_permission(role: str, permission: str) -> bool:
    """Check whether a role holds a permission. Unknown permissions deny."""
    return role in PERMISSIONS.get(permission, frozenset())
