# Overview: Utility functions for permission lookups and validation.

from .definitions import PERMISSION_DEFINITIONS


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permission_definition(code):
    """Get full definition for a permission code."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == code:
            return {
                "code": perm[0],
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def user_has_permission(user, code: str) -> bool:
    """
    Central authorization policy.

    Admins hold every permission. Employees hold exactly the codes stored on
    their account. Inactive users hold nothing.
    """
    if user is None or not user.is_active:
        return False
    if user.is_admin:
        return True
    return code in (user.permissions or [])


def effective_permissions(user) -> list[str]:
    if user is None or not user.is_active:
        return []
    if user.is_admin:
        return get_all_permission_codes()
    return [code for code in get_all_permission_codes() if code in (user.permissions or [])]
