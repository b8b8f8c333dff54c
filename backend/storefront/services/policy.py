"""
Role based authorization.

Routes declare the action they perform and ``policy(role, action)`` decides.
There is no implicit ordering of middleware: an action missing from a role's
set is denied.
"""
from typing import Dict, FrozenSet

USER_ACTIONS = frozenset(
    {
        "profile:read",
        "profile:manage",
        "cart:manage",
        "wishlist:manage",
        "review:write",
        "order:create",
        "order:read",
    }
)

ADMIN_ACTIONS = USER_ACTIONS | frozenset(
    {
        "order:read-all",
        "order:update",
        "order:mark-paid",
        "order:mark-delivered",
        "order:delete",
        "coupon:manage",
        "product:manage",
        "review:moderate",
        "user:manage",
    }
)

POLICIES: Dict[str, FrozenSet[str]] = {
    "user": USER_ACTIONS,
    "admin": ADMIN_ACTIONS,
}


def policy(role: str, action: str) -> bool:
    return action in POLICIES.get(role, frozenset())
