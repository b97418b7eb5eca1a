# permissions/roles.py

"""
TYPED CAPABILITY SET

Roles map to a closed set of capabilities. Views declare what they need;
services assume the caller is already authorized.

Usage:
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_SALES_VIEW
    # or, on viewsets, per action:
    action_capabilities = {"cancel": CAP_SALES_CANCEL}
"""

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission

# =========================================================
# ROLE CONSTANTS (mirror users.User.ROLE_*)
# =========================================================
ROLE_ADMIN = "admin"
ROLE_SHOP_ADMIN = "shop_admin"
ROLE_MANAGER = "manager"
ROLE_SALES_STAFF = "sales_staff"
ROLE_ACCOUNTANT = "accountant"
ROLE_VIEWER = "viewer"

# Roles that may act on any shop of the organization
ORG_WIDE_ROLES = {ROLE_ADMIN}


# =========================================================
# CAPABILITIES
# =========================================================
CAP_SALES_VIEW = "sales.view"
CAP_SALES_CREATE = "sales.create"
CAP_SALES_EDIT = "sales.edit"
CAP_SALES_CANCEL = "sales.cancel"
CAP_SALES_DELETE = "sales.delete"
CAP_SALES_RETURN = "sales.return"
CAP_SALES_DISCOUNT = "sales.discount"
CAP_SALES_APPROVE = "sales.approve"
CAP_PAYMENTS_RECORD = "payments.record"

CAP_INVENTORY_VIEW = "inventory.view"
CAP_INVENTORY_ADJUST = "inventory.adjust"

CAP_CUSTOMERS_VIEW = "customers.view"
CAP_CUSTOMERS_LOYALTY = "customers.loyalty"

CAP_PURCHASES_VIEW = "purchases.view"
CAP_PURCHASES_MANAGE = "purchases.manage"
CAP_PURCHASES_RECEIVE = "purchases.receive"

ALL_CAPABILITIES = frozenset(
    {
        CAP_SALES_VIEW,
        CAP_SALES_CREATE,
        CAP_SALES_EDIT,
        CAP_SALES_CANCEL,
        CAP_SALES_DELETE,
        CAP_SALES_RETURN,
        CAP_SALES_DISCOUNT,
        CAP_SALES_APPROVE,
        CAP_PAYMENTS_RECORD,
        CAP_INVENTORY_VIEW,
        CAP_INVENTORY_ADJUST,
        CAP_CUSTOMERS_VIEW,
        CAP_CUSTOMERS_LOYALTY,
        CAP_PURCHASES_VIEW,
        CAP_PURCHASES_MANAGE,
        CAP_PURCHASES_RECEIVE,
    }
)


# =========================================================
# ROLE → CAPABILITY MAP
# =========================================================
ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    ROLE_ADMIN: ALL_CAPABILITIES,
    ROLE_SHOP_ADMIN: ALL_CAPABILITIES,
    ROLE_MANAGER: frozenset(
        {
            CAP_SALES_VIEW,
            CAP_SALES_CREATE,
            CAP_SALES_EDIT,
            CAP_SALES_CANCEL,
            CAP_SALES_DELETE,
            CAP_SALES_RETURN,
            CAP_SALES_DISCOUNT,
            CAP_SALES_APPROVE,
            CAP_PAYMENTS_RECORD,
            CAP_INVENTORY_VIEW,
            CAP_INVENTORY_ADJUST,
            CAP_CUSTOMERS_VIEW,
            CAP_CUSTOMERS_LOYALTY,
            CAP_PURCHASES_VIEW,
            CAP_PURCHASES_RECEIVE,
        }
    ),
    ROLE_SALES_STAFF: frozenset(
        {
            CAP_SALES_VIEW,
            CAP_SALES_CREATE,
            CAP_SALES_EDIT,
            CAP_PAYMENTS_RECORD,
            CAP_INVENTORY_VIEW,
            CAP_CUSTOMERS_VIEW,
        }
    ),
    ROLE_ACCOUNTANT: frozenset(
        {
            CAP_SALES_VIEW,
            CAP_PAYMENTS_RECORD,
            CAP_CUSTOMERS_VIEW,
            CAP_PURCHASES_VIEW,
            CAP_PURCHASES_MANAGE,
        }
    ),
    ROLE_VIEWER: frozenset({CAP_SALES_VIEW, CAP_INVENTORY_VIEW, CAP_CUSTOMERS_VIEW}),
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def capabilities_for(user) -> frozenset[str]:
    if getattr(user, "is_superuser", False):
        return ALL_CAPABILITIES
    return ROLE_CAPABILITIES.get(get_user_role(user), frozenset())


def has_capability(user, capability: str) -> bool:
    return capability in capabilities_for(user)


def can_access_shop(user, shop_id) -> bool:
    if getattr(user, "is_superuser", False) or get_user_role(user) in ORG_WIDE_ROLES:
        return True
    return str(getattr(user, "shop_id", "") or "") == str(shop_id)


# =========================================================
# Capability Permission
# =========================================================
class HasCapability(BasePermission):
    """
    Require the capability declared on the view.

    Resolution order:
    - view.action_capabilities[view.action] (viewsets)
    - view.required_capability

    Deny-by-default when nothing is declared.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = None
        action = getattr(view, "action", None)
        per_action = getattr(view, "action_capabilities", None) or {}
        if action and action in per_action:
            required = per_action[action]
        if required is None:
            required = getattr(view, "required_capability", None)
        if not required:
            return False

        return has_capability(user, required)
