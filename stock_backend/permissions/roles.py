# permissions/roles.py

from __future__ import annotations

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS
# =========================================================
# Each role is a django.contrib.auth Group of the same name
# (created / synced by: python manage.py seed_roles).
ROLE_ADMIN = "admin"        # everything, incl. period transfers
ROLE_OPERATOR = "operator"  # day-to-day stock keeping
ROLE_VIEWER = "viewer"      # read-only

ROLES = (ROLE_ADMIN, ROLE_OPERATOR, ROLE_VIEWER)


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Capabilities are plain Django model permissions ("app.codename"), so
# user.has_perm() answers them (groups, direct grants, superusers).
CAP_CATALOG_VIEW = "products.view_product"
CAP_CATALOG_ADD = "products.add_product"
CAP_CATALOG_EDIT = "products.change_product"

CAP_STOCK_VIEW = "products.view_movement"
CAP_STOCK_RECORD = "products.add_movement"
CAP_STOCK_EDIT = "products.change_movement"
CAP_STOCK_DELETE = "products.delete_movement"

CAP_PERIOD_VIEW = "periods.view_stocktransfer"
CAP_PERIOD_TRANSFER = "periods.add_stocktransfer"

CAP_COUNT_VIEW = "periods.view_stockcount"
CAP_COUNT_OPEN = "periods.add_stockcount"
CAP_COUNT_RECORD = "periods.change_stockcount"

READ_CAPABILITIES = {
    CAP_CATALOG_VIEW,
    CAP_STOCK_VIEW,
    CAP_PERIOD_VIEW,
    CAP_COUNT_VIEW,
}

ALL_CAPABILITIES = READ_CAPABILITIES | {
    CAP_CATALOG_ADD,
    CAP_CATALOG_EDIT,
    CAP_STOCK_RECORD,
    CAP_STOCK_EDIT,
    CAP_STOCK_DELETE,
    CAP_PERIOD_TRANSFER,
    CAP_COUNT_OPEN,
    CAP_COUNT_RECORD,
}


# =========================================================
# ROLE → CAPABILITY MAP (DEFAULT)
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_OPERATOR: {
        *READ_CAPABILITIES,
        CAP_CATALOG_ADD,
        CAP_CATALOG_EDIT,
        CAP_STOCK_RECORD,
        CAP_STOCK_EDIT,
        CAP_STOCK_DELETE,
        CAP_COUNT_OPEN,
        CAP_COUNT_RECORD,
        # period transfers stay admin-only
    },
    ROLE_VIEWER: {
        *READ_CAPABILITIES,
    },
}


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_STOCK_RECORD
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_capability", None)
        if not required:
            # If not set, deny-by-default to avoid accidental open endpoints
            return False

        return user.has_perm(required)
