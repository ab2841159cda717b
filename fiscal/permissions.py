# fiscal/permissions.py
from rest_framework.permissions import SAFE_METHODS, BasePermission


class IsStaffForRangeChanges(BasePermission):
    """
    Any authenticated user may read range status; only staff may change the
    authorized bounds. Allocation/release are not routed through here.
    """
    message = {"code": "AUTH_1006", "message": "Only administrators can change fiscal ranges."}

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            # IsAuthenticated answers 401/403
            return False

        if request.method in SAFE_METHODS:
            return True

        return bool(user.is_staff)
