from rest_framework.permissions import BasePermission, SAFE_METHODS

class ActiveAccount(BasePermission):
    """Deny all requests from INACTIVE or DELETED accounts."""
    message = "Account is not active."

    def has_permission(self, request, view):
        u = request.user
        if not u or not u.is_authenticated:
            return True
        return getattr(u, "is_account_active", True)

class IsAdminRole(BasePermission):
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_admin_role)

class IsAdminRoleOrReadOnly(BasePermission):
    """Write access only to ADMIN role users; read allowed for any authenticated user."""
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_authenticated and request.user.is_admin_role)

class IsActivityOwner(BasePermission):
    message = "You can only modify your own activities"

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return True
        return obj.user_id == getattr(request.user, "pk", None)
