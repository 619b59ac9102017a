from rest_framework.permissions import BasePermission


class IsDispatcher(BasePermission):
    """
    Allows access to members who may run the dispatch board
    (deputies, directors, admins).
    """
    message = "Only dispatchers can perform this action."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return getattr(user, "can_dispatch", False)


class IsDirector(BasePermission):
    """Allows access only to directors and admins."""
    message = "Only directors can perform this action."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return getattr(user, "is_director", False)
