"""
Custom permission classes for the EcoSwap API.
"""

from rest_framework import permissions


class IsItemOwner(permissions.BasePermission):
    """
    Object-level permission allowing only the owner to edit an item.

    Safe methods are open to every authenticated user.

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsItemOwner]
    """

    message = 'You can only edit your own items.'

    def has_object_permission(self, request, view, obj):
        """
        Check ownership for unsafe methods.

        Args:
            request: HTTP request object
            view: View being accessed
            obj: Item instance

        Returns:
            bool: True if the method is safe or the user owns the item
        """
        if request.method in permissions.SAFE_METHODS:
            return True
        return obj.owner_id == request.user.id

