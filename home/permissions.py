"""
Role checks for the rental API.

Admins operate the fleet, review drivers and issue contracts. Drivers only
touch their own profile, documents, contracts and payments.
"""

from rest_framework import permissions


class IsAuthenticatedUser(permissions.BasePermission):
    """
    Permission check for any logged-in user.
    """
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)


class IsAdminUser(permissions.BasePermission):
    """
    Permission check for admin role.
    """
    def has_permission(self, request, view):
        return (
            request.user and
            request.user.is_authenticated and
            request.user.is_admin_user()
        )


class IsDriver(permissions.BasePermission):
    """
    Permission check for driver role.
    """
    def has_permission(self, request, view):
        return (
            request.user and
            request.user.is_authenticated and
            request.user.is_driver()
        )


class IsAdminOrReadOnlyDriver(permissions.BasePermission):
    """
    Admins may do anything; drivers may only read.
    """
    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        if user.is_admin_user():
            return True
        return user.is_driver() and request.method in permissions.SAFE_METHODS
