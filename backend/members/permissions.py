from rest_framework import permissions

from .roles import ADMIN_ROLES, Actor


class _ResolvedRolePermission(permissions.BasePermission):
    allowed_roles: frozenset = frozenset()

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        actor = Actor.from_request(request)
        return actor.role in self.allowed_roles


class IsAdmin(_ResolvedRolePermission):
    message = "Réservé aux administrateurs."
    allowed_roles = ADMIN_ROLES
