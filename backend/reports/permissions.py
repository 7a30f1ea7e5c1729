import logging

from django.conf import settings
from rest_framework import permissions

logger = logging.getLogger(__name__)


def caller_role(user):
    """Role claim carried by the caller's token (``None`` when absent)."""
    claim = getattr(settings, "REPORTS_ROLE_CLAIM", "role")
    return getattr(user, claim, None)


def is_manager(user) -> bool:
    return caller_role(user) in getattr(settings, "REPORTS_MANAGER_ROLES", ["Admin", "Manager"])


class IsManagerOrHigher(permissions.BasePermission):
    message = "Financial reports require a manager or admin role."

    def has_permission(self, request, view):
        if is_manager(request.user):
            return True
        logger.info(f"Denied {getattr(view, 'action', None) or 'request'} for role {caller_role(request.user)!r}")
        return False
