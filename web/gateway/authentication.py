"""Caller identity supplied by the upstream auth proxy.

Credentials are verified before requests reach this service. The proxy
forwards the authenticated user's id in ``X-User-Id`` and their role in
``X-User-Role``; this module turns those headers into the DRF ``request.user``.
Requests without ``X-User-Id`` are anonymous.
"""

from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import BasePermission

from .middleware import CALLER_ID_CTX

ADMIN_ROLE = "admin"


class CallerIdentity:
    """Authenticated caller as seen by the views."""

    is_authenticated = True
    is_anonymous = False

    def __init__(self, user_id: str, role: str = "customer"):
        self.user_id = user_id
        self.role = role

    @property
    def pk(self):
        # used by DRF throttles to key rates per caller
        return self.user_id

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def __repr__(self):
        return f"CallerIdentity({self.user_id!r}, role={self.role!r})"


class TrustedHeaderAuthentication(BaseAuthentication):
    USER_HEADER = "HTTP_X_USER_ID"
    ROLE_HEADER = "HTTP_X_USER_ROLE"

    def authenticate(self, request):
        user_id = (request.META.get(self.USER_HEADER) or "").strip()
        if not user_id:
            return None
        role = (request.META.get(self.ROLE_HEADER) or "customer").strip().lower()
        CALLER_ID_CTX.set(user_id)
        return CallerIdentity(user_id, role), None

    def authenticate_header(self, request):
        # makes DRF answer 401 rather than 403 for anonymous callers
        return 'Gateway realm="api"'


class IsAdminCaller(BasePermission):
    message = "Administrator role required"

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_admin", False))
