from rest_framework.permissions import SAFE_METHODS
from rest_framework.throttling import ScopedRateThrottle


class WriteScopedRateThrottle(ScopedRateThrottle):
    """
    Scoped throttle that only counts writes.

    Views opt in with ``write_throttle_scope``; reads on the same view are
    never limited by it.
    """

    scope_attr = "write_throttle_scope"

    def allow_request(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return super().allow_request(request, view)
