from rest_framework.permissions import BasePermission

from core.exceptions import RoleRequired

from .gate import Capability, attach_verification_info, evaluate


class CapabilityPermission(BasePermission):
    """Runs the role gate for ``capability`` and raises its error on denial."""

    capability = None

    def has_permission(self, request, view):
        attach_verification_info(request)
        evaluate(request.user, self.capability).raise_for_denial()
        return True


class IsVerifiedLawyer(CapabilityPermission):
    # non-lawyers pass straight through
    capability = Capability.LAWYER_VERIFIED


class IsLawyer(CapabilityPermission):
    capability = Capability.LAWYER_ROLE


class IsCitizen(CapabilityPermission):
    capability = Capability.CITIZEN_ROLE


class HasLawyerRole(BasePermission):
    """Lawyer role only, verified or not. Use for a lawyer's own read-only listings."""

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        if request.user.role != "lawyer":
            raise RoleRequired()
        return True


class IsAdmin(BasePermission):
    def has_permission(self, request, view):
        return request.user.is_authenticated and (request.user.role == "admin" or request.user.is_superuser)
