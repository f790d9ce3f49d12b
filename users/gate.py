"""
Identity & role gate.

``evaluate`` decides whether a principal may use a capability. Rules are
checked in a fixed order and the first failure wins:

1. no authenticated principal             -> UNAUTHENTICATED
2. capability needs a role the user lacks -> ROLE_REQUIRED
3. unverified lawyer on a verified route  -> LAWYER_NOT_VERIFIED
4. deactivated account                    -> ACCOUNT_DEACTIVATED

Only lawyers are ever subject to rule 3.
"""

from dataclasses import dataclass, field
from enum import Enum

from core.exceptions import AccountDeactivated, LawyerNotVerified, RoleRequired, Unauthenticated

from .models import User


class Capability(Enum):
    LAWYER_VERIFIED = "lawyer-verified"
    LAWYER_ROLE = "lawyer-role"
    CITIZEN_ROLE = "citizen-role"


REQUIRED_ROLE = {
    Capability.LAWYER_VERIFIED: None,
    Capability.LAWYER_ROLE: User.ROLE_LAWYER,
    Capability.CITIZEN_ROLE: User.ROLE_CITIZEN,
}

REQUIRES_VERIFICATION = {Capability.LAWYER_VERIFIED, Capability.LAWYER_ROLE}

ERRORS = {
    Unauthenticated.default_code: Unauthenticated,
    RoleRequired.default_code: RoleRequired,
    LawyerNotVerified.default_code: LawyerNotVerified,
    AccountDeactivated.default_code: AccountDeactivated,
}


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: str = None
    data: dict = field(default_factory=dict)

    def raise_for_denial(self):
        if not self.allowed:
            raise ERRORS[self.reason](data=self.data)


ALLOW = GateDecision(allowed=True)


def _is_authenticated(principal):
    return principal is not None and getattr(principal, "is_authenticated", False)


def evaluate(principal, capability: Capability) -> GateDecision:
    if not _is_authenticated(principal):
        return GateDecision(False, Unauthenticated.default_code)

    role = REQUIRED_ROLE[capability]
    if role is not None and principal.role != role:
        return GateDecision(False, RoleRequired.default_code, {"role": role})

    if (
        principal.role == User.ROLE_LAWYER
        and capability in REQUIRES_VERIFICATION
        and not principal.is_verified
    ):
        return GateDecision(
            False,
            LawyerNotVerified.default_code,
            {
                "verificationStatus": principal.verification_status,
                "isVerified": False,
                "role": User.ROLE_LAWYER,
            },
        )

    if not principal.is_active:
        return GateDecision(False, AccountDeactivated.default_code)

    return ALLOW


def verification_info(principal):
    return {
        "isVerified": bool(principal.is_verified),
        "verificationStatus": principal.verification_status,
        "canAccessFeatures": bool(principal.is_verified and principal.is_active),
    }


def attach_verification_info(request):
    """Advisory only: exposes the lawyer's verification state to downstream code."""
    user = getattr(request, "user", None)
    if _is_authenticated(user) and user.role == User.ROLE_LAWYER:
        request.verification_info = verification_info(user)
