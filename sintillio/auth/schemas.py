"""Data models for caller identity and administrator checks."""

from dataclasses import dataclass, field
from enum import Enum


class AdminRule(str, Enum):
    """Signals that can grant administrator privilege, in evaluation order."""

    EMAIL_DOMAIN = "email_domain"
    ROLE_ASSIGNMENT = "role_assignment"
    PROFILE_FLAG = "profile_flag"


@dataclass(frozen=True)
class Caller:
    """Identity resolved from a bearer token."""

    id: str
    email: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Caller id must be non-empty")


@dataclass
class AdminDecision:
    """
    Outcome of an administrator check.

    ``granted_by`` names the first rule that held; ``evaluated`` lists the
    rules that were consulted, in order, so the reasoning is auditable.
    """

    granted: bool
    granted_by: AdminRule | None = None
    evaluated: list[AdminRule] = field(default_factory=list)


@dataclass
class AdminVerification:
    """Per-user result of the admin repair tool."""

    user_id: str
    email: str
    has_admin_role: bool
    is_admin_flag: bool
    domain_eligible: bool
    repaired: bool = False

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "has_admin_role": self.has_admin_role,
            "is_admin_flag": self.is_admin_flag,
            "domain_eligible": self.domain_eligible,
            "repaired": self.repaired,
        }
