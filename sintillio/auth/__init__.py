"""Identity resolution and administrator authorization."""

from sintillio.auth.gate import AuthorizationGate
from sintillio.auth.identity import IdentityClient, extract_bearer_token
from sintillio.auth.repair import AdminRepairService, RepairReport
from sintillio.auth.repository import PrivilegeRepository
from sintillio.auth.schemas import AdminDecision, AdminRule, AdminVerification, Caller

__all__ = [
    "AdminDecision",
    "AdminRepairService",
    "AdminRule",
    "AdminVerification",
    "AuthorizationGate",
    "Caller",
    "IdentityClient",
    "PrivilegeRepository",
    "RepairReport",
    "extract_bearer_token",
]
