"""
Administrator authorization gate.

Privilege is an OR over redundant signals, evaluated in order and
short-circuiting on the first that holds:

    1. email_domain     caller email ends with @<ADMIN_EMAIL_DOMAIN> (no store lookup)
    2. role_assignment  user_roles has (caller, 'admin')
    3. profile_flag     profiles.is_admin is true (only when the endpoint opts in)

A store failure while evaluating 2 or 3 is AuthorizationCheckFailed,
never a denial.
"""

import logging
from collections.abc import Awaitable, Callable

from sintillio.auth.repository import PrivilegeRepository
from sintillio.auth.schemas import AdminDecision, AdminRule, Caller
from sintillio.config.settings import get_settings
from sintillio.errors import AuthorizationCheckFailed, Forbidden
from sintillio.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

Predicate = Callable[[Caller], Awaitable[bool]]

_RULE_LABELS = {
    AdminRule.EMAIL_DOMAIN: "email domain",
    AdminRule.ROLE_ASSIGNMENT: "role assignment",
    AdminRule.PROFILE_FLAG: "profile flag",
}


def _denial_details(evaluated: list[AdminRule]) -> str:
    labels = [_RULE_LABELS[rule] for rule in evaluated]
    if len(labels) == 1:
        joined = labels[0]
    elif len(labels) == 2:
        joined = f"{labels[0]} or {labels[1]}"
    else:
        joined = ", ".join(labels[:-1]) + f", or {labels[-1]}"
    return f"User is not an admin by {joined}"


def is_trusted_email(email: str | None, domain: str) -> bool:
    if not email or not domain:
        return False
    return email.strip().lower().endswith(f"@{domain.lower()}")


class AuthorizationGate:
    """
    Decides whether a caller holds administrator privilege.

    Usage:
        gate = AuthorizationGate(PrivilegeRepository(db))
        decision = await gate.require_admin(caller, check_profile_flag=True)
        decision.granted_by  # AdminRule.ROLE_ASSIGNMENT
    """

    def __init__(
        self,
        repository: PrivilegeRepository,
        admin_email_domain: str | None = None,
    ) -> None:
        self._repository = repository
        self._domain = admin_email_domain or get_settings().admin_email_domain

    def _predicates(self, check_profile_flag: bool) -> list[tuple[AdminRule, Predicate]]:
        async def by_domain(caller: Caller) -> bool:
            return is_trusted_email(caller.email, self._domain)

        async def by_role(caller: Caller) -> bool:
            return await self._repository.has_role(caller.id)

        async def by_flag(caller: Caller) -> bool:
            return await self._repository.has_admin_flag(caller.id)

        predicates: list[tuple[AdminRule, Predicate]] = [
            (AdminRule.EMAIL_DOMAIN, by_domain),
            (AdminRule.ROLE_ASSIGNMENT, by_role),
        ]
        if check_profile_flag:
            predicates.append((AdminRule.PROFILE_FLAG, by_flag))
        return predicates

    async def authorize(self, caller: Caller, check_profile_flag: bool = False) -> AdminDecision:
        """
        Evaluate the rules without raising on denial.

        Raises:
            AuthorizationCheckFailed: privilege store unreachable
        """
        decision = AdminDecision(granted=False)

        for rule, predicate in self._predicates(check_profile_flag):
            decision.evaluated.append(rule)
            try:
                holds = await predicate(caller)
            except Exception as e:
                logger.error(f"Privilege lookup {rule.value} failed for {caller.id}: {e}")
                raise AuthorizationCheckFailed("Role verification failed", str(e)) from e

            if holds:
                decision.granted = True
                decision.granted_by = rule
                break

        get_metrics().record_authorization(
            decision.granted,
            decision.granted_by.value if decision.granted_by else None,
        )
        logger.info(
            f"Admin check for {caller.id}: granted={decision.granted} "
            f"rule={decision.granted_by.value if decision.granted_by else None} "
            f"evaluated={[r.value for r in decision.evaluated]}"
        )
        return decision

    async def require_admin(self, caller: Caller, check_profile_flag: bool = False) -> AdminDecision:
        """
        Like authorize(), but raise Forbidden when no rule holds.

        Raises:
            Forbidden: no rule granted privilege
            AuthorizationCheckFailed: privilege store unreachable
        """
        decision = await self.authorize(caller, check_profile_flag)
        if not decision.granted:
            raise Forbidden("Admin privileges required", _denial_details(decision.evaluated))
        return decision
