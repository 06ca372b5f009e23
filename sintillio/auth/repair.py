"""
Administrator marker repair.

Users on the trusted email domain are administrators by rule, but the
role row and profile flag used by other consumers can drift. This tool
lists those users, reports their markers and restores missing ones.
"""

import logging
from dataclasses import dataclass, field

from sintillio.auth.repository import PrivilegeRepository
from sintillio.auth.schemas import AdminVerification
from sintillio.config.settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class RepairReport:
    users: list[AdminVerification] = field(default_factory=list)
    fixed: int = 0
    failed: int = 0

    @property
    def message(self) -> str:
        if not self.users:
            return "No users found for the trusted email domain"
        return (
            f"Verified {len(self.users)} users, repaired {self.fixed}"
            + (f", {self.failed} failed" if self.failed else "")
        )


class AdminRepairService:
    """Verifies and restores administrator markers for trusted-domain users."""

    def __init__(self, repository: PrivilegeRepository, admin_email_domain: str | None = None) -> None:
        self._repository = repository
        self._domain = admin_email_domain or get_settings().admin_email_domain

    async def verify(self, repair: bool = True) -> RepairReport:
        """
        Inspect every trusted-domain user and, when ``repair`` is set,
        insert the missing role row and set the missing profile flag.

        A failure repairing one user is logged and the rest continue.
        """
        users = await self._repository.list_users_by_email_domain(self._domain)
        user_ids = [user_id for user_id, _ in users]

        role_holders = await self._repository.role_holders(user_ids)
        flags = await self._repository.admin_flags(user_ids)

        report = RepairReport()
        for user_id, email in users:
            record = AdminVerification(
                user_id=user_id,
                email=email,
                has_admin_role=user_id in role_holders,
                is_admin_flag=flags.get(user_id, False),
                domain_eligible=True,
            )

            needs_repair = not (record.has_admin_role and record.is_admin_flag)
            if repair and needs_repair:
                try:
                    if not record.has_admin_role:
                        await self._repository.grant_role(user_id)
                        record.has_admin_role = True
                    if not record.is_admin_flag:
                        await self._repository.set_admin_flag(user_id, email)
                        record.is_admin_flag = True
                    record.repaired = True
                    report.fixed += 1
                except Exception as e:
                    report.failed += 1
                    logger.error(f"Failed to repair admin markers for {email}: {e}")

            report.users.append(record)

        logger.info(report.message)
        return report
