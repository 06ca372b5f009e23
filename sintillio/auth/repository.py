"""Database repository for privilege markers (user_roles, profiles)."""

import logging
import re

from sintillio.storage.database import Database

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

# The identity provider owns these tables in production; the DDL lets a
# bare database (tests, local runs) carry the same shape.
_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS user_roles (
    id          UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id     UUID NOT NULL,
    role        TEXT NOT NULL,
    assigned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (user_id, role)
);

CREATE TABLE IF NOT EXISTS profiles (
    user_id    UUID PRIMARY KEY,
    email      TEXT,
    full_name  TEXT,
    is_admin   BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_HAS_ROLE_SQL = """
SELECT EXISTS (
    SELECT 1 FROM user_roles WHERE user_id = $1::uuid AND role = $2
)
"""

_PROFILE_FLAG_SQL = """
SELECT is_admin FROM profiles WHERE user_id = $1::uuid
"""

_ROLE_HOLDERS_SQL = """
SELECT user_id::text AS user_id FROM user_roles
WHERE role = $1 AND user_id = ANY($2::uuid[])
"""

_PROFILE_FLAGS_SQL = """
SELECT user_id::text AS user_id, is_admin FROM profiles
WHERE user_id = ANY($1::uuid[])
"""

_GRANT_ROLE_SQL = """
INSERT INTO user_roles (user_id, role, assigned_at)
VALUES ($1::uuid, $2, NOW())
ON CONFLICT (user_id, role) DO NOTHING
"""

_SET_PROFILE_FLAG_SQL = """
INSERT INTO profiles (user_id, email, is_admin)
VALUES ($1::uuid, $2, TRUE)
ON CONFLICT (user_id) DO UPDATE SET is_admin = TRUE, updated_at = NOW()
"""

_QUALIFIED_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


class PrivilegeRepository:
    """Reads and repairs the administrator markers of users."""

    def __init__(self, database: Database, users_table: str = "auth.users") -> None:
        if not _QUALIFIED_NAME.match(users_table):
            raise ValueError(f"Invalid users table name: {users_table!r}")
        self._db = database
        self._users_table = users_table

    async def create_tables(self) -> None:
        """Create user_roles and profiles (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Privilege tables ensured")

    async def has_role(self, user_id: str, role: str = ADMIN_ROLE) -> bool:
        return bool(await self._db.fetchval(_HAS_ROLE_SQL, user_id, role))

    async def has_admin_flag(self, user_id: str) -> bool:
        """Profile flag; a missing profile row counts as False."""
        return bool(await self._db.fetchval(_PROFILE_FLAG_SQL, user_id))

    async def list_users_by_email_domain(self, domain: str) -> list[tuple[str, str]]:
        """Return ``(user_id, email)`` for identity users whose email ends with ``@domain``."""
        rows = await self._db.fetch(
            f"SELECT id::text AS id, email FROM {self._users_table} "
            "WHERE email ILIKE $1 ORDER BY email",
            f"%@{domain}",
        )
        return [(row["id"], row["email"]) for row in rows]

    async def role_holders(self, user_ids: list[str], role: str = ADMIN_ROLE) -> set[str]:
        if not user_ids:
            return set()
        rows = await self._db.fetch(_ROLE_HOLDERS_SQL, role, user_ids)
        return {row["user_id"] for row in rows}

    async def admin_flags(self, user_ids: list[str]) -> dict[str, bool]:
        if not user_ids:
            return {}
        rows = await self._db.fetch(_PROFILE_FLAGS_SQL, user_ids)
        return {row["user_id"]: bool(row["is_admin"]) for row in rows}

    async def grant_role(self, user_id: str, role: str = ADMIN_ROLE) -> None:
        await self._db.execute(_GRANT_ROLE_SQL, user_id, role)
        logger.info("Granted role %s to user %s", role, user_id)

    async def set_admin_flag(self, user_id: str, email: str | None = None) -> None:
        await self._db.execute(_SET_PROFILE_FLAG_SQL, user_id, email)
        logger.info("Set profile admin flag for user %s", user_id)
