"""Tests for administrator marker repair."""

import pytest

from sintillio.auth.repair import AdminRepairService
from sintillio.auth.repository import PrivilegeRepository

USERS = [
    ("u-1", "alice@blindvibe.com"),
    ("u-2", "bob@blindvibe.com"),
    ("u-3", "carol@blindvibe.com"),
]


class TestAdminRepairService:
    """Tests for AdminRepairService.verify."""

    @pytest.mark.asyncio
    async def test_repairs_missing_markers(self, privilege_repository):
        privilege_repository.list_users_by_email_domain.return_value = USERS
        privilege_repository.role_holders.return_value = {"u-1", "u-2"}
        privilege_repository.admin_flags.return_value = {"u-1": True, "u-2": False}

        report = await AdminRepairService(privilege_repository, "blindvibe.com").verify()

        privilege_repository.list_users_by_email_domain.assert_awaited_once_with("blindvibe.com")
        privilege_repository.grant_role.assert_awaited_once_with("u-3")
        assert privilege_repository.set_admin_flag.await_count == 2

        by_id = {u.user_id: u for u in report.users}
        assert by_id["u-1"].repaired is False
        assert by_id["u-2"].repaired is True
        assert by_id["u-3"].has_admin_role and by_id["u-3"].is_admin_flag
        assert report.fixed == 2
        assert report.message == "Verified 3 users, repaired 2"

    @pytest.mark.asyncio
    async def test_dry_run_changes_nothing(self, privilege_repository):
        privilege_repository.list_users_by_email_domain.return_value = USERS

        report = await AdminRepairService(privilege_repository, "blindvibe.com").verify(repair=False)

        privilege_repository.grant_role.assert_not_awaited()
        privilege_repository.set_admin_flag.assert_not_awaited()
        assert report.fixed == 0
        assert all(not u.has_admin_role for u in report.users)

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_rest(self, privilege_repository):
        privilege_repository.list_users_by_email_domain.return_value = USERS[:2]
        privilege_repository.grant_role.side_effect = [RuntimeError("deadlock"), None]

        report = await AdminRepairService(privilege_repository, "blindvibe.com").verify()

        assert report.failed == 1
        assert report.fixed == 1
        assert report.message == "Verified 2 users, repaired 1, 1 failed"

    @pytest.mark.asyncio
    async def test_no_users(self, privilege_repository):
        report = await AdminRepairService(privilege_repository, "blindvibe.com").verify()

        assert report.users == []
        assert report.message == "No users found for the trusted email domain"


class TestPrivilegeRepository:
    @pytest.mark.asyncio
    async def test_has_role_query(self, mock_database):
        mock_database.fetchval.return_value = True
        repository = PrivilegeRepository(mock_database)

        assert await repository.has_role("u-1") is True

        args = mock_database.fetchval.await_args.args
        assert "user_roles" in args[0]
        assert args[1:] == ("u-1", "admin")

    @pytest.mark.asyncio
    async def test_missing_profile_is_not_admin(self, mock_database):
        repository = PrivilegeRepository(mock_database)
        assert await repository.has_admin_flag("u-1") is False

    @pytest.mark.asyncio
    async def test_domain_listing_uses_users_table(self, mock_database):
        mock_database.fetch.return_value = [{"id": "u-1", "email": "alice@blindvibe.com"}]
        repository = PrivilegeRepository(mock_database, users_table="public.users")

        users = await repository.list_users_by_email_domain("blindvibe.com")

        assert users == [("u-1", "alice@blindvibe.com")]
        sql, pattern = mock_database.fetch.await_args.args
        assert "FROM public.users" in sql
        assert pattern == "%@blindvibe.com"

    def test_rejects_unsafe_table_name(self, mock_database):
        with pytest.raises(ValueError):
            PrivilegeRepository(mock_database, users_table="users; DROP TABLE x")

    @pytest.mark.asyncio
    async def test_batch_lookups_skip_empty_input(self, mock_database):
        repository = PrivilegeRepository(mock_database)

        assert await repository.role_holders([]) == set()
        assert await repository.admin_flags([]) == {}
        mock_database.fetch.assert_not_awaited()
