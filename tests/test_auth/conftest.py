"""Fixtures for authorization tests."""

from unittest.mock import AsyncMock

import pytest

from sintillio.auth.repository import PrivilegeRepository


@pytest.fixture
def privilege_repository():
    """PrivilegeRepository double where nobody holds a marker."""
    repository = AsyncMock(spec=PrivilegeRepository)
    repository.has_role.return_value = False
    repository.has_admin_flag.return_value = False
    repository.list_users_by_email_domain.return_value = []
    repository.role_holders.return_value = set()
    repository.admin_flags.return_value = {}
    return repository
