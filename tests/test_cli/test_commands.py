"""Tests for the sintillio CLI."""

from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from sintillio.auth.repair import RepairReport
from sintillio.auth.schemas import AdminVerification
from sintillio.cli import main
from sintillio.embedding.generator import EmbedOutcome


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def mock_db():
    db = AsyncMock()
    db.fetch.return_value = []
    return db


class TestHelp:
    def test_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        for command in ("serve", "init-db", "health", "embed", "reconcile", "verify-admins"):
            assert command in result.output


class TestInitDb:
    def test_creates_schema(self, runner: CliRunner, mock_db) -> None:
        with patch("sintillio.storage.database.Database", return_value=mock_db):
            result = runner.invoke(main, ["init-db"])

        assert result.exit_code == 0, result.output
        assert "Database initialized successfully" in result.output
        statements = " ".join(call.args[0] for call in mock_db.execute.await_args_list)
        assert "search_queries" in statements
        assert "search_results" in statements
        assert statements.index("search_queries") < statements.index("search_results")
        mock_db.close.assert_awaited_once()


class TestReconcile:
    def test_prints_reconciled_ids(self, runner: CliRunner, mock_db) -> None:
        mock_db.fetch.return_value = [{"id": "q-stale"}]

        with patch("sintillio.storage.database.Database", return_value=mock_db):
            result = runner.invoke(main, ["reconcile", "--older-than-minutes", "5"])

        assert result.exit_code == 0, result.output
        assert "Reconciled 1 stale ledger entries" in result.output
        assert "q-stale" in result.output

    def test_closes_db_on_error(self, runner: CliRunner, mock_db) -> None:
        mock_db.fetch.side_effect = RuntimeError("connection lost")

        with patch("sintillio.storage.database.Database", return_value=mock_db):
            result = runner.invoke(main, ["reconcile"])

        mock_db.close.assert_awaited_once()
        assert result.exit_code != 0


class TestEmbed:
    def test_runs_generator(self, runner: CliRunner, mock_db, query_id) -> None:
        service = AsyncMock()
        generator = AsyncMock()
        generator.embed.return_value = EmbedOutcome(processed=4, total=5)

        with patch("sintillio.storage.database.Database", return_value=mock_db), \
                patch("sintillio.embedding.service.get_embedding_service", return_value=service), \
                patch("sintillio.embedding.generator.EmbeddingGenerator", return_value=generator):
            result = runner.invoke(main, ["embed", query_id])

        assert result.exit_code == 0, result.output
        assert "Processed 4 of 5 results" in result.output
        generator.embed.assert_awaited_once_with(query_id)
        service.close.assert_awaited_once()


class TestVerifyAdmins:
    def test_dry_run(self, runner: CliRunner, mock_db) -> None:
        service = AsyncMock()
        service.verify.return_value = RepairReport(
            users=[
                AdminVerification(
                    user_id="u-1", email="alice@blindvibe.com", has_admin_role=False,
                    is_admin_flag=True, domain_eligible=True,
                )
            ]
        )

        with patch("sintillio.storage.database.Database", return_value=mock_db), \
                patch("sintillio.auth.repair.AdminRepairService", return_value=service):
            result = runner.invoke(main, ["verify-admins", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "alice@blindvibe.com: role ✗ flag ✓" in result.output
        assert "Verified 1 users, repaired 0" in result.output
        service.verify.assert_awaited_once_with(repair=False)

    def test_failures_exit_nonzero(self, runner: CliRunner, mock_db) -> None:
        service = AsyncMock()
        service.verify.return_value = RepairReport(
            users=[
                AdminVerification(
                    user_id="u-1", email="bob@blindvibe.com", has_admin_role=False,
                    is_admin_flag=False, domain_eligible=True,
                )
            ],
            failed=1,
        )

        with patch("sintillio.storage.database.Database", return_value=mock_db), \
                patch("sintillio.auth.repair.AdminRepairService", return_value=service):
            result = runner.invoke(main, ["verify-admins"])

        assert result.exit_code == 1


class TestHealth:
    def _redis(self, ok: bool) -> AsyncMock:
        client = AsyncMock()
        if ok:
            client.ping.return_value = True
        else:
            client.ping.side_effect = ConnectionError("refused")
        return client

    def test_healthy_database(self, runner: CliRunner, mock_db) -> None:
        mock_db.__aenter__.return_value = mock_db
        mock_db.health_check.return_value = True

        with patch("sintillio.storage.database.Database", return_value=mock_db), \
                patch("redis.asyncio.from_url", return_value=self._redis(False)):
            result = runner.invoke(main, ["health"])

        assert result.exit_code == 0, result.output
        assert "✓ postgres" in result.output
        assert "✗ redis" in result.output

    def test_database_down_exits_1(self, runner: CliRunner, mock_db) -> None:
        mock_db.__aenter__.side_effect = OSError("connection refused")

        with patch("sintillio.storage.database.Database", return_value=mock_db), \
                patch("redis.asyncio.from_url", return_value=self._redis(True)):
            result = runner.invoke(main, ["health"])

        assert result.exit_code == 1
        assert "Database unavailable" in result.output
