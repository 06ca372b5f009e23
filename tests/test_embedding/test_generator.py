"""Tests for the embedding generator."""

from unittest.mock import AsyncMock

import pytest

from sintillio.embedding.generator import EmbeddingGenerator, EmbedOutcome
from sintillio.embedding.service import EmbeddingService
from sintillio.ledger.repository import LedgerRepository
from sintillio.ledger.schemas import LedgerPatch, QueryStatus
from sintillio.results.repository import ResultRepository


@pytest.fixture
def results():
    repository = AsyncMock(spec=ResultRepository)
    repository.get_unembedded.return_value = []
    repository.publish_embedding.return_value = True
    return repository


@pytest.fixture
def ledger():
    return AsyncMock(spec=LedgerRepository)


@pytest.fixture
def service():
    service = AsyncMock(spec=EmbeddingService)
    service.embed.return_value = [0.1] * 384
    return service


class TestEmbeddingGenerator:
    """Tests for EmbeddingGenerator.embed."""

    @pytest.mark.asyncio
    async def test_blank_rows_skipped(self, results, ledger, service, make_result, query_id):
        rows = [make_result(i, title=f"Headline {i}") for i in range(8)]
        rows += [make_result(8, title="", content=""), make_result(9, title=" ", content="")]
        results.get_unembedded.return_value = rows

        outcome = await EmbeddingGenerator(results, ledger, service).embed(query_id)

        assert (outcome.processed, outcome.total) == (8, 10)
        assert outcome.message == "Generated embeddings for 8 out of 10 results"
        assert service.embed.await_count == 8
        assert results.publish_embedding.await_count == 8
        ledger.close.assert_awaited_once_with(
            query_id, QueryStatus.EMBEDDED, LedgerPatch(processed=8, total=10)
        )

    @pytest.mark.asyncio
    async def test_rerun_is_noop(self, results, ledger, service, query_id):
        outcome = await EmbeddingGenerator(results, ledger, service).embed(query_id)

        assert outcome == EmbedOutcome(processed=0, total=0)
        service.embed.assert_not_awaited()
        ledger.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_embedding_failure_skips_row(self, results, ledger, service, make_result, query_id):
        results.get_unembedded.return_value = [make_result(1), make_result(2), make_result(3)]
        service.embed.side_effect = [[0.1] * 384, RuntimeError("CUDA out of memory"), [0.2] * 384]

        outcome = await EmbeddingGenerator(results, ledger, service).embed(query_id)

        assert (outcome.processed, outcome.total) == (2, 3)
        published_ids = [call.args[0] for call in results.publish_embedding.await_args_list]
        assert make_result(2).id not in published_ids

    @pytest.mark.asyncio
    async def test_lost_race_not_counted(self, results, ledger, service, make_result, query_id):
        results.get_unembedded.return_value = [make_result(1), make_result(2)]
        results.publish_embedding.side_effect = [True, False]

        outcome = await EmbeddingGenerator(results, ledger, service).embed(query_id)

        assert outcome.processed == 1

    @pytest.mark.asyncio
    async def test_embeds_composed_text(self, results, ledger, service, make_result, query_id):
        results.get_unembedded.return_value = [
            make_result(1, title="Fed", description="Rates", content="Held steady")
        ]

        await EmbeddingGenerator(results, ledger, service).embed(query_id)

        service.embed.assert_awaited_once_with("Fed Rates Held steady")

    @pytest.mark.asyncio
    async def test_ledger_failure_does_not_fail_run(self, results, ledger, service, make_result, query_id):
        results.get_unembedded.return_value = [make_result(1)]
        ledger.close.side_effect = ConnectionError("db gone")

        outcome = await EmbeddingGenerator(results, ledger, service).embed(query_id)

        assert outcome.processed == 1
