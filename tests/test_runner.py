import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from r2bot.operations import Operation
from r2bot.results import OperationOutcome, ResultsTable, StepResult
from r2bot.runner import OperationRunner

ADDRESS = "0x" + "ab" * 20


@pytest.fixture
def client():
    client = MagicMock()
    client.address = ADDRESS
    return client


def make_operation(body):
    return Operation("buy", "buyUsdcToR2usd", "buy", "buy USDC to R2USD", body)


class TestOperationRunner:
    @pytest.mark.asyncio
    async def test_outcome_reflects_last_iteration_only(self, client):
        body = AsyncMock(side_effect=[
            StepResult.success(),
            RuntimeError("reverted"),
            RuntimeError("reverted"),
            RuntimeError("reverted"),
            StepResult.success(),
        ])
        results = ResultsTable(["buy"])
        runner = OperationRunner(results, attempts=3)

        with patch("asyncio.sleep", new_callable=AsyncMock), \
             patch("r2bot.runner.long_jitter", new_callable=AsyncMock) as mock_jitter:
            await runner.run(client, make_operation(body), "1", loops=3)

        assert body.await_count == 5
        assert results.get(ADDRESS, "buy") == OperationOutcome(success=True)
        assert mock_jitter.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_last_iteration_records_error(self, client):
        body = AsyncMock(side_effect=[StepResult.success(), RuntimeError("nonce too low"), RuntimeError("nonce too low")])
        results = ResultsTable(["buy"])
        runner = OperationRunner(results, attempts=2)

        with patch("asyncio.sleep", new_callable=AsyncMock), \
             patch("r2bot.runner.long_jitter", new_callable=AsyncMock):
            await runner.run(client, make_operation(body), "1", loops=2)

        outcome = results.get(ADDRESS, "buy")
        assert outcome.success is False
        assert "All 2 attempts failed for buy USDC to R2USD" in outcome.error
        assert "nonce too low" in outcome.error

    @pytest.mark.asyncio
    async def test_failure_does_not_abort_remaining_loops(self, client):
        body = AsyncMock(side_effect=RuntimeError("rpc down"))
        results = ResultsTable(["buy"])
        runner = OperationRunner(results, attempts=1)

        with patch("asyncio.sleep", new_callable=AsyncMock), \
             patch("r2bot.runner.long_jitter", new_callable=AsyncMock) as mock_jitter:
            await runner.run(client, make_operation(body), "1", loops=4)

        assert body.await_count == 4
        assert mock_jitter.await_count == 3
        assert results.get(ADDRESS, "buy").success is False

    @pytest.mark.asyncio
    async def test_skip_records_nothing(self, client):
        body = AsyncMock(return_value=StepResult.skipped("Insufficient USDC balance"))
        results = ResultsTable(["buy"])
        runner = OperationRunner(results, attempts=3)

        with patch("asyncio.sleep", new_callable=AsyncMock), \
             patch("r2bot.runner.long_jitter", new_callable=AsyncMock):
            await runner.run(client, make_operation(body), "1", loops=2)

        assert body.await_count == 2
        assert results.get(ADDRESS, "buy") is None

    @pytest.mark.asyncio
    async def test_no_delay_after_single_loop(self, client):
        body = AsyncMock(return_value=StepResult.success())
        runner = OperationRunner(ResultsTable(["buy"]), attempts=3, loop_delay=[1, 2])

        with patch("asyncio.sleep", new_callable=AsyncMock), \
             patch("r2bot.runner.long_jitter", new_callable=AsyncMock) as mock_jitter:
            await runner.run(client, make_operation(body), "1", loops=1)

        mock_jitter.assert_not_awaited()
        body.assert_awaited_once_with(client, "1")
