from typing import List

from r2bot.chain import ChainClient
from r2bot.exceptions import RetryExhaustedError
from r2bot.logger import logger
from r2bot.operations import Operation
from r2bot.results import OperationOutcome, ResultsTable, StepStatus
from r2bot.retry import execute_with_retry
from r2bot.utils import long_jitter


class OperationRunner:
    def __init__(self, results: ResultsTable, attempts: int = 3, loop_delay: List[int] = None):
        self.results = results
        self.attempts = attempts
        self.loop_delay = loop_delay or [5, 15]

    async def run(self, client: ChainClient, operation: Operation, amount: str, loops: int):
        """Repeat `operation` `loops` times; keep only the last iteration's outcome."""
        for i in range(loops):
            async def attempt():
                logger.step(f"Starting {operation.label} with {amount} (Loop {i+1}/{loops})")
                return await operation.body(client, amount)

            try:
                result = await execute_with_retry(attempt, operation.label, self.attempts)
                if result.status is StepStatus.SUCCESS:
                    self.results.record(client.address, operation.name, OperationOutcome(success=True))
                else:
                    logger.warning(f"{operation.label} skipped: {result.message}")
            except RetryExhaustedError as e:
                logger.error(f"Loop {i+1} failed: {e}")
                self.results.record(client.address, operation.name, OperationOutcome(success=False, error=str(e)))

            if i < loops - 1:
                await long_jitter(*self.loop_delay)
