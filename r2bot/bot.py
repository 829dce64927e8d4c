from typing import Any, Dict, List, Optional, Tuple

from eth_account import Account
from eth_account.signers.local import LocalAccount

from r2bot.chain import ChainClient
from r2bot.config import parse_amount
from r2bot.logger import logger
from r2bot.operations import OPERATION_NAMES, OPERATIONS, Operation
from r2bot.proxy import ProxyRotator
from r2bot.results import ResultsTable
from r2bot.runner import OperationRunner
from r2bot.utils import long_jitter


class R2Bot:
    def __init__(
        self,
        settings: Dict[str, Any],
        loops: Dict[str, int],
        amounts: Dict[str, str],
        proxy_rotator: Optional[ProxyRotator] = None,
        results: Optional[ResultsTable] = None,
        operations: Optional[List[Operation]] = None,
    ):
        self.settings = settings
        self.loops = loops
        self.amounts = amounts
        self.operations = operations if operations is not None else OPERATIONS
        self.proxy_rotator = proxy_rotator or ProxyRotator(settings['FILES']['PROXIES'])
        self.results = results or ResultsTable(OPERATION_NAMES)

        network = settings['NETWORK']
        self.network_name = network['NAME']
        self.rpc_url = network['RPC_URL']

        bot_settings = settings['SETTINGS']
        self.attempts = bot_settings.get('ATTEMPTS', 3)
        self.rpc_timeout = bot_settings.get('RPC_TIMEOUT', 60)
        self.pause_between_loops = bot_settings.get('PAUSE_BETWEEN_LOOPS', [5, 15])
        self.pause_between_accounts = bot_settings.get('PAUSE_BETWEEN_ACCOUNTS', [30, 60])

        self.runner = OperationRunner(self.results, self.attempts, self.pause_between_loops)

    def enabled_operations(self) -> List[Tuple[Operation, str]]:
        """Operations whose configured amount is a positive number, in run order."""
        enabled = []
        for operation in self.operations:
            raw_amount = self.amounts.get(operation.amount_key)
            if parse_amount(raw_amount) is None:
                logger.debug(f"{operation.label} disabled (amount: {raw_amount})")
                continue
            enabled.append((operation, raw_amount.strip()))
        return enabled

    async def initialize_wallet(self, account: LocalAccount) -> ChainClient:
        logger.step(f"Connecting to {self.network_name} network...")
        web3 = await self.proxy_rotator.connect(self.rpc_url, self.rpc_timeout)
        logger.wallet(f"Wallet initialized: {account.address}")
        return ChainClient(web3, account, self.settings)

    async def process_wallet(self, private_key: str, idx: int, total: int):
        account = Account.from_key(private_key)
        logger.account(idx, total, account.address)

        client = await self.initialize_wallet(account)
        for operation, amount in self.enabled_operations():
            loops = self.loops.get(operation.loop_key, 1)
            logger.action(operation.name.upper(), f"{operation.label}: {amount} x {loops}")
            await self.runner.run(client, operation, amount, loops)

    async def run_daily(self, private_keys: List[str]):
        """One daily cycle over every wallet."""
        try:
            self.proxy_rotator.load()
            total = len(private_keys)
            logger.info(f"Found {total} private keys to process")

            for idx, private_key in enumerate(private_keys, 1):
                try:
                    logger.separator()
                    logger.info(f"=== Processing wallet {idx} of {total} ===")
                    await self.process_wallet(private_key, idx, total)

                    self.results.summarize()

                    if idx < total:
                        await long_jitter(*self.pause_between_accounts)
                except Exception as e:
                    logger.error(f"Error processing wallet {idx}: {e}")

        except Exception as e:
            logger.error(f"Fatal error in daily operations: {e}")
            self.results.summarize()
