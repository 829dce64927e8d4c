import re
import ssl
from decimal import Decimal, ROUND_DOWN
from typing import Any, Dict, Optional, Union

import certifi
from aiohttp import BasicAuth, ClientSession, ClientTimeout, TCPConnector
from aiohttp_socks import ProxyConnector
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address, to_hex, to_wei
from fake_useragent import FakeUserAgent
from web3 import AsyncHTTPProvider, AsyncWeb3

from r2bot.abi import ERC20_ABI
from r2bot.exceptions import TransactionReverted
from r2bot.logger import logger

try:
    SSL_CONTEXT = ssl.create_default_context(cafile=certifi.where())
except Exception:
    SSL_CONTEXT = ssl.create_default_context()


def parse_units(amount: Union[str, Decimal], decimals: int) -> int:
    value = Decimal(str(amount)).scaleb(decimals)
    return int(value.to_integral_value(rounding=ROUND_DOWN))


def format_units(raw: int, decimals: int) -> str:
    value = Decimal(raw).scaleb(-decimals).normalize()
    return format(value, 'f')


def build_proxy_config(proxy=None):
    if not proxy:
        return None, None, None
    if proxy.startswith("socks"):
        connector = ProxyConnector.from_url(proxy, ssl=SSL_CONTEXT)
        return connector, None, None
    elif proxy.startswith("http"):
        match = re.match(r"(https?)://(.*?):(.*?)@(.*)", proxy)
        if match:
            scheme, username, password, host_port = match.groups()
            clean_url = f"{scheme}://{host_port}"
            auth = BasicAuth(username, password)
            connector = TCPConnector(ssl=SSL_CONTEXT)
            return connector, clean_url, auth
        else:
            connector = TCPConnector(ssl=SSL_CONTEXT)
            return connector, proxy, None
    raise ValueError("Unsupported Proxy Type.")


async def create_web3(rpc_url: str, proxy: Optional[str] = None, timeout: int = 60) -> AsyncWeb3:
    """AsyncWeb3 handle for `rpc_url`, optionally tunnelled through `proxy`."""
    request_kwargs: Dict[str, Any] = {
        "headers": {"Content-Type": "application/json", "User-Agent": FakeUserAgent().random},
        "timeout": ClientTimeout(total=timeout),
    }
    connector, proxy_url, proxy_auth = build_proxy_config(proxy)
    if proxy_url:
        request_kwargs["proxy"] = proxy_url
    if proxy_auth:
        request_kwargs["proxy_auth"] = proxy_auth

    provider = AsyncHTTPProvider(rpc_url, request_kwargs=request_kwargs)
    if connector is not None:
        session = ClientSession(connector=connector, timeout=ClientTimeout(total=timeout))
        await provider.cache_async_session(session)
    return AsyncWeb3(provider)


class ChainClient:
    """Signing wallet bound to one RPC connection for one daily cycle."""

    def __init__(self, web3: AsyncWeb3, account: LocalAccount, settings: Dict[str, Any]):
        self.web3 = web3
        self.account = account
        self.address = account.address
        self.contracts = settings['CONTRACTS']
        self.router = settings['ROUTER']

        network = settings['NETWORK']
        self.chain_id = network['CHAIN_ID']
        self.explorer = network['EXPLORER'].rstrip('/')

        gas = settings['GAS']
        self.max_fee_per_gas = to_wei(gas['MAX_FEE_PER_GAS_GWEI'], 'gwei')
        self.max_priority_fee_per_gas = to_wei(gas['MAX_PRIORITY_FEE_PER_GAS_GWEI'], 'gwei')
        self.gas_limit = gas['GAS_LIMIT']
        self.confirmation_timeout = settings['SETTINGS'].get('CONFIRMATION_TIMEOUT', 300)

        self._decimals: Dict[str, int] = {}

    def contract(self, address: str, abi: list):
        return self.web3.eth.contract(address=to_checksum_address(address), abi=abi)

    async def get_latest_block(self) -> int:
        return await self.web3.eth.get_block_number()

    async def get_decimals(self, token: str) -> int:
        if token not in self._decimals:
            self._decimals[token] = await self.contract(token, ERC20_ABI).functions.decimals().call()
        return self._decimals[token]

    async def get_raw_balance(self, token: str, owner: Optional[str] = None) -> int:
        owner = to_checksum_address(owner or self.address)
        return await self.contract(token, ERC20_ABI).functions.balanceOf(owner).call()

    async def get_token_balance(self, token: str, owner: Optional[str] = None) -> str:
        raw = await self.get_raw_balance(token, owner)
        return format_units(raw, await self.get_decimals(token))

    async def get_allowance(self, token: str, owner: str, spender: str) -> int:
        return await self.contract(token, ERC20_ABI).functions.allowance(
            to_checksum_address(owner), to_checksum_address(spender)
        ).call()

    async def has_sufficient_balance(self, token: str, amount: Union[str, Decimal], operation_name: str) -> bool:
        balance = await self.get_token_balance(token)
        if Decimal(balance) < Decimal(str(amount)):
            logger.error(f"Insufficient balance for {operation_name}. Required: {amount}, available: {balance}")
            return False
        return True

    async def _base_params(self) -> Dict[str, Any]:
        nonce = await self.web3.eth.get_transaction_count(self.address, 'pending')
        return {
            'from': self.address,
            'nonce': nonce,
            'value': 0,
            'gas': self.gas_limit,
            'maxFeePerGas': self.max_fee_per_gas,
            'maxPriorityFeePerGas': self.max_priority_fee_per_gas,
            'chainId': self.chain_id,
        }

    async def _sign_and_send(self, tx: Dict[str, Any]) -> str:
        signed = self.account.sign_transaction(tx)
        tx_hash = to_hex(await self.web3.eth.send_raw_transaction(signed.raw_transaction))
        logger.tx(f"Transaction hash: {tx_hash}")
        logger.explorer(f"{self.explorer}/tx/{tx_hash}")
        return tx_hash

    async def send_transaction(self, params: Dict[str, Any]) -> str:
        tx = {**await self._base_params(), 'data': '0x', **params}
        if tx.get('to'):
            tx['to'] = to_checksum_address(tx['to'])
        return await self._sign_and_send(tx)

    async def send_contract_transaction(self, contract_function) -> str:
        tx = await contract_function.build_transaction(await self._base_params())
        return await self._sign_and_send(tx)

    async def approve(self, token: str, spender: str, amount_wei: int) -> str:
        approve_fn = self.contract(token, ERC20_ABI).functions.approve(to_checksum_address(spender), amount_wei)
        return await self.send_contract_transaction(approve_fn)

    async def wait_for_confirmation(self, tx_hash: str, message: str = "Waiting for transaction confirmation..."):
        logger.loading(message)
        receipt = await self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.confirmation_timeout)
        if receipt['status'] == 0:
            raise TransactionReverted(tx_hash)
        return receipt

    async def ensure_allowance(self, token: str, spender: str, amount_wei: int, label: str) -> bool:
        """Approve `spender` for `amount_wei` of `token` unless it already may spend that much.

        Returns True when an approval transaction was sent.
        """
        current_allowance = await self.get_allowance(token, self.address, spender)
        if current_allowance >= amount_wei:
            logger.info(f"Sufficient {label} allowance already exists")
            return False

        logger.step(f"Approving {label} for spending...")
        tx_hash = await self.approve(token, spender, amount_wei)
        await self.wait_for_confirmation(tx_hash, "Waiting for approval confirmation...")
        logger.success("Approval completed")
        return True

    async def log_balances(self, tokens: Dict[str, str]):
        # Runs after a confirmed transaction; a failed read must not trigger a retry.
        for label, token in tokens.items():
            try:
                balance = await self.get_token_balance(token)
                logger.info(f"New {label} balance: {balance}")
            except Exception as e:
                logger.warning(f"Could not read {label} balance: {e}")
