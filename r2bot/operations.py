"""The seven daily operations.

Each body performs one attempt and returns a StepResult: SKIPPED when a
balance precondition is not met, SUCCESS once the transaction is confirmed.
Chain errors propagate so the retry executor can try again.
"""
import time
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN
from typing import Awaitable, Callable, List

from eth_abi import encode
from eth_utils import decode_hex, to_checksum_address, to_hex

from r2bot.abi import PAIR_ABI, STAKING_ABI, SWAP_ROUTER_ABI
from r2bot.chain import ChainClient, format_units, parse_units
from r2bot.exceptions import InsufficientBalanceError, R2BotError
from r2bot.logger import logger
from r2bot.results import StepResult

DEADLINE_SECONDS = 1200
SIX_PLACES = Decimal("0.000001")


@dataclass(frozen=True)
class Operation:
    name: str
    amount_key: str
    loop_key: str
    label: str
    body: Callable[[ChainClient, str], Awaitable[StepResult]]


def _deadline() -> int:
    return int(time.time()) + DEADLINE_SECONDS


def _calldata(method_id: str, types: List[str], values: list) -> str:
    return to_hex(decode_hex(method_id) + encode(types, values))


async def buy_usdc_to_r2usd(client: ChainClient, amount: str) -> StepResult:
    usdc = client.contracts['USDC']
    r2usd = client.contracts['R2USD']

    if not await client.has_sufficient_balance(usdc, amount, "buy USDC to R2USD"):
        return StepResult.skipped("Insufficient USDC balance")

    amount_wei = parse_units(amount, await client.get_decimals(usdc))

    logger.step("Approving USDC for swap")
    await client.ensure_allowance(usdc, r2usd, amount_wei, "USDC")

    data = _calldata(
        client.router['BUY_METHOD_ID'],
        ['address', 'uint256', 'uint256', 'uint256', 'uint256', 'uint256', 'uint256'],
        [client.address, amount_wei, 0, 0, 0, 0, 0],
    )

    logger.step("Executing buy transaction")
    tx_hash = await client.send_transaction({'to': r2usd, 'data': data})
    receipt = await client.wait_for_confirmation(tx_hash)
    logger.success(f"Transaction confirmed in block {receipt['blockNumber']}")

    await client.log_balances({'USDC': usdc, 'R2USD': r2usd})
    return StepResult.success()


async def sell_r2usd_to_usdc(client: ChainClient, amount: str) -> StepResult:
    usdc = client.contracts['USDC']
    r2usd = client.contracts['R2USD']
    pool = client.router['SWAP_ADDRESS']

    if not await client.has_sufficient_balance(r2usd, amount, "sell R2USD to USDC"):
        return StepResult.skipped("Insufficient R2USD balance")

    amount_wei = parse_units(amount, await client.get_decimals(r2usd))
    min_output = amount_wei * 97 // 100

    logger.step("Approving R2USD for swap")
    await client.ensure_allowance(r2usd, pool, amount_wei, "R2USD")

    # exchange(i=0, j=1, dx, min_dy) on the stable pool
    data = _calldata(
        client.router['SELL_METHOD_ID'],
        ['uint256', 'uint256', 'uint256', 'uint256'],
        [0, 1, amount_wei, min_output],
    )

    logger.step("Executing sell transaction")
    tx_hash = await client.send_transaction({'to': pool, 'data': data})
    receipt = await client.wait_for_confirmation(tx_hash)
    logger.success(f"Transaction confirmed in block {receipt['blockNumber']}")

    await client.log_balances({'R2USD': r2usd, 'USDC': usdc})
    return StepResult.success()


async def _swap_exact_tokens(client: ChainClient, amount: str, from_label: str, to_label: str) -> StepResult:
    token_in = client.contracts[from_label]
    token_out = client.contracts[to_label]
    router_address = client.router['STAKING_ADDRESS']

    if not await client.has_sufficient_balance(token_in, amount, f"swap {from_label} to {to_label}"):
        return StepResult.skipped(f"Insufficient {from_label} balance")

    amount_wei = parse_units(amount, await client.get_decimals(token_in))
    path = [to_checksum_address(token_in), to_checksum_address(token_out)]

    logger.step(f"Approving {from_label} for swap")
    await client.ensure_allowance(token_in, router_address, amount_wei, from_label)

    router = client.contract(router_address, SWAP_ROUTER_ABI)
    logger.step(f"Executing swap {from_label} -> {to_label}")
    tx_hash = await client.send_contract_transaction(
        router.functions.swapExactTokensForTokens(amount_wei, 0, path, client.address, _deadline())
    )
    receipt = await client.wait_for_confirmation(tx_hash)
    logger.success(f"Transaction confirmed in block {receipt['blockNumber']}")

    await client.log_balances({from_label: token_in, to_label: token_out})
    return StepResult.success()


async def swap_r2_to_r2usd(client: ChainClient, amount: str) -> StepResult:
    return await _swap_exact_tokens(client, amount, 'R2', 'R2USD')


async def swap_r2usd_to_r2(client: ChainClient, amount: str) -> StepResult:
    return await _swap_exact_tokens(client, amount, 'R2USD', 'R2')


async def stake_wbtc(client: ChainClient, amount: str) -> StepResult:
    wbtc = client.contracts['WBTC']
    staking_address = client.router['STAKE_WBTC']

    if not await client.has_sufficient_balance(wbtc, amount, "stake wBTC"):
        return StepResult.skipped("Insufficient wBTC balance")

    decimals = await client.get_decimals(wbtc)
    amount_wei = parse_units(amount, decimals)

    logger.step("Approving wBTC for staking")
    await client.ensure_allowance(wbtc, staking_address, amount_wei, "wBTC")

    staking = client.contract(staking_address, STAKING_ABI)
    logger.step("Executing wBTC staking")
    tx_hash = await client.send_contract_transaction(
        staking.functions.stake(to_checksum_address(wbtc), amount_wei)
    )
    receipt = await client.wait_for_confirmation(tx_hash)
    logger.success(f"Transaction confirmed in block {receipt['blockNumber']}")

    await client.log_balances({'wBTC': wbtc})
    try:
        staked = await staking.functions.getStakedAmount(client.address).call()
        logger.info(f"Staked wBTC amount: {format_units(staked, decimals)}")
    except Exception as e:
        logger.warning(f"Could not read staked wBTC amount: {e}")
    return StepResult.success()


async def stake_r2usd(client: ChainClient, amount: str) -> StepResult:
    r2usd = client.contracts['R2USD']
    sr2usd = client.contracts['SR2USD']

    if not await client.has_sufficient_balance(r2usd, amount, "stake R2USD"):
        return StepResult.skipped("Insufficient R2USD balance")

    amount_wei = parse_units(amount, await client.get_decimals(r2usd))
    await client.ensure_allowance(r2usd, sr2usd, amount_wei, "R2USD")

    logger.step("Attempting staking with method ID...")
    data = client.router['STAKING_METHOD_ID'] + format(amount_wei, '064x') + '0' * 576
    try:
        logger.step(f"Initiating staking: {amount} R2USD to sR2USD")
        tx_hash = await client.send_transaction({'to': sr2usd, 'data': data})
        await client.wait_for_confirmation(tx_hash, "Waiting for staking confirmation...")
        logger.success("Staking successful with method ID")
    except Exception as e:
        logger.warning(f"Failed with method ID: {e}")
        logger.step("Attempting staking with ABI method...")
        staking = client.contract(sr2usd, STAKING_ABI)
        tx_hash = await client.send_contract_transaction(
            staking.functions.stake(to_checksum_address(r2usd), amount_wei)
        )
        await client.wait_for_confirmation(tx_hash)
        logger.success("Staking successful with ABI method")

    await client.log_balances({'R2USD': r2usd, 'sR2USD': sr2usd})
    return StepResult.success()


def _log_liquidity_added(router, router_address: str, receipt, decimals_a: int, decimals_b: int):
    # Informational only; the liquidity is already confirmed on chain.
    for entry in receipt.get('logs', []):
        if str(entry.get('address', '')).lower() != router_address.lower():
            continue
        try:
            args = router.events.LiquidityAdded().process_log(entry)['args']
        except Exception as e:
            logger.warning(f"Could not decode liquidity event: {e}")
            return
        logger.info("Liquidity added:")
        logger.info(f"- R2 added: {format_units(args['amountA'], decimals_a)}")
        logger.info(f"- USDC added: {format_units(args['amountB'], decimals_b)}")
        logger.info(f"- LP Tokens received: {format_units(args['liquidity'], 18)}")
        return


async def add_liquidity(client: ChainClient, amount: str) -> StepResult:
    token_a = client.contracts['R2']
    token_b = client.contracts['USDC']
    router_address = client.router['STAKING_ADDRESS']

    decimals_a = await client.get_decimals(token_a)
    decimals_b = await client.get_decimals(token_b)

    pair = client.contract(client.router['PAIR_ADDRESS'], PAIR_ABI)
    reserve0, reserve1, _ = await pair.functions.getReserves().call()
    token0 = await pair.functions.token0().call()

    if token0.lower() == token_a.lower():
        reserve_a, reserve_b = reserve0, reserve1
    else:
        reserve_a, reserve_b = reserve1, reserve0
    if reserve_a == 0 or reserve_b == 0:
        raise R2BotError("R2-USDC pool has no liquidity")

    reserve_a_formatted = Decimal(format_units(reserve_a, decimals_a))
    reserve_b_formatted = Decimal(format_units(reserve_b, decimals_b))
    ratio = reserve_b_formatted / reserve_a_formatted

    logger.info("Current Pool Status:")
    logger.info(f"- R2 Reserve: {reserve_a_formatted}")
    logger.info(f"- USDC Reserve: {reserve_b_formatted}")
    logger.info(f"- Current Ratio: 1 R2 = {ratio.quantize(SIX_PLACES)} USDC")

    amount_a = Decimal(str(amount))
    amount_b = (ratio * amount_a).quantize(SIX_PLACES, rounding=ROUND_DOWN)
    amount_a_desired = parse_units(amount_a, decimals_a)
    amount_b_desired = parse_units(amount_b, decimals_b)
    amount_a_min = parse_units((amount_a * Decimal("0.99")).quantize(SIX_PLACES, rounding=ROUND_DOWN), decimals_a)
    amount_b_min = parse_units((amount_b * Decimal("0.99")).quantize(SIX_PLACES, rounding=ROUND_DOWN), decimals_b)

    balance_a = await client.get_raw_balance(token_a)
    balance_b = await client.get_raw_balance(token_b)
    if balance_a < amount_a_desired:
        raise InsufficientBalanceError(
            f"Insufficient R2 balance. Required: {amount}, available: {format_units(balance_a, decimals_a)}"
        )
    if balance_b < amount_b_desired:
        raise InsufficientBalanceError(
            f"Insufficient USDC balance. Required: {amount_b}, available: {format_units(balance_b, decimals_b)}"
        )

    logger.step("Approving R2 for liquidity")
    await client.ensure_allowance(token_a, router_address, amount_a_desired, "R2")
    logger.step("Approving USDC for liquidity")
    await client.ensure_allowance(token_b, router_address, amount_b_desired, "USDC")

    router = client.contract(router_address, SWAP_ROUTER_ABI)
    logger.step("Adding liquidity to pool")
    tx_hash = await client.send_contract_transaction(
        router.functions.addLiquidity(
            to_checksum_address(token_a),
            to_checksum_address(token_b),
            amount_a_desired,
            amount_b_desired,
            amount_a_min,
            amount_b_min,
            client.address,
            _deadline(),
        )
    )
    receipt = await client.wait_for_confirmation(tx_hash)
    logger.success(f"Transaction confirmed in block {receipt['blockNumber']}")

    _log_liquidity_added(router, router_address, receipt, decimals_a, decimals_b)
    await client.log_balances({'R2': token_a, 'USDC': token_b})
    return StepResult.success()


OPERATIONS = [
    Operation('buy', 'buyUsdcToR2usd', 'buy', 'buy USDC to R2USD', buy_usdc_to_r2usd),
    Operation('sell', 'sellR2usdToUsdc', 'sell', 'sell R2USD to USDC', sell_r2usd_to_usdc),
    Operation('swap_to_r2usd', 'swapR2ToR2usd', 'swap', 'swap R2 to R2USD', swap_r2_to_r2usd),
    Operation('swap_to_r2', 'swapR2usdToR2', 'swap', 'swap R2USD to R2', swap_r2usd_to_r2),
    Operation('stake_wbtc', 'stakewBtc', 'stake', 'stake wBTC', stake_wbtc),
    Operation('stake_r2usd', 'stakeR2USD', 'stake', 'stake R2USD', stake_r2usd),
    Operation('add_liquidity', 'addLiquidity', 'liquidity', 'add liquidity to R2-USDC pool', add_liquidity),
]

OPERATION_NAMES = [operation.name for operation in OPERATIONS]
