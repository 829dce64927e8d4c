import copy
import json
import os
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import yaml

from r2bot.exceptions import SettingsError
from r2bot.logger import logger

LOOP_FIELDS = ['buy', 'sell', 'swap', 'stake', 'liquidity']

DEFAULT_LOOPS = {
    'buy': 2,
    'sell': 3,
    'swap': 1,
    'stake': 2,
    'liquidity': 1,
}

DEFAULT_SETTINGS: Dict[str, Any] = {
    'NETWORK': {
        'NAME': 'Sepolia',
        'RPC_URL': 'https://ethereum-sepolia-rpc.publicnode.com',
        'CHAIN_ID': 11155111,
        'EXPLORER': 'https://sepolia.etherscan.io',
    },
    'CONTRACTS': {
        'USDC': '0xef84994eF411c4981328fFcE5Fda41cD3803faE4',
        'R2USD': '0x9e8FF356D35a2Da385C546d6Bf1D77ff85133365',
        'SR2USD': '0x006CbF409CA275bA022111dB32BDAE054a97d488',
        'R2': '0xb816bB88f836EA75Ca4071B46FF285f690C43bb7',
        'WBTC': '0x4f5b54d4AF2568cefafA73bB062e5d734b55AA05',
    },
    'ROUTER': {
        'SWAP_ADDRESS': '0x47d1B0623bB3E557bF8544C159c9ae51D091F8a2',
        'STAKING_ADDRESS': '0xeE567Fe1712Faf6149d80dA1E6934E354124CfE3',
        'STAKE_WBTC': '0x23b2615d783E16F14B62EfA125306c7c69B4941A',
        'PAIR_ADDRESS': '0xCdfDD7dD24bABDD05A2ff4dfcf06384c5Ad661a9',
        'BUY_METHOD_ID': '0x095e7a95',
        'SELL_METHOD_ID': '0x3df02124',
        'STAKING_METHOD_ID': '0x1a5f0f00',
    },
    'GAS': {
        'MAX_FEE_PER_GAS_GWEI': 20,
        'MAX_PRIORITY_FEE_PER_GAS_GWEI': 2,
        'GAS_LIMIT': 500000,
    },
    'SETTINGS': {
        'ATTEMPTS': 3,
        'PAUSE_BETWEEN_LOOPS': [5, 15],
        'PAUSE_BETWEEN_ACCOUNTS': [30, 60],
        'RUN_INTERVAL_HOURS': 24,
        'RPC_TIMEOUT': 60,
        'CONFIRMATION_TIMEOUT': 300,
    },
    'FILES': {
        'PROXIES': 'data/proxies.txt',
        'LOOPS': 'loop.json',
        'AMOUNTS': 'amount.json',
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(filename: str = "settings.yaml") -> Dict[str, Any]:
    """Read settings.yaml and lay it over the built-in defaults.

    A missing file is not an error: the defaults target the public Sepolia
    deployment. A file that cannot be parsed raises SettingsError.
    """
    if not os.path.exists(filename):
        logger.warning(f"Settings file '{filename}' not found, using built-in defaults")
        return copy.deepcopy(DEFAULT_SETTINGS)

    try:
        with open(filename, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise SettingsError(f"Error parsing settings file: {e}")

    if not isinstance(data, dict):
        raise SettingsError(f"Settings file '{filename}' must contain a mapping")

    return _deep_merge(DEFAULT_SETTINGS, data)


def validate_settings(settings: Dict[str, Any]) -> bool:
    for section in DEFAULT_SETTINGS:
        if not isinstance(settings.get(section), dict):
            raise SettingsError(f"Missing required section '{section}' in settings.yaml")

    network = settings['NETWORK']
    if not network.get('RPC_URL'):
        raise SettingsError("NETWORK.RPC_URL must be set")
    if not isinstance(network.get('CHAIN_ID'), int):
        raise SettingsError("NETWORK.CHAIN_ID must be an integer")

    bot_settings = settings['SETTINGS']
    for key in ('PAUSE_BETWEEN_LOOPS', 'PAUSE_BETWEEN_ACCOUNTS'):
        value = bot_settings.get(key)
        if not (isinstance(value, list) and len(value) == 2 and value[0] <= value[1]):
            raise SettingsError(f"SETTINGS.{key} must be a [min, max] pair")

    attempts = bot_settings.get('ATTEMPTS')
    if not isinstance(attempts, int) or attempts < 1:
        raise SettingsError("SETTINGS.ATTEMPTS must be a positive integer")

    return True


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def load_loop_config(filename: str = "loop.json") -> Dict[str, int]:
    """Per-category repeat counts, falling back to DEFAULT_LOOPS field by field."""
    if not os.path.exists(filename):
        logger.warning(f"{filename} not found. Using default loop values")
        return dict(DEFAULT_LOOPS)

    try:
        with open(filename, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("expected a mapping of operation category to loop count")
    except (OSError, json.JSONDecodeError, ValueError) as e:
        logger.error(f"Failed to load loop configuration: {e}")
        logger.warning("Using default loop values due to error")
        return dict(DEFAULT_LOOPS)

    logger.info(f"Loaded operation loops configuration from {filename}")
    loops = {}
    for field in LOOP_FIELDS:
        value = data.get(field)
        if field not in data:
            logger.warning(f"Field '{field}' missing in {filename}, using default value: {DEFAULT_LOOPS[field]}")
            loops[field] = DEFAULT_LOOPS[field]
        elif not _is_positive_int(value):
            logger.warning(f"Field '{field}' in {filename} is not a positive integer ({value!r}), "
                           f"using default value: {DEFAULT_LOOPS[field]}")
            loops[field] = DEFAULT_LOOPS[field]
        else:
            loops[field] = value
    return loops


def load_amounts(filename: str = "amount.json") -> Dict[str, str]:
    if not os.path.exists(filename):
        logger.warning(f"{filename} not found. All operations are disabled")
        return {}

    try:
        with open(filename, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("expected a mapping of operation to amount")
    except (OSError, json.JSONDecodeError, ValueError) as e:
        logger.error(f"Failed to load amounts: {e}")
        logger.warning("All operations are disabled due to error")
        return {}

    return {str(key): str(value) for key, value in data.items() if value is not None}


def parse_amount(value: Optional[str]) -> Optional[Decimal]:
    """Return the amount as a Decimal when it is a positive number, else None."""
    if value is None:
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def load_private_keys(env_var: str = "PRIVATE_KEY") -> List[str]:
    raw = os.getenv(env_var) or ""
    return [key.strip() for key in raw.split(",") if key.strip()]
