import asyncio
import os
import random
from typing import List

from r2bot.logger import logger


def mask_proxy(proxy: str) -> str:
    if not proxy:
        return "No proxy"

    try:
        protocol, rest = proxy.split("://", 1) if "://" in proxy else ("http", proxy)

        auth = None
        host_port = rest
        if "@" in rest:
            auth, host_port = rest.rsplit("@", 1)

        if ":" in host_port:
            ip, port = host_port.rsplit(":", 1)
            parts = ip.split(".")
            if len(parts) == 4:
                masked_ip = f"{parts[0]}.{parts[1]}.***"
            else:
                masked_ip = ip[:3] + "***"
            masked_host = f"{masked_ip}:{port}"
        else:
            masked_host = host_port[:3] + "***"

        if auth is None:
            return f"{protocol}://{masked_host}"

        if ":" in auth:
            user, password = auth.split(":", 1)
            masked_user = user[0] + "***" if user else "***"
            masked_pass = password[0] + "***" if password else "***"
            masked_auth = f"{masked_user}:{masked_pass}"
        else:
            masked_auth = auth[:1] + "***"
        return f"{protocol}://{masked_auth}@{masked_host}"
    except Exception:
        return proxy[:10] + "***" if len(proxy) > 10 else "***"


def check_proxy_scheme(proxy: str) -> str:
    schemes = ["http://", "https://", "socks4://", "socks5://"]
    if any(proxy.startswith(scheme) for scheme in schemes):
        return proxy
    return f"http://{proxy}"


def load_lines(filename: str) -> List[str]:
    """Non-empty, non-comment lines of a text file; [] when it does not exist."""
    if not os.path.exists(filename):
        return []

    lines = []
    with open(filename, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#'):
                lines.append(line)

    return lines


def get_random_delay(delay_range: List[int]) -> int:
    return random.randint(delay_range[0], delay_range[1])


async def short_jitter(min_ms: int = 500, max_ms: int = 3000):
    await asyncio.sleep(random.randint(min_ms, max_ms) / 1000)


async def long_jitter(min_sec: int = 5, max_sec: int = 15):
    delay = get_random_delay([min_sec, max_sec])
    logger.info(f"Waiting {delay} seconds before next operation...")
    await asyncio.sleep(delay)


def create_data_directory():
    os.makedirs("data", exist_ok=True)
    os.makedirs("logs", exist_ok=True)

    templates = {
        "data/proxies.txt": (
            "# Proxies for RPC connections, one per line\n"
            "# Format: host:port, user:pass@host:port, http://... or socks5://...\n"
        ),
    }

    for path, content in templates.items():
        if not os.path.exists(path):
            with open(path, 'w', encoding='utf-8') as f:
                f.write(content)
