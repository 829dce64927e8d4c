from typing import List, Optional

from web3 import AsyncWeb3

from r2bot.chain import create_web3
from r2bot.logger import logger
from r2bot.utils import check_proxy_scheme, load_lines, mask_proxy


class ProxyRotator:
    """Round-robin over the proxies listed in a text file.

    Not safe for concurrent callers; the bot drives it from one task.
    """

    def __init__(self, filename: str = "data/proxies.txt"):
        self.filename = filename
        self.proxies: List[str] = []
        self.proxy_index = 0

    def load(self) -> int:
        try:
            self.proxies = load_lines(self.filename)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load proxies: {e}")
            self.proxies = []

        if self.proxies:
            self.proxy_index %= len(self.proxies)
            logger.info(f"Loaded {len(self.proxies)} proxies from {self.filename}")
        else:
            self.proxy_index = 0
            logger.warning(f"No proxies found in {self.filename}. Proceeding without proxies")
        return len(self.proxies)

    def next(self) -> Optional[str]:
        if not self.proxies:
            return None
        proxy = check_proxy_scheme(self.proxies[self.proxy_index])
        self.proxy_index = (self.proxy_index + 1) % len(self.proxies)
        return proxy

    async def connect(self, rpc_url: str, timeout: int = 60) -> AsyncWeb3:
        proxy = self.next()
        if not proxy:
            logger.info("No proxy available, creating direct connection")
            return await create_web3(rpc_url, timeout=timeout)

        logger.info(f"Using proxy: {mask_proxy(proxy)}")
        web3 = None
        try:
            web3 = await create_web3(rpc_url, proxy=proxy, timeout=timeout)
            await web3.eth.get_block_number()
            logger.success("Proxy connection successful")
            return web3
        except Exception as e:
            logger.error(f"Failed to connect with proxy: {e}")
            if web3 is not None:
                await self._close(web3)
            logger.warning("Falling back to direct connection")
            return await create_web3(rpc_url, timeout=timeout)

    @staticmethod
    async def _close(web3: AsyncWeb3):
        try:
            await web3.provider.disconnect()
        except Exception as e:
            logger.debug(f"Failed to close proxied session: {e}")
