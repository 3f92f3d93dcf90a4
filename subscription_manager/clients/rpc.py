"""
Solana RPC Connection - raw account lookups over JSON-RPC.

Used for checks that sit outside the subscription program,
such as whether a provider's NFT token account exists.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp
from solders.pubkey import Pubkey

from ..exceptions import TransportError


logger = logging.getLogger(__name__)


DEFAULT_RPC_URL = "https://api.devnet.solana.com"


class SolanaRpcConnection:
    """
    Minimal Solana JSON-RPC connection.

    Owns its aiohttp session unless one is passed in.
    """

    DEFAULT_TIMEOUT = 20.0
    DEFAULT_COMMITMENT = "confirmed"

    def __init__(
        self,
        rpc_url: str = DEFAULT_RPC_URL,
        timeout: float = DEFAULT_TIMEOUT,
        commitment: str = DEFAULT_COMMITMENT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self._timeout = timeout
        self._commitment = commitment
        self._session = session
        self._owns_session = session is None
        self._request_id = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            headers = {"Content-Type": "application/json"}
            self._session = aiohttp.ClientSession(timeout=timeout, headers=headers)
            self._owns_session = True
        return self._session

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "SolanaRpcConnection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _rpc_call(self, method: str, params: list) -> Any:
        """Make a JSON-RPC call and return its `result`."""
        session = await self._get_session()

        payload = {
            "jsonrpc": "2.0",
            "id": self._next_request_id(),
            "method": method,
            "params": params,
        }

        try:
            async with session.post(self.rpc_url, json=payload) as response:
                if response.status == 429:
                    raise TransportError(
                        "Solana RPC rate limit exceeded",
                        status_code=429,
                        rpc_url=self.rpc_url,
                    )

                if response.status != 200:
                    raise TransportError(
                        f"RPC error: {response.status}",
                        status_code=response.status,
                        rpc_url=self.rpc_url,
                    )

                data = await response.json()

                if "error" in data:
                    error = data["error"]
                    raise TransportError(
                        f"RPC error: {error.get('message', 'Unknown')}",
                        rpc_url=self.rpc_url,
                        details=error,
                    )

                return data.get("result")

        except aiohttp.ClientError as e:
            raise TransportError(f"Network error: {e}", rpc_url=self.rpc_url) from e
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Request timed out after {self._timeout}s",
                rpc_url=self.rpc_url,
            ) from e

    async def get_account_info(self, address: Pubkey) -> Optional[dict]:
        """
        Fetch raw account info.

        Returns:
            The account `value` object, or None if the account does not exist
        """
        result = await self._rpc_call(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self._commitment}],
        )
        if not result:
            return None
        return result.get("value")

    async def account_exists(self, address: Pubkey) -> bool:
        return await self.get_account_info(address) is not None
