"""
Subscription Manager - Configuration.

============================================================
PURPOSE
============================================================
Deployment configuration, read once at construction time.

ENVIRONMENT:
- DEVNET_SUBSCRIPTION_MANAGER_ADDRESS  (required) program id
- DEVNET_NFT_TOKEN_ADDRESS             (optional) eligibility NFT mint
- SOLANA_RPC_URL                       (optional) JSON-RPC endpoint
- SOLANA_RPC_TIMEOUT_SECONDS           (optional) request timeout

Missing or malformed required values fail construction.

============================================================
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv
from solders.pubkey import Pubkey

from .clients.rpc import DEFAULT_RPC_URL
from .exceptions import ConfigurationError, InvalidIdentifierError
from .types import to_pubkey


PROGRAM_ID_ENV = "DEVNET_SUBSCRIPTION_MANAGER_ADDRESS"
NFT_MINT_ENV = "DEVNET_NFT_TOKEN_ADDRESS"
RPC_URL_ENV = "SOLANA_RPC_URL"
RPC_TIMEOUT_ENV = "SOLANA_RPC_TIMEOUT_SECONDS"


@dataclass(frozen=True)
class SubscriptionManagerConfig:
    """Configuration for the subscription orchestrator."""

    program_id: Pubkey
    """Subscription program address."""

    nft_mint: Optional[Pubkey] = None
    """Mint of the registration NFT used as eligibility proof."""

    rpc_url: str = DEFAULT_RPC_URL
    """Solana JSON-RPC endpoint."""

    request_timeout_seconds: float = 20.0
    """Timeout for RPC requests."""

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        load_dotenv_file: bool = True,
    ) -> "SubscriptionManagerConfig":
        """
        Create config from environment variables.

        Args:
            environ: Mapping to read instead of os.environ
            load_dotenv_file: Load a .env file into os.environ first

        Raises:
            ConfigurationError: If the program id is missing or malformed
        """
        if environ is None:
            if load_dotenv_file:
                load_dotenv()
            environ = os.environ

        raw_program_id = environ.get(PROGRAM_ID_ENV)
        if not raw_program_id:
            raise ConfigurationError(
                "Program ID not found in environment variables",
                config_key=PROGRAM_ID_ENV,
            )

        raw_timeout = environ.get(RPC_TIMEOUT_ENV)
        try:
            timeout = float(raw_timeout) if raw_timeout else 20.0
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid {RPC_TIMEOUT_ENV}: {raw_timeout!r}",
                config_key=RPC_TIMEOUT_ENV,
            ) from e

        raw_mint = environ.get(NFT_MINT_ENV)

        return cls(
            program_id=_parse_key(raw_program_id, PROGRAM_ID_ENV),
            nft_mint=_parse_key(raw_mint, NFT_MINT_ENV) if raw_mint else None,
            rpc_url=environ.get(RPC_URL_ENV) or DEFAULT_RPC_URL,
            request_timeout_seconds=timeout,
        )


def _parse_key(raw: str, env_name: str) -> Pubkey:
    try:
        return to_pubkey(raw, env_name)
    except InvalidIdentifierError as e:
        raise ConfigurationError(f"Invalid {env_name}: {raw!r}", config_key=env_name) from e
