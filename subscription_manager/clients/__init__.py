"""
Subscription Manager - Clients Package.

- ProgramClient / SigningIdentity: Interfaces
- MockProgramClient: In-memory program for testing
- SolanaRpcConnection: Raw JSON-RPC lookups
"""

from .base import ProgramClient, SigningIdentity, StaticIdentity
from .mock import MockProgramClient, MockConfig, SubmittedTransition
from .rpc import SolanaRpcConnection, DEFAULT_RPC_URL


__all__ = [
    "ProgramClient",
    "SigningIdentity",
    "StaticIdentity",
    "MockProgramClient",
    "MockConfig",
    "SubmittedTransition",
    "SolanaRpcConnection",
    "DEFAULT_RPC_URL",
]
