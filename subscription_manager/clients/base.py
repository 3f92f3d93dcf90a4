"""
Subscription Manager - Client Interfaces.

============================================================
PURPOSE
============================================================
Abstract interfaces for the collaborators the orchestrator
depends on.

- ProgramClient: submits transitions and reads accounts
- SigningIdentity: the connected wallet, if any

Implementations:
- MockProgramClient: in-memory program for testing
- StaticIdentity: fixed public key (or none)

============================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

from solders.pubkey import Pubkey

from ..transitions import TransitionAccounts, TransitionArgs, TransitionName
from ..types import AccountKind


logger = logging.getLogger(__name__)


# ============================================================
# PROGRAM CLIENT
# ============================================================

class ProgramClient(ABC):
    """
    Abstract interface to the subscription program.

    All methods are coroutines. Failures are raised as
    ProgramClientError subclasses (see exceptions.py).
    """

    @property
    @abstractmethod
    def program_id(self) -> Pubkey:
        """Program this client talks to."""
        pass

    @abstractmethod
    async def submit_transition(
        self,
        name: TransitionName,
        accounts: TransitionAccounts,
        args: TransitionArgs,
    ) -> str:
        """
        Submit a transition to the program.

        Args:
            name: Transition name
            accounts: Account bindings for the transition
            args: Instruction arguments

        Returns:
            Transaction signature

        Raises:
            ProgramClientError: With `code` set when the program rejects it
        """
        pass

    @abstractmethod
    async def fetch_account(self, address: Pubkey, kind: AccountKind) -> Any:
        """
        Fetch and decode an account.

        Raises:
            AccountNotFoundError: If no account exists at the address
        """
        pass

    @abstractmethod
    async def list_accounts(self, kind: AccountKind) -> List[Tuple[Pubkey, Any]]:
        """List all program accounts of a kind as (address, record) pairs."""
        pass


# ============================================================
# SIGNING IDENTITY
# ============================================================

class SigningIdentity(ABC):
    """The connected wallet acting as subscriber and fee payer."""

    @property
    @abstractmethod
    def public_key(self) -> Optional[Pubkey]:
        """Public key of the connected wallet, None if not connected."""
        pass


class StaticIdentity(SigningIdentity):
    """Identity with a fixed public key."""

    def __init__(self, public_key: Optional[Pubkey] = None):
        self._public_key = public_key

    @property
    def public_key(self) -> Optional[Pubkey]:
        return self._public_key

    def disconnect(self) -> None:
        self._public_key = None
