"""
Subscription Manager - Mock Program Client.

============================================================
PURPOSE
============================================================
In-memory stand-in for the on-chain subscription program.

FEATURES:
- Enforces the program's error codes (6000-6008)
- Tracks state, subscription, quality and subscriber-list accounts
- Records every submitted transition
- Error injection per transition and per fetched address
- Configurable latency

============================================================
"""

import asyncio
import dataclasses
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from solders.pubkey import Pubkey
from solders.signature import Signature

from ..addresses import (
    derive_quality_address,
    derive_state_address,
    derive_subscribers_list_address,
    derive_subscription_address,
)
from ..errors import SubscriptionErrorCode
from ..exceptions import (
    AccountAlreadyInUseError,
    AccountNotFoundError,
    ProgramClientError,
)
from ..transitions import (
    CancelSubscriptionAccounts,
    CancelSubscriptionArgs,
    InitializeQualityInfoAccounts,
    RenewSubscriptionAccounts,
    RenewSubscriptionArgs,
    SubscribeAccounts,
    SubscribeArgs,
    TransitionAccounts,
    TransitionArgs,
    TransitionName,
    validate_bindings,
)
from ..types import (
    SECONDS_PER_DAY,
    AccountKind,
    Clock,
    QualityInfoAccount,
    StateAccount,
    SubscribersListAccount,
    SubscriptionAccount,
    system_clock,
)
from .base import ProgramClient


logger = logging.getLogger(__name__)

# Anchor's code for a constraint on an uninitialized account.
ACCOUNT_NOT_INITIALIZED_CODE = 3012
ACCOUNT_DISCRIMINATOR_MISMATCH_CODE = 3002

MIN_QUALITY = 0
MAX_QUALITY = 100


def _clone(record: Any) -> Any:
    # Callers get copies; mutating them must not touch program state.
    if isinstance(record, SubscribersListAccount):
        return SubscribersListAccount(
            data_provider=record.data_provider,
            subscribers=list(record.subscribers),
        )
    return dataclasses.replace(record)


# ============================================================
# MOCK CONFIGURATION
# ============================================================

@dataclass
class MockConfig:
    """Configuration for the mock program."""

    owner: Pubkey = field(default_factory=Pubkey.new_unique)
    """Owner recorded in the global state account."""

    clock: Clock = system_clock
    """Program-side clock."""

    min_period_seconds: int = SECONDS_PER_DAY
    """Shortest subscription the program accepts."""

    valid_nft_accounts: Optional[Set[Pubkey]] = None
    """Accepted eligibility proofs. None accepts any token account."""

    min_latency_ms: float = 0.0
    max_latency_ms: float = 0.0


@dataclass
class SubmittedTransition:
    """A transition as seen by the mock program."""

    name: TransitionName
    accounts: TransitionAccounts
    args: TransitionArgs
    signature: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.error is None


# ============================================================
# MOCK PROGRAM CLIENT
# ============================================================

class MockProgramClient(ProgramClient):
    """
    Mock subscription program for testing.

    Simulates:
    - subscribe / renewSubscription / cancelSubscription
    - lazy quality-info initialization
    - subscriber list maintenance
    - program error codes and transport failures
    """

    def __init__(
        self,
        program_id: Optional[Pubkey] = None,
        config: Optional[MockConfig] = None,
    ):
        self._program_id = program_id or Pubkey.new_unique()
        self._config = config or MockConfig()

        # address -> (kind, record)
        self._accounts: Dict[Pubkey, Tuple[AccountKind, Any]] = {}

        self.submitted: List[SubmittedTransition] = []
        self.fetches: List[Tuple[Pubkey, AccountKind]] = []

        # Error injection hooks
        self._injected_errors: Dict[Optional[TransitionName], List[Exception]] = {}
        self._fetch_failures: Dict[Pubkey, Exception] = {}
        self._list_failure: Optional[Exception] = None

        self._init_state()

    def _init_state(self) -> None:
        state_address = derive_state_address(self._program_id)
        self._accounts[state_address] = (
            AccountKind.STATE,
            StateAccount(owner=self._config.owner),
        )

    @property
    def program_id(self) -> Pubkey:
        return self._program_id

    @property
    def owner(self) -> Pubkey:
        return self._config.owner

    def _now(self) -> int:
        return int(self._config.clock())

    async def _simulate_latency(self) -> None:
        if self._config.max_latency_ms <= 0:
            return
        latency = random.uniform(self._config.min_latency_ms, self._config.max_latency_ms)
        await asyncio.sleep(latency / 1000)

    # --------------------------------------------------------
    # ERROR INJECTION
    # --------------------------------------------------------

    def inject_error(
        self,
        error: Exception,
        transition: Optional[TransitionName] = None,
    ) -> None:
        """
        Fail the next submission with `error`.

        Args:
            error: Exception to raise
            transition: Only fail this transition (None = next of any kind)
        """
        self._injected_errors.setdefault(transition, []).append(error)

    def inject_program_error(
        self,
        code: int,
        transition: Optional[TransitionName] = None,
    ) -> None:
        """Fail the next submission with a program error code."""
        self.inject_error(
            ProgramClientError(f"custom program error: {hex(code)}", code=code),
            transition,
        )

    def fail_fetch(self, address: Pubkey, error: Optional[Exception] = None) -> None:
        """Make every fetch of `address` fail."""
        self._fetch_failures[address] = error or ProgramClientError(
            f"Failed to get account info: {address}"
        )

    def fail_list(self, error: Optional[Exception] = None) -> None:
        """Make the next list_accounts() call fail."""
        self._list_failure = error or ProgramClientError("getProgramAccounts failed")

    def _pop_injected(self, name: TransitionName) -> Optional[Exception]:
        for key in (name, None):
            queue = self._injected_errors.get(key)
            if queue:
                return queue.pop(0)
        return None

    # --------------------------------------------------------
    # SEEDING
    # --------------------------------------------------------

    def seed_subscription(
        self,
        subscriber: Pubkey,
        data_provider: Pubkey,
        end_time: int,
        recipient: str = "",
    ) -> Pubkey:
        """Create a subscription record directly, bypassing the program rules."""
        address = derive_subscription_address(self._program_id, subscriber, data_provider)
        self._accounts[address] = (
            AccountKind.SUBSCRIPTION,
            SubscriptionAccount(
                recipient=recipient,
                end_time=end_time,
                subscriber=subscriber,
                data_provider=data_provider,
            ),
        )
        self._add_subscriber(data_provider, subscriber)
        return address

    def seed_quality_info(
        self,
        data_provider: Pubkey,
        total_quality: int = 0,
        rating_count: int = 0,
    ) -> Pubkey:
        address = derive_quality_address(self._program_id, data_provider)
        self._accounts[address] = (
            AccountKind.QUALITY_INFO,
            QualityInfoAccount(
                data_provider=data_provider,
                total_quality=total_quality,
                rating_count=rating_count,
            ),
        )
        return address

    def has_account(self, address: Pubkey) -> bool:
        return address in self._accounts

    # --------------------------------------------------------
    # READS
    # --------------------------------------------------------

    async def fetch_account(self, address: Pubkey, kind: AccountKind) -> Any:
        await self._simulate_latency()
        self.fetches.append((address, kind))

        if address in self._fetch_failures:
            raise self._fetch_failures[address]

        entry = self._accounts.get(address)
        if entry is None:
            raise AccountNotFoundError(address, kind.value)

        stored_kind, record = entry
        if stored_kind is not kind:
            raise ProgramClientError(
                f"Account discriminator mismatch: expected {kind.value}, found {stored_kind.value}",
                code=ACCOUNT_DISCRIMINATOR_MISMATCH_CODE,
            )
        return _clone(record)

    async def list_accounts(self, kind: AccountKind) -> List[Tuple[Pubkey, Any]]:
        await self._simulate_latency()

        if self._list_failure is not None:
            error, self._list_failure = self._list_failure, None
            raise error

        return [
            (address, _clone(record))
            for address, (stored_kind, record) in self._accounts.items()
            if stored_kind is kind
        ]

    # --------------------------------------------------------
    # TRANSITIONS
    # --------------------------------------------------------

    async def submit_transition(
        self,
        name: TransitionName,
        accounts: TransitionAccounts,
        args: TransitionArgs,
    ) -> str:
        validate_bindings(name, accounts, args)
        await self._simulate_latency()

        record = SubmittedTransition(name=name, accounts=accounts, args=args)
        self.submitted.append(record)

        try:
            injected = self._pop_injected(name)
            if injected is not None:
                raise injected

            if name is TransitionName.SUBSCRIBE:
                self._subscribe(accounts, args)
            elif name is TransitionName.RENEW_SUBSCRIPTION:
                self._renew(accounts, args)
            elif name is TransitionName.CANCEL_SUBSCRIPTION:
                self._cancel(accounts, args)
            elif name is TransitionName.INITIALIZE_QUALITY_INFO:
                self._initialize_quality_info(accounts)
        except Exception as e:
            record.error = e
            logger.debug(f"Mock program rejected {name.value}: {e}")
            raise

        record.signature = str(Signature.new_unique())
        return record.signature

    def submitted_names(self) -> List[TransitionName]:
        return [t.name for t in self.submitted]

    # --------------------------------------------------------
    # PROGRAM RULES
    # --------------------------------------------------------

    def _reject(self, code: SubscriptionErrorCode) -> None:
        raise ProgramClientError(
            f"AnchorError: Error Code: {code.name}. Error Number: {int(code)}.",
            code=int(code),
        )

    def _require_owner(self, owner: Pubkey) -> None:
        state_address = derive_state_address(self._program_id)
        _, state = self._accounts[state_address]
        if state.owner != owner:
            self._reject(SubscriptionErrorCode.NOT_OWNER)

    def _require_nft(self, nft_token_account: Optional[Pubkey]) -> None:
        valid = self._config.valid_nft_accounts
        if valid is not None and nft_token_account not in valid:
            self._reject(SubscriptionErrorCode.INVALID_NFT_HOLDER)

    def _require_quality(self, quality: int) -> None:
        if not MIN_QUALITY <= quality <= MAX_QUALITY:
            self._reject(SubscriptionErrorCode.QUALITY_OUT_OF_RANGE)

    def _get_subscription(self, address: Pubkey) -> SubscriptionAccount:
        entry = self._accounts.get(address)
        if entry is None or entry[0] is not AccountKind.SUBSCRIPTION:
            self._reject(SubscriptionErrorCode.SUBSCRIPTION_NOT_FOUND)
        return entry[1]

    def _add_subscriber(self, data_provider: Pubkey, subscriber: Pubkey) -> None:
        address = derive_subscribers_list_address(self._program_id, data_provider)
        entry = self._accounts.get(address)
        if entry is None:
            entry = (AccountKind.SUBSCRIBERS_LIST, SubscribersListAccount(data_provider=data_provider))
            self._accounts[address] = entry
        subscribers = entry[1].subscribers
        if subscriber not in subscribers:
            subscribers.append(subscriber)

    def _remove_subscriber(self, data_provider: Pubkey, subscriber: Pubkey) -> None:
        address = derive_subscribers_list_address(self._program_id, data_provider)
        entry = self._accounts.get(address)
        if entry is not None and subscriber in entry[1].subscribers:
            entry[1].subscribers.remove(subscriber)

    def _record_quality(self, quality_address: Pubkey, quality: int) -> None:
        entry = self._accounts.get(quality_address)
        if entry is None:
            raise ProgramClientError(
                "AnchorError caused by account: quality_info. Error Code: AccountNotInitialized.",
                code=ACCOUNT_NOT_INITIALIZED_CODE,
            )
        entry[1].total_quality += quality
        entry[1].rating_count += 1

    def _subscribe(self, accounts: SubscribeAccounts, args: SubscribeArgs) -> None:
        self._require_owner(accounts.owner)
        self._require_nft(accounts.nft_token_account)

        if accounts.subscription in self._accounts:
            self._reject(SubscriptionErrorCode.ALREADY_SUBSCRIBED)
        if args.end_time - self._now() < self._config.min_period_seconds:
            self._reject(SubscriptionErrorCode.PERIOD_TOO_SHORT)

        self._accounts[accounts.subscription] = (
            AccountKind.SUBSCRIPTION,
            SubscriptionAccount(
                recipient=args.recipient,
                end_time=args.end_time,
                subscriber=accounts.subscriber,
                data_provider=accounts.data_provider,
            ),
        )
        self._add_subscriber(accounts.data_provider, accounts.subscriber)

    def _renew(self, accounts: RenewSubscriptionAccounts, args: RenewSubscriptionArgs) -> None:
        self._require_owner(accounts.owner)
        self._require_nft(accounts.nft_token_account)
        self._require_quality(args.quality)

        subscription = self._get_subscription(accounts.subscription)
        if args.new_end_time <= self._now():
            self._reject(SubscriptionErrorCode.SUBSCRIPTION_ALREADY_ENDED)

        self._record_quality(accounts.quality_info, args.quality)
        subscription.recipient = args.new_recipient
        subscription.end_time = args.new_end_time

    def _cancel(self, accounts: CancelSubscriptionAccounts, args: CancelSubscriptionArgs) -> None:
        if accounts.nft_token_account is not None:
            self._require_nft(accounts.nft_token_account)
        self._require_quality(args.quality)

        subscription = self._get_subscription(accounts.subscription)
        if subscription.end_time > self._now():
            self._reject(SubscriptionErrorCode.ACTIVE_SUBSCRIPTION)

        if accounts.quality_info in self._accounts:
            self._record_quality(accounts.quality_info, args.quality)
        del self._accounts[accounts.subscription]
        self._remove_subscriber(accounts.data_provider, accounts.subscriber)

    def _initialize_quality_info(self, accounts: InitializeQualityInfoAccounts) -> None:
        if accounts.quality_info in self._accounts:
            raise AccountAlreadyInUseError(accounts.quality_info)
        self._accounts[accounts.quality_info] = (
            AccountKind.QUALITY_INFO,
            QualityInfoAccount(data_provider=accounts.data_provider),
        )
