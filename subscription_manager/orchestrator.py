"""
Subscription Manager - Orchestrator.

============================================================
PURPOSE
============================================================
Coordinates the subscription lifecycle against the on-chain
subscription program.

LIFECYCLE (per subscriber/provider pair):

    NonExistent ──create──► Active / ExpiringSoon / Expired
                                  │            (by elapsed time)
                                  ▼
                                renew ──► Active
                                  │
                                  ▼
                                cancel ──► NonExistent

renew and cancel on NonExistent are rejected by the program.

FAILURE POLICY:
- Mutating failures are translated and raised, never retried
- "already in use" from the quality-info pre-step is success
- Unreadable per-subscriber records are skipped when counting
- A missing subscribers list reads as an empty list

============================================================
"""

import logging
import time
from typing import List, Optional

from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from .addresses import (
    derive_all,
    derive_quality_address,
    derive_subscribers_list_address,
    derive_subscription_address,
)
from .clients.base import ProgramClient, SigningIdentity
from .clients.rpc import SolanaRpcConnection
from .config import NFT_MINT_ENV, SubscriptionManagerConfig
from .errors import (
    SubscriptionError,
    SubscriptionErrorCode,
    SubscriptionException,
    create_transport_error,
    error_for_code,
    is_already_initialized,
    translate_error,
)
from .exceptions import AccountNotFoundError, ConfigurationError, WalletNotConnectedError
from .logging_utils import AuditLog, SubscriptionEventLogger, get_audit_log, shorten_key
from .metrics import OperationMetrics
from .status import classify
from .transitions import (
    CancelSubscriptionAccounts,
    CancelSubscriptionArgs,
    InitializeQualityInfoAccounts,
    InitializeQualityInfoArgs,
    RenewSubscriptionAccounts,
    RenewSubscriptionArgs,
    SubscribeAccounts,
    SubscribeArgs,
    TransitionAccounts,
    TransitionArgs,
    TransitionName,
    bindings_to_dict,
)
from .types import (
    SECONDS_PER_DAY,
    AccountKind,
    CancelParams,
    Clock,
    CreateSubscriptionParams,
    KeyLike,
    ProgramAddresses,
    QualityInfoAccount,
    RenewParams,
    SubscriptionAccount,
    SubscriptionStatus,
    SubscriptionWithStatus,
    system_clock,
    to_pubkey,
)


logger = logging.getLogger(__name__)


MIN_QUALITY_SCORE = 0
MAX_QUALITY_SCORE = 100


class SubscriptionOrchestrator:
    """
    Create, renew, cancel and query subscriptions.

    Holds its collaborators by reference; construct one per
    program client / wallet pair. Holds no per-call state, so
    concurrent calls are safe and race only at the program.
    """

    def __init__(
        self,
        client: ProgramClient,
        identity: SigningIdentity,
        config: Optional[SubscriptionManagerConfig] = None,
        clock: Clock = system_clock,
        connection: Optional[SolanaRpcConnection] = None,
        event_logger: Optional[SubscriptionEventLogger] = None,
        metrics: Optional[OperationMetrics] = None,
        audit_log: Optional[AuditLog] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            client: Program client for transitions and account reads
            identity: Connected wallet acting as subscriber and payer
            config: Deployment config (read from the environment if None)
            clock: Source of the current Unix time in seconds
            connection: RPC connection for non-program lookups
            event_logger: Structured event sink
            metrics: Operation metrics collector
            audit_log: Transition audit trail

        Raises:
            ConfigurationError: If config is missing or disagrees with the client
        """
        self._config = config or SubscriptionManagerConfig.from_env()

        if self._config.program_id != client.program_id:
            raise ConfigurationError(
                f"Client program {client.program_id} does not match configured "
                f"program {self._config.program_id}",
                config_key="program_id",
            )

        self._client = client
        self._identity = identity
        self._clock = clock
        self._connection = connection
        self._owns_connection = False
        self._events = event_logger or SubscriptionEventLogger()
        self._metrics = metrics or OperationMetrics()
        self._audit = audit_log or get_audit_log()

    @property
    def config(self) -> SubscriptionManagerConfig:
        return self._config

    @property
    def metrics(self) -> OperationMetrics:
        return self._metrics

    def _now(self) -> int:
        return int(self._clock())

    def _require_subscriber(self) -> Pubkey:
        subscriber = self._identity.public_key
        if subscriber is None:
            raise WalletNotConnectedError()
        return subscriber

    def get_program_addresses(self, data_provider: KeyLike, subscriber: KeyLike) -> ProgramAddresses:
        """Derive the state, quality, subscription and subscribers-list addresses."""
        return derive_all(self._config.program_id, data_provider, subscriber)

    async def close(self) -> None:
        if self._owns_connection and self._connection is not None:
            await self._connection.close()
            self._connection = None

    # --------------------------------------------------------
    # INTERNALS
    # --------------------------------------------------------

    def _fail(self, operation: str, raw: Exception, started: float) -> SubscriptionException:
        error = translate_error(raw, operation)
        logger.error(f"Error in {operation}: {error}")
        self._metrics.record(operation, _elapsed_ms(started), False, error.kind)
        return SubscriptionException(error)

    def _reject(self, error: SubscriptionError, started: float) -> SubscriptionException:
        logger.warning(f"Rejected {error.operation}: {error}")
        self._metrics.record(error.operation, _elapsed_ms(started), False, error.kind)
        return SubscriptionException(error)

    def _succeed(self, operation: str, started: float) -> None:
        self._metrics.record(operation, _elapsed_ms(started), True)

    def _check_quality(self, operation: str, quality_score: int, started: float) -> None:
        if not MIN_QUALITY_SCORE <= quality_score <= MAX_QUALITY_SCORE:
            raise self._reject(
                error_for_code(
                    SubscriptionErrorCode.QUALITY_OUT_OF_RANGE,
                    operation,
                    f"quality score {quality_score} outside {MIN_QUALITY_SCORE}..{MAX_QUALITY_SCORE}",
                ),
                started,
            )

    async def _submit(
        self,
        operation: str,
        name: TransitionName,
        accounts: TransitionAccounts,
        args: TransitionArgs,
        subscriber: Pubkey,
        data_provider: Pubkey,
    ) -> str:
        """Submit one transition, logging and auditing the outcome. Raw errors propagate."""
        started = time.perf_counter()
        try:
            signature = await self._client.submit_transition(name, accounts, args)
        except Exception as e:
            latency_ms = _elapsed_ms(started)
            error = translate_error(e, operation)
            self._events.log_transition(
                operation, name.value, subscriber, data_provider,
                error=error, latency_ms=latency_ms,
            )
            self._audit.record(
                operation, name.value, bindings_to_dict(accounts), _args_to_dict(args),
                success=False, error_kind=error.kind.value, latency_ms=latency_ms,
            )
            raise

        latency_ms = _elapsed_ms(started)
        self._events.log_transition(
            operation, name.value, subscriber, data_provider,
            signature=signature, latency_ms=latency_ms,
        )
        self._audit.record(
            operation, name.value, bindings_to_dict(accounts), _args_to_dict(args),
            success=True, signature=signature, latency_ms=latency_ms,
        )
        return signature

    async def _fetch_state_owner(self, addresses: ProgramAddresses) -> Pubkey:
        state = await self._client.fetch_account(addresses.state, AccountKind.STATE)
        return state.owner

    async def _ensure_quality_info(
        self,
        operation: str,
        addresses: ProgramAddresses,
        data_provider: Pubkey,
        payer: Pubkey,
    ) -> bool:
        """
        Create the provider's quality record if it does not exist.

        Only a not-found read triggers initialization; any other read
        failure propagates so a transient error is never mistaken for
        absence. An "already in use" rejection means another caller won
        the race, which is as good as success.

        Returns:
            True if this call initialized the record
        """
        try:
            await self._client.fetch_account(addresses.quality, AccountKind.QUALITY_INFO)
            return False
        except AccountNotFoundError:
            logger.info(f"Quality info missing for provider {shorten_key(data_provider)}, initializing")

        accounts = InitializeQualityInfoAccounts(
            quality_info=addresses.quality,
            data_provider=data_provider,
            payer=payer,
        )
        try:
            await self._submit(
                operation,
                TransitionName.INITIALIZE_QUALITY_INFO,
                accounts,
                InitializeQualityInfoArgs(),
                payer,
                data_provider,
            )
        except Exception as e:
            if not is_already_initialized(e):
                raise
            logger.info(f"Quality info for {shorten_key(data_provider)} already initialized")
            return False
        return True

    def _skip_unreadable_subscription(self, subscriber: Pubkey, address: Pubkey, error: Exception) -> None:
        # Partial-failure tolerance: an unreadable record counts as not subscribed.
        logger.debug(
            f"Skipping subscriber {shorten_key(subscriber)}: subscription "
            f"{shorten_key(address)} unreadable ({error})"
        )

    async def _get_connection(self) -> SolanaRpcConnection:
        if self._connection is None:
            self._connection = SolanaRpcConnection(
                rpc_url=self._config.rpc_url,
                timeout=self._config.request_timeout_seconds,
            )
            self._owns_connection = True
        return self._connection

    # --------------------------------------------------------
    # TRANSITIONS
    # --------------------------------------------------------

    async def create_subscription(self, params: CreateSubscriptionParams) -> str:
        """
        Create a subscription ending `duration_in_days` from now.

        Returns:
            Transaction signature

        Raises:
            WalletNotConnectedError: If no wallet is connected
            InvalidIdentifierError: If a key is malformed
            SubscriptionException: ALREADY_SUBSCRIBED, INVALID_NFT_HOLDER,
                PERIOD_TOO_SHORT, or UNKNOWN for transport failures
        """
        operation = "create_subscription"
        started = time.perf_counter()

        subscriber = self._require_subscriber()
        data_provider = to_pubkey(params.data_provider, "data_provider")
        nft_token_account = to_pubkey(params.nft_token_account, "nft_token_account")
        addresses = self.get_program_addresses(data_provider, subscriber)

        try:
            owner = await self._fetch_state_owner(addresses)
            end_time = self._now() + int(params.duration_in_days) * SECONDS_PER_DAY

            logger.debug(
                f"Creating subscription: subscriber={shorten_key(subscriber)}, "
                f"provider={shorten_key(data_provider)}, owner={shorten_key(owner)}, "
                f"nft={shorten_key(nft_token_account)}, end_time={end_time}"
            )

            signature = await self._submit(
                operation,
                TransitionName.SUBSCRIBE,
                SubscribeAccounts(
                    state=addresses.state,
                    subscriber=subscriber,
                    data_provider=data_provider,
                    subscription=addresses.subscription,
                    subscribers_list=addresses.subscribers_list,
                    owner=owner,
                    nft_token_account=nft_token_account,
                ),
                SubscribeArgs(recipient=params.recipient, end_time=end_time),
                subscriber,
                data_provider,
            )
        except Exception as e:
            raise self._fail(operation, e, started) from e

        self._succeed(operation, started)
        return signature

    async def renew_subscription(self, params: RenewParams) -> str:
        """
        Renew a subscription, initializing the provider's quality record first if needed.

        Safe to call again after an interruption between the two steps.

        Returns:
            Transaction signature of the renewal

        Raises:
            WalletNotConnectedError: If no wallet is connected
            SubscriptionException: SUBSCRIPTION_NOT_FOUND, SUBSCRIPTION_ALREADY_ENDED,
                QUALITY_OUT_OF_RANGE, NOT_OWNER, INVALID_NFT_HOLDER or UNKNOWN
        """
        operation = "renew_subscription"
        started = time.perf_counter()

        subscriber = self._require_subscriber()
        data_provider = to_pubkey(params.data_provider, "data_provider")
        nft_token_account = to_pubkey(params.nft_token_account, "nft_token_account")
        self._check_quality(operation, params.quality_score, started)
        addresses = self.get_program_addresses(data_provider, subscriber)

        try:
            await self._ensure_quality_info(operation, addresses, data_provider, subscriber)

            owner = await self._fetch_state_owner(addresses)

            signature = await self._submit(
                operation,
                TransitionName.RENEW_SUBSCRIPTION,
                RenewSubscriptionAccounts(
                    state=addresses.state,
                    subscriber=subscriber,
                    data_provider=data_provider,
                    subscription=addresses.subscription,
                    quality_info=addresses.quality,
                    owner=owner,
                    nft_token_account=nft_token_account,
                ),
                RenewSubscriptionArgs(
                    new_recipient=params.new_recipient,
                    new_end_time=int(params.new_end_time),
                    quality=params.quality_score,
                ),
                subscriber,
                data_provider,
            )
        except Exception as e:
            raise self._fail(operation, e, started) from e

        self._succeed(operation, started)
        return signature

    async def cancel_subscription(self, params: CancelParams) -> str:
        """
        Cancel a subscription.

        Raises:
            WalletNotConnectedError: If no wallet is connected
            SubscriptionException: ACTIVE_SUBSCRIPTION, SUBSCRIPTION_NOT_FOUND,
                QUALITY_OUT_OF_RANGE or UNKNOWN
        """
        operation = "cancel_subscription"
        started = time.perf_counter()

        subscriber = self._require_subscriber()
        data_provider = to_pubkey(params.data_provider, "data_provider")
        nft_token_account = None
        if params.nft_token_account is not None:
            nft_token_account = to_pubkey(params.nft_token_account, "nft_token_account")
        self._check_quality(operation, params.quality_score, started)
        addresses = self.get_program_addresses(data_provider, subscriber)

        try:
            signature = await self._submit(
                operation,
                TransitionName.CANCEL_SUBSCRIPTION,
                CancelSubscriptionAccounts(
                    subscriber=subscriber,
                    data_provider=data_provider,
                    subscription=addresses.subscription,
                    quality_info=addresses.quality,
                    nft_token_account=nft_token_account,
                ),
                CancelSubscriptionArgs(quality=params.quality_score),
                subscriber,
                data_provider,
            )
        except Exception as e:
            raise self._fail(operation, e, started) from e

        self._succeed(operation, started)
        return signature

    # --------------------------------------------------------
    # QUERIES
    # --------------------------------------------------------

    def get_subscription_status(self, end_time: int, now: Optional[int] = None) -> SubscriptionStatus:
        """Classify an end time against `now` (the injected clock if omitted)."""
        return classify(end_time, self._now() if now is None else now)

    async def get_agent_subscribers(self, data_provider: KeyLike) -> List[Pubkey]:
        """
        List subscribers recorded for a provider.

        A provider without a subscribers list has no subscribers; that is
        not an error. Other read failures are raised.
        """
        operation = "get_agent_subscribers"
        started = time.perf_counter()

        provider = to_pubkey(data_provider, "data_provider")
        address = derive_subscribers_list_address(self._config.program_id, provider)

        try:
            record = await self._client.fetch_account(address, AccountKind.SUBSCRIBERS_LIST)
        except AccountNotFoundError:
            logger.debug(f"No subscribers list for {shorten_key(provider)}, returning empty list")
            self._succeed(operation, started)
            return []
        except Exception as e:
            raise self._fail(operation, e, started) from e

        subscribers = list(record.subscribers)
        self._events.log_query(
            operation, provider, result_count=len(subscribers), latency_ms=_elapsed_ms(started)
        )
        self._succeed(operation, started)
        return subscribers

    async def get_active_subscriptions_for_agent(self, data_provider: KeyLike) -> int:
        """
        Count a provider's subscribers whose subscription has not ended.

        Subscribers whose record cannot be read are skipped rather than
        failing the whole count.
        """
        operation = "get_active_subscriptions_for_agent"
        started = time.perf_counter()

        provider = to_pubkey(data_provider, "data_provider")
        subscribers = await self.get_agent_subscribers(provider)
        now = self._now()

        active = 0
        skipped = 0
        for subscriber in subscribers:
            address = derive_subscription_address(self._config.program_id, subscriber, provider)
            try:
                subscription = await self._client.fetch_account(address, AccountKind.SUBSCRIPTION)
            except Exception as e:
                self._skip_unreadable_subscription(subscriber, address, e)
                skipped += 1
                continue

            if subscription.end_time > now:
                active += 1

        self._events.log_query(
            operation, provider, result_count=active, skipped=skipped, latency_ms=_elapsed_ms(started)
        )
        self._succeed(operation, started)
        return active

    async def get_all_subscriptions_for_user(self, subscriber: KeyLike) -> List[SubscriptionWithStatus]:
        """
        List a subscriber's subscriptions that have not ended, with their status.
        """
        operation = "get_all_subscriptions_for_user"
        started = time.perf_counter()

        subscriber_key = to_pubkey(subscriber, "subscriber")

        try:
            accounts = await self._client.list_accounts(AccountKind.SUBSCRIPTION)
        except Exception as e:
            raise self._fail(operation, e, started) from e

        now = self._now()
        result = [
            SubscriptionWithStatus(
                subscription=record,
                subscription_address=address,
                status=classify(record.end_time, now),
            )
            for address, record in accounts
            if record.subscriber == subscriber_key and record.end_time > now
        ]

        logger.debug(f"Found {len(accounts)} subscription accounts, {len(result)} live for {shorten_key(subscriber_key)}")
        self._events.log_query(
            operation, subscriber_key, result_count=len(result), latency_ms=_elapsed_ms(started)
        )
        self._succeed(operation, started)
        return result

    async def get_subscription_state(self, subscription_address: KeyLike) -> SubscriptionAccount:
        """Fetch a subscription record by its address."""
        operation = "get_subscription_state"
        started = time.perf_counter()

        address = to_pubkey(subscription_address, "subscription_address")
        try:
            record = await self._client.fetch_account(address, AccountKind.SUBSCRIPTION)
        except Exception as e:
            raise self._fail(operation, e, started) from e

        self._succeed(operation, started)
        return record

    async def get_quality_info(self, data_provider: KeyLike) -> QualityInfoAccount:
        """Fetch a provider's quality record."""
        operation = "get_quality_info"
        started = time.perf_counter()

        provider = to_pubkey(data_provider, "data_provider")
        address = derive_quality_address(self._config.program_id, provider)
        try:
            record = await self._client.fetch_account(address, AccountKind.QUALITY_INFO)
        except Exception as e:
            raise self._fail(operation, e, started) from e

        self._succeed(operation, started)
        return record

    async def get_provider_token_account(self, provider_address: KeyLike) -> Pubkey:
        """
        Find the provider's token account for the registration NFT.

        Raises:
            ConfigurationError: If no NFT mint is configured
            SubscriptionException: If the account does not exist or the lookup fails
        """
        operation = "get_provider_token_account"
        started = time.perf_counter()

        if self._config.nft_mint is None:
            raise ConfigurationError("NFT token address not configured", config_key=NFT_MINT_ENV)

        provider = to_pubkey(provider_address, "provider_address")
        token_account = get_associated_token_address(provider, self._config.nft_mint)

        try:
            connection = await self._get_connection()
            exists = await connection.account_exists(token_account)
        except Exception as e:
            raise self._fail(operation, e, started) from e

        if not exists:
            raise self._reject(
                create_transport_error("Provider does not have the required NFT", operation),
                started,
            )

        self._succeed(operation, started)
        return token_account


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def _args_to_dict(args: TransitionArgs) -> dict:
    return dict(vars(args))
