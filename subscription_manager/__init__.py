"""
Subscription Manager Package.

============================================================
PURPOSE
============================================================
Client-side adapter for the on-chain subscription program.

OPERATIONS:
- create_subscription / renew_subscription / cancel_subscription
- get_subscription_status
- get_agent_subscribers / get_active_subscriptions_for_agent
- get_all_subscriptions_for_user

COMPONENTS:
- SubscriptionOrchestrator: Lifecycle orchestration
- ProgramClient / MockProgramClient: Program access
- SolanaRpcConnection: Raw JSON-RPC account lookups
- SubscriptionManagerConfig: Environment configuration

ERROR HANDLING:
- SubscriptionError: Unified error representation
- ErrorKind: Program error kinds plus UNKNOWN
- translate_error: Raw failure -> SubscriptionError

============================================================
"""

# Types
from .types import (
    KeyLike,
    Clock,
    SECONDS_PER_DAY,
    system_clock,
    to_pubkey,
    SubscriptionStatus,
    AccountKind,
    ProgramAddresses,
    StateAccount,
    SubscriptionAccount,
    QualityInfoAccount,
    SubscribersListAccount,
    CreateSubscriptionParams,
    RenewParams,
    CancelParams,
    SubscriptionWithStatus,
)

# Addresses
from .addresses import (
    derive_state_address,
    derive_quality_address,
    derive_subscription_address,
    derive_subscribers_list_address,
    derive_all,
)

# Status
from .status import EXPIRING_SOON_WINDOW_SECONDS, classify

# Transitions
from .transitions import (
    TransitionName,
    SubscribeAccounts,
    SubscribeArgs,
    RenewSubscriptionAccounts,
    RenewSubscriptionArgs,
    CancelSubscriptionAccounts,
    CancelSubscriptionArgs,
    InitializeQualityInfoAccounts,
    InitializeQualityInfoArgs,
    validate_bindings,
)

# Errors
from .errors import (
    SubscriptionErrorCode,
    ErrorKind,
    SubscriptionError,
    SubscriptionException,
    PROGRAM_ERROR_MAP,
    error_for_code,
    translate_error,
    is_already_initialized,
    create_transport_error,
    create_timeout_error,
)
from .exceptions import (
    SubscriptionManagerError,
    ConfigurationError,
    InvalidIdentifierError,
    WalletNotConnectedError,
    ProgramClientError,
    AccountNotFoundError,
    AccountAlreadyInUseError,
    TransportError,
)

# Config
from .config import SubscriptionManagerConfig

# Clients
from .clients import (
    ProgramClient,
    SigningIdentity,
    StaticIdentity,
    MockProgramClient,
    MockConfig,
    SolanaRpcConnection,
)

# Logging / metrics
from .logging_utils import (
    SubscriptionEventLogger,
    AuditLog,
    get_audit_log,
    shorten_key,
)
from .metrics import OperationMetrics, LatencyStats

# Orchestrator
from .orchestrator import SubscriptionOrchestrator


__all__ = [
    # Types
    "KeyLike",
    "Clock",
    "SECONDS_PER_DAY",
    "system_clock",
    "to_pubkey",
    "SubscriptionStatus",
    "AccountKind",
    "ProgramAddresses",
    "StateAccount",
    "SubscriptionAccount",
    "QualityInfoAccount",
    "SubscribersListAccount",
    "CreateSubscriptionParams",
    "RenewParams",
    "CancelParams",
    "SubscriptionWithStatus",
    # Addresses
    "derive_state_address",
    "derive_quality_address",
    "derive_subscription_address",
    "derive_subscribers_list_address",
    "derive_all",
    # Status
    "EXPIRING_SOON_WINDOW_SECONDS",
    "classify",
    # Transitions
    "TransitionName",
    "SubscribeAccounts",
    "SubscribeArgs",
    "RenewSubscriptionAccounts",
    "RenewSubscriptionArgs",
    "CancelSubscriptionAccounts",
    "CancelSubscriptionArgs",
    "InitializeQualityInfoAccounts",
    "InitializeQualityInfoArgs",
    "validate_bindings",
    # Errors
    "SubscriptionErrorCode",
    "ErrorKind",
    "SubscriptionError",
    "SubscriptionException",
    "PROGRAM_ERROR_MAP",
    "error_for_code",
    "translate_error",
    "is_already_initialized",
    "create_transport_error",
    "create_timeout_error",
    "SubscriptionManagerError",
    "ConfigurationError",
    "InvalidIdentifierError",
    "WalletNotConnectedError",
    "ProgramClientError",
    "AccountNotFoundError",
    "AccountAlreadyInUseError",
    "TransportError",
    # Config
    "SubscriptionManagerConfig",
    # Clients
    "ProgramClient",
    "SigningIdentity",
    "StaticIdentity",
    "MockProgramClient",
    "MockConfig",
    "SolanaRpcConnection",
    # Logging / metrics
    "SubscriptionEventLogger",
    "AuditLog",
    "get_audit_log",
    "shorten_key",
    "OperationMetrics",
    "LatencyStats",
    # Orchestrator
    "SubscriptionOrchestrator",
]
