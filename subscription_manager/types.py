"""
Subscription Manager - Core Types.

============================================================
PURPOSE
============================================================
Account records, derived addresses, status values and the
operation parameter types used by the orchestrator.

Account records mirror what the subscription program stores.
They are observed read-only by this package.

============================================================
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Union

from solders.pubkey import Pubkey

from .exceptions import InvalidIdentifierError


# Anything accepted where a public key is expected.
KeyLike = Union[Pubkey, str, bytes]

# Returns the current Unix time in seconds.
Clock = Callable[[], int]

SECONDS_PER_DAY = 24 * 60 * 60

PUBKEY_LENGTH = 32


def system_clock() -> int:
    """Current Unix time in whole seconds."""
    return int(time.time())


def to_pubkey(value: KeyLike, field_name: str = "identifier") -> Pubkey:
    """
    Coerce a key-like value to a Pubkey.

    Raises:
        InvalidIdentifierError: If value is not a 32-byte public key
    """
    if isinstance(value, Pubkey):
        return value
    if isinstance(value, (bytes, bytearray)):
        if len(value) != PUBKEY_LENGTH:
            raise InvalidIdentifierError(value, field_name)
        return Pubkey.from_bytes(bytes(value))
    if isinstance(value, str):
        try:
            return Pubkey.from_string(value.strip())
        except (ValueError, TypeError) as e:
            raise InvalidIdentifierError(value, field_name) from e
    raise InvalidIdentifierError(value, field_name)


# ============================================================
# ENUMS
# ============================================================

class SubscriptionStatus(Enum):
    """Lifecycle status derived from end time and now."""

    ACTIVE = "active"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


class AccountKind(Enum):
    """Account types owned by the subscription program."""

    STATE = "state"
    QUALITY_INFO = "qualityInfo"
    SUBSCRIPTION = "subscription"
    SUBSCRIBERS_LIST = "subscribersList"


# ============================================================
# DERIVED ADDRESSES
# ============================================================

@dataclass(frozen=True)
class ProgramAddresses:
    """The four program-derived addresses for one (provider, subscriber) pair."""

    state: Pubkey
    quality: Pubkey
    subscription: Pubkey
    subscribers_list: Pubkey


# ============================================================
# ACCOUNT RECORDS
# ============================================================

@dataclass
class StateAccount:
    """Global program state."""

    owner: Pubkey


@dataclass
class SubscriptionAccount:
    """One subscription between a subscriber and a data provider."""

    recipient: str
    """Delivery target chosen by the subscriber."""

    end_time: int
    """Unix timestamp in seconds."""

    subscriber: Pubkey
    data_provider: Pubkey


@dataclass
class QualityInfoAccount:
    """Aggregate quality score for a data provider."""

    data_provider: Pubkey
    total_quality: int = 0
    rating_count: int = 0

    @property
    def average(self) -> float:
        if self.rating_count == 0:
            return 0.0
        return self.total_quality / self.rating_count


@dataclass
class SubscribersListAccount:
    """Subscribers that have ever subscribed to a provider."""

    data_provider: Pubkey
    subscribers: List[Pubkey] = field(default_factory=list)


# ============================================================
# OPERATION PARAMETERS
# ============================================================

@dataclass
class CreateSubscriptionParams:
    """Parameters for creating a subscription."""

    data_provider: KeyLike
    recipient: str
    duration_in_days: int
    nft_token_account: KeyLike
    """Eligibility proof."""


@dataclass
class RenewParams:
    """Parameters for renewing a subscription."""

    data_provider: KeyLike
    new_recipient: str
    new_end_time: int
    quality_score: int
    nft_token_account: KeyLike


@dataclass
class CancelParams:
    """Parameters for cancelling a subscription."""

    data_provider: KeyLike
    quality_score: int
    nft_token_account: Optional[KeyLike] = None


# ============================================================
# QUERY RESULTS
# ============================================================

@dataclass
class SubscriptionWithStatus:
    """A live subscription record with its computed status."""

    subscription: SubscriptionAccount
    subscription_address: Pubkey
    status: SubscriptionStatus
