"""
Subscription Manager - Transition Schema.

============================================================
PURPOSE
============================================================
Typed account bindings and arguments for every transition
the subscription program accepts.

TRANSITIONS:
- subscribe
- renewSubscription
- cancelSubscription
- initializeQualityInfo

Each transition has one frozen accounts dataclass and one
frozen args dataclass. validate_bindings() rejects a pair
that does not belong to the named transition, so a client
never sees a mismatched request.

============================================================
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type, Union

from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from spl.token.constants import TOKEN_PROGRAM_ID


class TransitionName(Enum):
    """Instruction names in the program's schema."""

    SUBSCRIBE = "subscribe"
    RENEW_SUBSCRIPTION = "renewSubscription"
    CANCEL_SUBSCRIPTION = "cancelSubscription"
    INITIALIZE_QUALITY_INFO = "initializeQualityInfo"


# ============================================================
# SUBSCRIBE
# ============================================================

@dataclass(frozen=True)
class SubscribeAccounts:
    state: Pubkey
    subscriber: Pubkey
    data_provider: Pubkey
    subscription: Pubkey
    subscribers_list: Pubkey
    owner: Pubkey
    nft_token_account: Pubkey
    system_program: Pubkey = SYSTEM_PROGRAM_ID
    token_program: Pubkey = TOKEN_PROGRAM_ID


@dataclass(frozen=True)
class SubscribeArgs:
    recipient: str
    end_time: int


# ============================================================
# RENEW SUBSCRIPTION
# ============================================================

@dataclass(frozen=True)
class RenewSubscriptionAccounts:
    state: Pubkey
    subscriber: Pubkey
    data_provider: Pubkey
    subscription: Pubkey
    quality_info: Pubkey
    owner: Pubkey
    nft_token_account: Pubkey
    system_program: Pubkey = SYSTEM_PROGRAM_ID
    token_program: Pubkey = TOKEN_PROGRAM_ID


@dataclass(frozen=True)
class RenewSubscriptionArgs:
    new_recipient: str
    new_end_time: int
    quality: int


# ============================================================
# CANCEL SUBSCRIPTION
# ============================================================

@dataclass(frozen=True)
class CancelSubscriptionAccounts:
    subscriber: Pubkey
    data_provider: Pubkey
    subscription: Pubkey
    quality_info: Pubkey
    nft_token_account: Optional[Pubkey] = None
    token_program: Pubkey = TOKEN_PROGRAM_ID


@dataclass(frozen=True)
class CancelSubscriptionArgs:
    quality: int


# ============================================================
# INITIALIZE QUALITY INFO
# ============================================================

@dataclass(frozen=True)
class InitializeQualityInfoAccounts:
    quality_info: Pubkey
    data_provider: Pubkey
    payer: Pubkey
    system_program: Pubkey = SYSTEM_PROGRAM_ID


@dataclass(frozen=True)
class InitializeQualityInfoArgs:
    pass


TransitionAccounts = Union[
    SubscribeAccounts,
    RenewSubscriptionAccounts,
    CancelSubscriptionAccounts,
    InitializeQualityInfoAccounts,
]

TransitionArgs = Union[
    SubscribeArgs,
    RenewSubscriptionArgs,
    CancelSubscriptionArgs,
    InitializeQualityInfoArgs,
]


TRANSITION_SCHEMA: Dict[TransitionName, Tuple[Type[Any], Type[Any]]] = {
    TransitionName.SUBSCRIBE: (SubscribeAccounts, SubscribeArgs),
    TransitionName.RENEW_SUBSCRIPTION: (RenewSubscriptionAccounts, RenewSubscriptionArgs),
    TransitionName.CANCEL_SUBSCRIPTION: (CancelSubscriptionAccounts, CancelSubscriptionArgs),
    TransitionName.INITIALIZE_QUALITY_INFO: (InitializeQualityInfoAccounts, InitializeQualityInfoArgs),
}


def validate_bindings(
    name: TransitionName,
    accounts: TransitionAccounts,
    args: TransitionArgs,
) -> None:
    """
    Check that accounts and args match the named transition.

    Raises:
        TypeError: On an unknown transition or a mismatched binding
    """
    if name not in TRANSITION_SCHEMA:
        raise TypeError(f"Unknown transition: {name!r}")

    accounts_type, args_type = TRANSITION_SCHEMA[name]
    if type(accounts) is not accounts_type:
        raise TypeError(
            f"{name.value} expects {accounts_type.__name__}, got {type(accounts).__name__}"
        )
    if type(args) is not args_type:
        raise TypeError(
            f"{name.value} expects {args_type.__name__}, got {type(args).__name__}"
        )

    for f in fields(accounts):
        value = getattr(accounts, f.name)
        # Only bindings declared with a None default are optional.
        if value is None and f.default is not None:
            raise TypeError(f"{name.value}: missing account binding '{f.name}'")
        if value is not None and not isinstance(value, Pubkey):
            raise TypeError(f"{name.value}: account '{f.name}' must be a Pubkey")


def bindings_to_dict(accounts: TransitionAccounts) -> Dict[str, Optional[str]]:
    """Account bindings as base58 strings, for logging and auditing."""
    return {
        f.name: (str(getattr(accounts, f.name)) if getattr(accounts, f.name) is not None else None)
        for f in fields(accounts)
    }
