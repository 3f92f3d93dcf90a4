"""Program-derived address computation for subscription manager accounts."""

from solders.pubkey import Pubkey

from .types import KeyLike, ProgramAddresses, to_pubkey


SEED_STATE = b"storage"
SEED_QUALITY = b"quality"
SEED_SUBSCRIPTION = b"subscription"
SEED_SUBSCRIBERS = b"subscribers"


def derive_state_address(program_id: KeyLike) -> Pubkey:
    program = to_pubkey(program_id, "program_id")
    address, _bump = Pubkey.find_program_address([SEED_STATE], program)
    return address


def derive_quality_address(program_id: KeyLike, data_provider: KeyLike) -> Pubkey:
    program = to_pubkey(program_id, "program_id")
    provider = to_pubkey(data_provider, "data_provider")
    address, _bump = Pubkey.find_program_address([SEED_QUALITY, bytes(provider)], program)
    return address


def derive_subscription_address(
    program_id: KeyLike,
    subscriber: KeyLike,
    data_provider: KeyLike,
) -> Pubkey:
    # Seed order is subscriber then provider.
    program = to_pubkey(program_id, "program_id")
    subscriber_key = to_pubkey(subscriber, "subscriber")
    provider = to_pubkey(data_provider, "data_provider")
    address, _bump = Pubkey.find_program_address(
        [SEED_SUBSCRIPTION, bytes(subscriber_key), bytes(provider)],
        program,
    )
    return address


def derive_subscribers_list_address(program_id: KeyLike, data_provider: KeyLike) -> Pubkey:
    program = to_pubkey(program_id, "program_id")
    provider = to_pubkey(data_provider, "data_provider")
    address, _bump = Pubkey.find_program_address([SEED_SUBSCRIBERS, bytes(provider)], program)
    return address


def derive_all(
    program_id: KeyLike,
    data_provider: KeyLike,
    subscriber: KeyLike,
) -> ProgramAddresses:
    """
    Derive all four addresses for a (provider, subscriber) pair.

    Raises:
        InvalidIdentifierError: If any key is malformed
    """
    return ProgramAddresses(
        state=derive_state_address(program_id),
        quality=derive_quality_address(program_id, data_provider),
        subscription=derive_subscription_address(program_id, subscriber, data_provider),
        subscribers_list=derive_subscribers_list_address(program_id, data_provider),
    )
