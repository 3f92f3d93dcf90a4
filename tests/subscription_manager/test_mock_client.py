"""
Mock Program Client Tests.

============================================================
PURPOSE
============================================================
Tests for the in-memory subscription program.

TEST CATEGORIES:
- Account reads
- Program rules per transition
- Error injection

============================================================
"""

import pytest
from solders.pubkey import Pubkey

from subscription_manager import (
    AccountAlreadyInUseError,
    AccountKind,
    AccountNotFoundError,
    CancelSubscriptionAccounts,
    CancelSubscriptionArgs,
    InitializeQualityInfoAccounts,
    InitializeQualityInfoArgs,
    MockConfig,
    MockProgramClient,
    ProgramClientError,
    RenewSubscriptionAccounts,
    RenewSubscriptionArgs,
    SubscribeAccounts,
    SubscribeArgs,
    TransitionName,
    TransportError,
    derive_all,
)


NOW = 1_700_000_000
DAY = 86400


def fixed_clock():
    return NOW


@pytest.fixture
def program():
    return MockProgramClient(config=MockConfig(clock=fixed_clock))


@pytest.fixture
def provider():
    return Pubkey.new_unique()


@pytest.fixture
def subscriber():
    return Pubkey.new_unique()


@pytest.fixture
def addresses(program, provider, subscriber):
    return derive_all(program.program_id, provider, subscriber)


def subscribe_accounts(program, addresses, provider, subscriber, owner=None, nft=None):
    return SubscribeAccounts(
        state=addresses.state,
        subscriber=subscriber,
        data_provider=provider,
        subscription=addresses.subscription,
        subscribers_list=addresses.subscribers_list,
        owner=owner or program.owner,
        nft_token_account=nft or Pubkey.new_unique(),
    )


def renew_accounts(program, addresses, provider, subscriber):
    return RenewSubscriptionAccounts(
        state=addresses.state,
        subscriber=subscriber,
        data_provider=provider,
        subscription=addresses.subscription,
        quality_info=addresses.quality,
        owner=program.owner,
        nft_token_account=Pubkey.new_unique(),
    )


def cancel_accounts(addresses, provider, subscriber):
    return CancelSubscriptionAccounts(
        subscriber=subscriber,
        data_provider=provider,
        subscription=addresses.subscription,
        quality_info=addresses.quality,
    )


def quality_accounts(addresses, provider, payer):
    return InitializeQualityInfoAccounts(
        quality_info=addresses.quality,
        data_provider=provider,
        payer=payer,
    )


# ============================================================
# READS
# ============================================================

class TestReads:
    """Tests for account reads."""

    @pytest.mark.asyncio
    async def test_state_seeded_with_owner(self, program, addresses):
        state = await program.fetch_account(addresses.state, AccountKind.STATE)

        assert state.owner == program.owner

    @pytest.mark.asyncio
    async def test_missing_account(self, program, addresses):
        with pytest.raises(AccountNotFoundError):
            await program.fetch_account(addresses.subscription, AccountKind.SUBSCRIPTION)

    @pytest.mark.asyncio
    async def test_kind_mismatch(self, program, addresses):
        with pytest.raises(ProgramClientError) as exc_info:
            await program.fetch_account(addresses.state, AccountKind.SUBSCRIPTION)

        assert exc_info.value.code == 3002

    @pytest.mark.asyncio
    async def test_fetch_returns_copy(self, program, provider, subscriber):
        address = program.seed_subscription(subscriber, provider, NOW + DAY)

        record = await program.fetch_account(address, AccountKind.SUBSCRIPTION)
        record.end_time = 0

        again = await program.fetch_account(address, AccountKind.SUBSCRIPTION)
        assert again.end_time == NOW + DAY

    @pytest.mark.asyncio
    async def test_list_accounts_by_kind(self, program, provider):
        first = program.seed_subscription(Pubkey.new_unique(), provider, NOW + DAY)
        second = program.seed_subscription(Pubkey.new_unique(), provider, NOW + DAY)

        listed = await program.list_accounts(AccountKind.SUBSCRIPTION)

        assert {address for address, _ in listed} == {first, second}

    @pytest.mark.asyncio
    async def test_seed_subscription_updates_list(self, program, provider, subscriber, addresses):
        program.seed_subscription(subscriber, provider, NOW + DAY)

        record = await program.fetch_account(addresses.subscribers_list, AccountKind.SUBSCRIBERS_LIST)

        assert record.subscribers == [subscriber]

    @pytest.mark.asyncio
    async def test_fetches_recorded(self, program, addresses):
        await program.fetch_account(addresses.state, AccountKind.STATE)

        assert program.fetches == [(addresses.state, AccountKind.STATE)]


# ============================================================
# SUBSCRIBE
# ============================================================

class TestSubscribe:
    """Tests for the subscribe transition."""

    @pytest.mark.asyncio
    async def test_creates_subscription(self, program, addresses, provider, subscriber):
        signature = await program.submit_transition(
            TransitionName.SUBSCRIBE,
            subscribe_accounts(program, addresses, provider, subscriber),
            SubscribeArgs(recipient="bot-1", end_time=NOW + 30 * DAY),
        )

        assert isinstance(signature, str) and signature
        record = await program.fetch_account(addresses.subscription, AccountKind.SUBSCRIPTION)
        assert record.recipient == "bot-1"
        assert record.end_time == NOW + 30 * DAY
        assert record.subscriber == subscriber
        assert program.submitted[0].success

    @pytest.mark.asyncio
    async def test_already_subscribed(self, program, addresses, provider, subscriber):
        program.seed_subscription(subscriber, provider, NOW + DAY)

        with pytest.raises(ProgramClientError) as exc_info:
            await program.submit_transition(
                TransitionName.SUBSCRIBE,
                subscribe_accounts(program, addresses, provider, subscriber),
                SubscribeArgs(recipient="bot-1", end_time=NOW + 30 * DAY),
            )

        assert exc_info.value.code == 6001
        assert program.submitted[0].error is exc_info.value
        assert program.submitted[0].signature is None

    @pytest.mark.asyncio
    async def test_wrong_owner(self, program, addresses, provider, subscriber):
        with pytest.raises(ProgramClientError) as exc_info:
            await program.submit_transition(
                TransitionName.SUBSCRIBE,
                subscribe_accounts(program, addresses, provider, subscriber, owner=Pubkey.new_unique()),
                SubscribeArgs(recipient="bot-1", end_time=NOW + 30 * DAY),
            )

        assert exc_info.value.code == 6008

    @pytest.mark.asyncio
    async def test_invalid_nft(self, provider, subscriber):
        valid = Pubkey.new_unique()
        program = MockProgramClient(config=MockConfig(clock=fixed_clock, valid_nft_accounts={valid}))
        addresses = derive_all(program.program_id, provider, subscriber)

        with pytest.raises(ProgramClientError) as exc_info:
            await program.submit_transition(
                TransitionName.SUBSCRIBE,
                subscribe_accounts(program, addresses, provider, subscriber),
                SubscribeArgs(recipient="bot-1", end_time=NOW + 30 * DAY),
            )

        assert exc_info.value.code == 6003

    @pytest.mark.asyncio
    async def test_period_too_short(self, program, addresses, provider, subscriber):
        with pytest.raises(ProgramClientError) as exc_info:
            await program.submit_transition(
                TransitionName.SUBSCRIBE,
                subscribe_accounts(program, addresses, provider, subscriber),
                SubscribeArgs(recipient="bot-1", end_time=NOW + DAY - 1),
            )

        assert exc_info.value.code == 6000

    @pytest.mark.asyncio
    async def test_rejects_mismatched_bindings(self, program, addresses, provider, subscriber):
        with pytest.raises(TypeError):
            await program.submit_transition(
                TransitionName.SUBSCRIBE,
                subscribe_accounts(program, addresses, provider, subscriber),
                CancelSubscriptionArgs(quality=1),
            )

        assert program.submitted == []


# ============================================================
# RENEW / CANCEL / QUALITY
# ============================================================

class TestRenew:
    """Tests for the renewSubscription transition."""

    @pytest.mark.asyncio
    async def test_requires_quality_info(self, program, addresses, provider, subscriber):
        program.seed_subscription(subscriber, provider, NOW + DAY)

        with pytest.raises(ProgramClientError) as exc_info:
            await program.submit_transition(
                TransitionName.RENEW_SUBSCRIPTION,
                renew_accounts(program, addresses, provider, subscriber),
                RenewSubscriptionArgs(new_recipient="bot-2", new_end_time=NOW + 60 * DAY, quality=80),
            )

        assert exc_info.value.code == 3012

    @pytest.mark.asyncio
    async def test_renews_and_rates(self, program, addresses, provider, subscriber):
        program.seed_subscription(subscriber, provider, NOW + DAY)
        program.seed_quality_info(provider)

        await program.submit_transition(
            TransitionName.RENEW_SUBSCRIPTION,
            renew_accounts(program, addresses, provider, subscriber),
            RenewSubscriptionArgs(new_recipient="bot-2", new_end_time=NOW + 60 * DAY, quality=80),
        )

        record = await program.fetch_account(addresses.subscription, AccountKind.SUBSCRIPTION)
        quality = await program.fetch_account(addresses.quality, AccountKind.QUALITY_INFO)
        assert record.recipient == "bot-2"
        assert record.end_time == NOW + 60 * DAY
        assert quality.rating_count == 1
        assert quality.average == 80

    @pytest.mark.asyncio
    async def test_not_found(self, program, addresses, provider, subscriber):
        program.seed_quality_info(provider)

        with pytest.raises(ProgramClientError) as exc_info:
            await program.submit_transition(
                TransitionName.RENEW_SUBSCRIPTION,
                renew_accounts(program, addresses, provider, subscriber),
                RenewSubscriptionArgs(new_recipient="bot-2", new_end_time=NOW + 60 * DAY, quality=80),
            )

        assert exc_info.value.code == 6004

    @pytest.mark.asyncio
    async def test_end_time_in_past(self, program, addresses, provider, subscriber):
        program.seed_subscription(subscriber, provider, NOW + DAY)
        program.seed_quality_info(provider)

        with pytest.raises(ProgramClientError) as exc_info:
            await program.submit_transition(
                TransitionName.RENEW_SUBSCRIPTION,
                renew_accounts(program, addresses, provider, subscriber),
                RenewSubscriptionArgs(new_recipient="bot-2", new_end_time=NOW, quality=80),
            )

        assert exc_info.value.code == 6006

    @pytest.mark.asyncio
    async def test_quality_out_of_range(self, program, addresses, provider, subscriber):
        program.seed_subscription(subscriber, provider, NOW + DAY)

        with pytest.raises(ProgramClientError) as exc_info:
            await program.submit_transition(
                TransitionName.RENEW_SUBSCRIPTION,
                renew_accounts(program, addresses, provider, subscriber),
                RenewSubscriptionArgs(new_recipient="bot-2", new_end_time=NOW + DAY, quality=101),
            )

        assert exc_info.value.code == 6005


class TestCancel:
    """Tests for the cancelSubscription transition."""

    @pytest.mark.asyncio
    async def test_active_subscription(self, program, addresses, provider, subscriber):
        program.seed_subscription(subscriber, provider, NOW + 1)

        with pytest.raises(ProgramClientError) as exc_info:
            await program.submit_transition(
                TransitionName.CANCEL_SUBSCRIPTION,
                cancel_accounts(addresses, provider, subscriber),
                CancelSubscriptionArgs(quality=50),
            )

        assert exc_info.value.code == 6007

    @pytest.mark.asyncio
    async def test_ended_subscription_removed(self, program, addresses, provider, subscriber):
        program.seed_subscription(subscriber, provider, NOW)

        await program.submit_transition(
            TransitionName.CANCEL_SUBSCRIPTION,
            cancel_accounts(addresses, provider, subscriber),
            CancelSubscriptionArgs(quality=50),
        )

        assert not program.has_account(addresses.subscription)
        subscribers = await program.fetch_account(addresses.subscribers_list, AccountKind.SUBSCRIBERS_LIST)
        assert subscribers.subscribers == []

    @pytest.mark.asyncio
    async def test_not_found(self, program, addresses, provider, subscriber):
        with pytest.raises(ProgramClientError) as exc_info:
            await program.submit_transition(
                TransitionName.CANCEL_SUBSCRIPTION,
                cancel_accounts(addresses, provider, subscriber),
                CancelSubscriptionArgs(quality=50),
            )

        assert exc_info.value.code == 6004


class TestInitializeQualityInfo:
    """Tests for the initializeQualityInfo transition."""

    @pytest.mark.asyncio
    async def test_creates_empty_record(self, program, addresses, provider, subscriber):
        await program.submit_transition(
            TransitionName.INITIALIZE_QUALITY_INFO,
            quality_accounts(addresses, provider, subscriber),
            InitializeQualityInfoArgs(),
        )

        quality = await program.fetch_account(addresses.quality, AccountKind.QUALITY_INFO)
        assert quality.data_provider == provider
        assert quality.rating_count == 0

    @pytest.mark.asyncio
    async def test_second_initialize_already_in_use(self, program, addresses, provider, subscriber):
        program.seed_quality_info(provider)

        with pytest.raises(AccountAlreadyInUseError):
            await program.submit_transition(
                TransitionName.INITIALIZE_QUALITY_INFO,
                quality_accounts(addresses, provider, subscriber),
                InitializeQualityInfoArgs(),
            )


# ============================================================
# ERROR INJECTION
# ============================================================

class TestErrorInjection:
    """Tests for injected failures."""

    @pytest.mark.asyncio
    async def test_inject_program_error_once(self, program, addresses, provider, subscriber):
        program.inject_program_error(6002)
        accounts = subscribe_accounts(program, addresses, provider, subscriber)
        args = SubscribeArgs(recipient="bot-1", end_time=NOW + 30 * DAY)

        with pytest.raises(ProgramClientError) as exc_info:
            await program.submit_transition(TransitionName.SUBSCRIBE, accounts, args)
        assert exc_info.value.code == 6002

        await program.submit_transition(TransitionName.SUBSCRIBE, accounts, args)
        assert [t.success for t in program.submitted] == [False, True]

    @pytest.mark.asyncio
    async def test_inject_for_specific_transition(self, program, addresses, provider, subscriber):
        program.inject_error(TransportError("boom"), TransitionName.CANCEL_SUBSCRIPTION)

        await program.submit_transition(
            TransitionName.SUBSCRIBE,
            subscribe_accounts(program, addresses, provider, subscriber),
            SubscribeArgs(recipient="bot-1", end_time=NOW + 30 * DAY),
        )

        assert program.submitted_names() == [TransitionName.SUBSCRIBE]

    @pytest.mark.asyncio
    async def test_fail_fetch(self, program, addresses):
        program.fail_fetch(addresses.state)

        with pytest.raises(ProgramClientError):
            await program.fetch_account(addresses.state, AccountKind.STATE)

    @pytest.mark.asyncio
    async def test_fail_list_once(self, program):
        program.fail_list(TransportError("getProgramAccounts timed out"))

        with pytest.raises(TransportError):
            await program.list_accounts(AccountKind.SUBSCRIPTION)

        assert await program.list_accounts(AccountKind.SUBSCRIPTION) == []
