"""Subscription status classification."""

from .types import SECONDS_PER_DAY, SubscriptionStatus


EXPIRING_SOON_WINDOW_SECONDS = 7 * SECONDS_PER_DAY


def classify(end_time: int, now: int) -> SubscriptionStatus:
    """
    Classify a subscription by its end time.

    An end time equal to now is already expired.
    """
    remaining = int(end_time) - int(now)
    if remaining <= 0:
        return SubscriptionStatus.EXPIRED
    if remaining <= EXPIRING_SOON_WINDOW_SECONDS:
        return SubscriptionStatus.EXPIRING_SOON
    return SubscriptionStatus.ACTIVE
