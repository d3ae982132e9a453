"""
User listing and subscription metrics.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from shared.constants import INITIAL_FREE_CREDITS, TIER_MONTHLY_PRICES, TIER_SORT_ORDER
from shared.types import SubscriptionTier, User

DAY_MILLIS = 24 * 60 * 60 * 1000


def timestamp_millis(value: Any) -> int:
    """
    Milliseconds since the epoch for a Firestore timestamp, a datetime, a
    `{"seconds": ...}` mapping or a number; 0 when missing.
    """
    if value is None:
        return 0
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, dict):
        seconds = value.get("seconds") or value.get("_seconds") or 0
        return int(seconds * 1000)
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def tier_rank(tier: Optional[str]) -> int:
    rank = TIER_SORT_ORDER.get((tier or SubscriptionTier.FREE).lower())
    return TIER_SORT_ORDER["free"] if rank is None else rank


SORT_KEYS: dict[str, Callable[[User], Any]] = {
    "id": lambda u: u.id or "",
    "subscriptionTier": lambda u: tier_rank(u.subscription_tier),
    "freeCredits": lambda u: u.free_credits or 0,
    "subscriptionCredits": lambda u: u.subscription_credits or 0,
    "consumableCredits": lambda u: u.consumable_credits or 0,
    "totalCredits": lambda u: u.total_credits,
    "createdAt": lambda u: timestamp_millis(u.created_at),
    "updatedAt": lambda u: timestamp_millis(u.updated_at),
}


def sort_users(
    users: list[User], column: str = "createdAt", direction: str = "desc"
) -> list[User]:
    if column not in SORT_KEYS:
        raise ValueError(f"Unknown sort column: {column}")
    if direction not in ("asc", "desc"):
        raise ValueError(f"Unknown sort direction: {direction}")
    return sorted(users, key=SORT_KEYS[column], reverse=direction == "desc")


@dataclass
class UserMetrics:
    total_users: int
    total_subscriptions: int
    ultra_users: int
    pro_users: int
    basic_users: int
    free_users: int
    total_mrr: float
    basic_mrr: float
    pro_mrr: float
    ultra_mrr: float
    arr: float
    arpu: float
    conversion_rate: float
    total_free_credits_remaining: int
    total_subscription_credits: int
    total_consumable_credits: int
    total_credits_distributed: int
    users_who_used_free_credits: int
    total_free_credits_used: int
    new_users_last_7_days: int
    new_users_last_30_days: int
    average_credits_per_user: float
    avg_credits_per_subscription_user: float


def compute_metrics(users: list[User], now: Optional[float] = None) -> UserMetrics:
    """
    Aggregates tier counts, recurring revenue and credit usage.

    Free-credit usage is an estimate: every free user is assumed to have
    started with INITIAL_FREE_CREDITS.
    """
    now_millis = int((time.time() if now is None else now) * 1000)
    counts = {tier.value: 0 for tier in SubscriptionTier}
    for user in users:
        if user.tier in counts:
            counts[user.tier] += 1

    paid = counts["ultra"] + counts["pro"] + counts["basic"]
    basic_mrr = counts["basic"] * TIER_MONTHLY_PRICES["basic"]
    pro_mrr = counts["pro"] * TIER_MONTHLY_PRICES["pro"]
    ultra_mrr = counts["ultra"] * TIER_MONTHLY_PRICES["ultra"]
    total_mrr = basic_mrr + pro_mrr + ultra_mrr

    free_remaining = sum(u.free_credits or 0 for u in users)
    subscription_credits = sum(u.subscription_credits or 0 for u in users)
    consumable_credits = sum(u.consumable_credits or 0 for u in users)
    distributed = free_remaining + subscription_credits + consumable_credits

    free_tier = [u for u in users if u.tier == SubscriptionTier.FREE]
    exhausted = [u for u in free_tier if (u.free_credits or 0) == 0]
    partial = [
        u for u in free_tier if 0 < (u.free_credits or 0) < INITIAL_FREE_CREDITS
    ]
    free_credits_used = len(exhausted) * INITIAL_FREE_CREDITS + sum(
        INITIAL_FREE_CREDITS - (u.free_credits or 0) for u in partial
    )

    paid_tiers = {SubscriptionTier.ULTRA, SubscriptionTier.PRO, SubscriptionTier.BASIC}
    subscribers = [u for u in users if u.tier in paid_tiers]
    created = [timestamp_millis(u.created_at) for u in users]
    free_users = counts["free"]

    return UserMetrics(
        total_users=len(users),
        total_subscriptions=paid,
        ultra_users=counts["ultra"],
        pro_users=counts["pro"],
        basic_users=counts["basic"],
        free_users=free_users,
        total_mrr=round(total_mrr, 2),
        basic_mrr=round(basic_mrr, 2),
        pro_mrr=round(pro_mrr, 2),
        ultra_mrr=round(ultra_mrr, 2),
        arr=round(total_mrr * 12, 2),
        arpu=total_mrr / len(users) if users else 0.0,
        conversion_rate=paid / (paid + free_users) * 100 if free_users else 0.0,
        total_free_credits_remaining=free_remaining,
        total_subscription_credits=subscription_credits,
        total_consumable_credits=consumable_credits,
        total_credits_distributed=distributed,
        users_who_used_free_credits=len(exhausted) + len(partial),
        total_free_credits_used=free_credits_used,
        new_users_last_7_days=sum(1 for c in created if c >= now_millis - 7 * DAY_MILLIS),
        new_users_last_30_days=sum(
            1 for c in created if c >= now_millis - 30 * DAY_MILLIS
        ),
        average_credits_per_user=distributed / len(users) if users else 0.0,
        avg_credits_per_subscription_user=(
            sum(u.total_credits for u in subscribers) / len(subscribers)
            if subscribers
            else 0.0
        ),
    )
