"""
Subscription Tiers

Mock subscription tier lookup and the free-tier record limits enforced by the
record endpoints. There is no real authentication: the tier comes from
configuration (HERDBOOK_USER_TIER / auth.mock_user_tier).

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

import logging
from enum import Enum

from fastapi import HTTPException, status

from .config import config

logger = logging.getLogger(__name__)


class UserTier(Enum):
    """Subscription tiers"""
    FREE = "free"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


# Maximum record counts on the free tier
FREE_TIER_LIMITS = {
    'animals': 25,
    'groups': 5,
}


def get_user_tier() -> UserTier:
    """Get the current user's tier; unknown values fall back to free"""
    value = (config.auth.mock_user_tier or "").lower()
    try:
        return UserTier(value)
    except ValueError:
        logger.warning(f"Unknown user tier '{value}', treating as free")
        return UserTier.FREE


def check_tier_limit(tier: UserTier, current_count: int, limit: int) -> bool:
    """Return True if one more record may be created"""
    if tier != UserTier.FREE:
        return True
    return current_count < limit


def require_premium(tier: UserTier, feature: str) -> None:
    """Raise 403 when a premium-only feature is requested on the free tier"""
    if tier == UserTier.FREE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"{feature} is a premium feature. Please upgrade your plan."
        )
