"""Read-only ports onto the learning and identity domains."""

from discovery.providers.base import IdentityProvider, ProgressProvider, longest_daily_streak

__all__ = ["IdentityProvider", "ProgressProvider", "longest_daily_streak"]
