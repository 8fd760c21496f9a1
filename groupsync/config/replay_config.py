# groupsync/config/replay_config.py
# =============================================================================
# File: groupsync/config/replay_config.py
# Purpose: Configuration for the account event log replay
# =============================================================================

from functools import lru_cache
from pydantic import Field
from pydantic_settings import SettingsConfigDict

from groupsync.common.base.base_config import BaseConfig


class ReplayConfig(BaseConfig):
    """Configuration for the account catch-up replay"""

    model_config = SettingsConfigDict(
        env_prefix='REPLAY_',
    )

    # Service enable/disable
    enabled: bool = Field(default=True, description="Replay logs on account open")

    # Account bootstrap
    account_display_name: str = Field(
        default="",
        description="Display name used when the account record is created by the replay",
    )

    # Projection handler logging (replay runs non-interactively by default)
    handler_logging: bool = Field(default=False, description="Let the replay handler log")

    # Group lifecycle
    deactivate_on_failure: bool = Field(
        default=True,
        description="Deactivate a non-home group even when its replay failed",
    )


@lru_cache(maxsize=1)
def get_replay_config() -> ReplayConfig:
    """Get replay configuration singleton (cached)."""
    return ReplayConfig()


def reset_replay_config() -> None:
    """Reset config singleton (for testing)."""
    get_replay_config.cache_clear()


def is_replay_enabled() -> bool:
    """Check if replay on account open is enabled"""
    return get_replay_config().enabled
