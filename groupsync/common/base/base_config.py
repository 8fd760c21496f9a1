# groupsync/common/base/base_config.py
# =============================================================================
# BaseConfig - shared settings behaviour for GroupSync configs
#
# Every config class reads environment variables (and an optional .env file)
# through pydantic-settings. A subclass only declares its prefix and fields;
# its model_config is merged into the one below:
#
#     class ReplayConfig(BaseConfig):
#         model_config = SettingsConfigDict(env_prefix="REPLAY_")
#         enabled: bool = True
#
# Factories return a cached instance (functools.lru_cache) and expose a
# reset_*() helper so tests can change the environment between cases.
# =============================================================================

from typing import Any, Dict

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base settings class: .env loading, case-insensitive names, `__` nesting."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    def to_dict(self) -> Dict[str, Any]:
        """Field values by name, with SecretStr fields kept masked."""
        return {name: getattr(self, name) for name in type(self).model_fields}

    def __repr__(self) -> str:
        values = ", ".join(
            f"{name}={'SecretStr(****)' if isinstance(value, SecretStr) else repr(value)}"
            for name, value in self.to_dict().items()
        )
        return f"{type(self).__name__}({values})"
