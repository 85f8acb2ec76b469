from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # AWS / SimpleDB endpoint
    aws_region: str = Field(default="us-east-1", validation_alias="AWS_REGION")
    # Optional override, e.g. a local SimpleDB emulator.
    sdb_endpoint_url: str | None = Field(default=None, validation_alias="SDB_ENDPOINT_URL")
    sdb_connect_timeout_s: float = Field(default=2.0, validation_alias="SDB_CONNECT_TIMEOUT_S")
    sdb_read_timeout_s: float = Field(default=10.0, validation_alias="SDB_READ_TIMEOUT_S")

    # Retry / backoff for transient failures
    sdb_max_attempts: int = Field(default=6, ge=1, validation_alias="SDB_MAX_ATTEMPTS")
    sdb_base_delay_s: float = Field(default=0.05, ge=0, validation_alias="SDB_BASE_DELAY_S")
    sdb_max_delay_s: float = Field(default=1.5, ge=0, validation_alias="SDB_MAX_DELAY_S")
    sdb_backoff_jitter: bool = Field(default=False, validation_alias="SDB_BACKOFF_JITTER")

    # Service limits / read behaviour
    sdb_max_batch_items: int = Field(default=25, ge=1, validation_alias="SDB_MAX_BATCH_ITEMS")
    sdb_consistent_read: bool = Field(default=False, validation_alias="SDB_CONSISTENT_READ")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    def to_log_safe_dict(self) -> dict[str, object]:
        """
        A representation safe for structured logs / diagnostics.
        """
        return {
            "aws": {
                "aws_region": self.aws_region,
                "sdb_endpoint_url": self.sdb_endpoint_url,
            },
            "retry": {
                "max_attempts": self.sdb_max_attempts,
                "base_delay_s": self.sdb_base_delay_s,
                "max_delay_s": self.sdb_max_delay_s,
                "jitter": bool(self.sdb_backoff_jitter),
            },
            "limits": {
                "max_batch_items": self.sdb_max_batch_items,
                "consistent_read": bool(self.sdb_consistent_read),
            },
            "log_level": self.log_level,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
