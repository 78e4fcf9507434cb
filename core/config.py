"""
core/config.py -- Centralized configuration via pydantic-settings.

All environment variable reads for assetwatch happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Two objects live here:

  Settings (BaseSettings): process-level configuration read from environment
      variables and an optional .env file. Field names map to env var names
      (e.g. database_url -> DATABASE_URL). Cached by get_settings().

  Thresholds (frozen dataclass): the classification cut-offs the engine uses.
      Every classifier and aggregate function takes a Thresholds argument that
      defaults to DEFAULT_THRESHOLDS, so the engine stays pure and the
      classifier and the aggregate composer can never disagree on a boundary.

Layer rule: core/ is the kernel. This module may not import from api/ or registry/.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("assetwatch.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'assetwatch.db'}"


@dataclass(frozen=True)
class Thresholds:
    """Classification cut-offs shared by every index classifier.

    index_low / index_high   -- LOW below index_low, MEDIUM up to and including
                                index_high, HIGH above it.
    compliance_standard      -- ministry compliance mean needed to "meet standards".
    high_risk_index          -- risk exposure index above which an asset is high risk.
    high_risk_medium_max     -- high-risk asset count still reported as MEDIUM.
    security_threshold       -- security index below which an asset is vulnerable.
    """

    index_low: float = 30.0
    index_high: float = 70.0
    compliance_standard: float = 70.0
    high_risk_index: float = 70.0
    high_risk_medium_max: int = 20
    security_threshold: float = 70.0


DEFAULT_THRESHOLDS = Thresholds()


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in tests
    without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    database_url: str = _DEFAULT_DB_URL
    # Lookback the control panel loads from the history log.
    history_window_days: int = 30

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost", "testserver"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]
    default_rate_limit: str = "60/minute"

    # ------------------------------------------------------------------
    # Thresholds
    # ------------------------------------------------------------------

    index_low: float = 30.0
    index_high: float = 70.0
    compliance_standard: float = 70.0
    high_risk_index: float = 70.0
    high_risk_medium_max: int = 20
    security_threshold: float = 70.0

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_thresholds(self) -> "Settings":
        """Refuse to start with boundaries that would make the tiers overlap.

        0 < index_low < index_high <= 100 must hold; 0 itself is reserved for
        the "no data" sentinel and can never be a boundary.
        """
        if not 0 < self.index_low < self.index_high <= 100:
            raise ValueError(
                f"Invalid index thresholds: need 0 < INDEX_LOW ({self.index_low}) "
                f"< INDEX_HIGH ({self.index_high}) <= 100."
            )
        if self.history_window_days < 1:
            raise ValueError("HISTORY_WINDOW_DAYS must be at least 1.")
        if self.high_risk_medium_max < 0:
            raise ValueError("HIGH_RISK_MEDIUM_MAX cannot be negative.")
        if self.debug:
            logger.warning("DEBUG mode enabled -- not for production use.")
        return self

    def thresholds(self) -> Thresholds:
        """Return the frozen Thresholds value object for the engine."""
        return Thresholds(
            index_low=self.index_low,
            index_high=self.index_high,
            compliance_standard=self.compliance_standard,
            high_risk_index=self.high_risk_index,
            high_risk_medium_max=self.high_risk_medium_max,
            security_threshold=self.security_threshold,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
