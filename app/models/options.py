"""Typed knobs for one repair run.

Validated once at start-up (CLI flags / env vars) and then passed unchanged
through every walker down to the per-asset state machine.
"""

from enum import Enum

from pydantic import BaseModel, Field

from app.utils.retry import RetryPolicy


class AssetErrorPolicy(str, Enum):
    ABORT  = "abort"
    RECORD = "record"


class AssetProcessingOptions(BaseModel):
    processing_attempts: int = Field(default=3, ge=1)
    """Tries per asset; attempts after the first reload the asset first."""

    retry_interval_ms: int = Field(default=200, ge=0)
    """Fixed delay between tries. 0 disables waiting (tests)."""

    skip_archived: bool = False
    """Leave archived assets alone even when they carry a cross-reference."""

    force_republish: bool = False
    """Republish repaired assets even when they had unrelated pending draft edits."""

    dry_run: bool = False

    on_asset_error: AssetErrorPolicy = AssetErrorPolicy.ABORT
    """What an environment walk does when one asset fails for good."""

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            attempts=self.processing_attempts,
            interval_ms=self.retry_interval_ms,
        )
