"""Per-asset outcomes and the nested per-scope result summaries."""

from enum import Enum

from pydantic import BaseModel, Field


class ProcessResult(str, Enum):
    NO_CHANGE             = "no-change"
    UPDATED_ONLY          = "updated-only"
    UPDATED_AND_PUBLISHED = "updated-and-published"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def implies(self, other: "ProcessResult") -> bool:
        """True when this outcome counts as *other* too (equal or lesser effect)."""
        return self.severity >= other.severity


_SEVERITY: dict[ProcessResult, int] = {
    ProcessResult.NO_CHANGE: 0,
    ProcessResult.UPDATED_ONLY: 1,
    ProcessResult.UPDATED_AND_PUBLISHED: 2,
}


class EnvironmentResult(BaseModel):
    """Asset ids bucketed by what happened to them in one environment.

    Buckets are cumulative: a published asset is also updated and checked.
    """

    checked: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    published: list[str] = Field(default_factory=list)

    failed: list[str] = Field(default_factory=list)
    """Assets whose repair still failed after every retry (``record`` policy only)."""

    def record(self, asset_id: str, result: ProcessResult) -> None:
        self.checked.append(asset_id)
        if result.implies(ProcessResult.UPDATED_ONLY):
            self.updated.append(asset_id)
        if result.implies(ProcessResult.UPDATED_AND_PUBLISHED):
            self.published.append(asset_id)

    def record_failure(self, asset_id: str) -> None:
        self.checked.append(asset_id)
        self.failed.append(asset_id)


# space_id → environment_id → EnvironmentResult
SpaceResult = dict[str, EnvironmentResult]
AccountResult = dict[str, SpaceResult]
