"""
Pydantic schemas for the R2 migration endpoints.
"""
from pydantic import BaseModel, Field
from typing import List

MAX_BATCH_SIZE = 100


class MigrationBatchRequest(BaseModel):
    """Schema for running one migration batch."""
    batch_size: int = Field(10, ge=1, le=MAX_BATCH_SIZE, description="Wallpapers to migrate in this batch")


class MigrationBatchResult(BaseModel):
    """Outcome of one migration batch."""
    attempted: int = 0
    migrated: int = 0
    errors: List[str] = Field(default_factory=list)
    # Ids that failed in this batch; kept out of API responses
    failed_ids: List[str] = Field(default_factory=list, exclude=True)

    @property
    def failed(self) -> int:
        return len(self.errors)

    def merge(self, other: "MigrationBatchResult") -> "MigrationBatchResult":
        """Aggregate two batch results (used by full migrations)."""
        return MigrationBatchResult(
            attempted=self.attempted + other.attempted,
            migrated=self.migrated + other.migrated,
            errors=self.errors + other.errors,
            failed_ids=self.failed_ids + other.failed_ids,
        )


class MigrationStatus(BaseModel):
    """Migration progress for the admin dashboard."""
    total: int
    migrated: int
    remaining: int
