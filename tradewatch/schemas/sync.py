from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from tradewatch.config import settings

SourceType = Literal["senate", "house", "insiders"]

SOURCE_LABELS: dict[str, str] = {
    "senate": "Senate",
    "house": "House",
    "insiders": "Insider",
}


class SyncOptions(BaseModel):
    limit: int = Field(default_factory=lambda: settings.sync_page_limit, gt=0)
    max_pages: int = Field(default_factory=lambda: settings.sync_max_pages, gt=0)
    force_update: bool = False
    batch_size: int = Field(default_factory=lambda: settings.sync_batch_size, gt=0)
    use_checkpoints: bool = True


class SyncProgressEvent(BaseModel):
    current: int
    total: int
    source_label: str

    @property
    def percent(self) -> float:
        return (self.current / self.total * 100) if self.total else 100.0


class SyncResult(BaseModel):
    source_type: str
    success: bool
    processed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
    duration_ms: int = 0
    resumed_from: int = 0
    short_circuited: bool = False


class SyncBatchResult(BaseModel):
    """Aggregate of several source types run back to back."""

    success: bool
    results: list[SyncResult] = Field(default_factory=list)
    duration_ms: int = 0

    @property
    def created(self) -> int:
        return sum(r.created for r in self.results)

    @property
    def updated(self) -> int:
        return sum(r.updated for r in self.results)

    @property
    def skipped(self) -> int:
        return sum(r.skipped for r in self.results)

    @property
    def errors(self) -> list[str]:
        return [error for r in self.results for error in r.errors]
