"""Activity history models"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class HistoryEntry(BaseModel):
    """Single XP change (legacy flat history format, also used in archives)"""
    date: str
    xp_gained: float
    task_id: str = ""


class DailyActivity(BaseModel):
    """XP and contributing items aggregated for one calendar day"""
    date: str  # YYYY-MM-DD, local calendar day
    total_xp: float = 0
    task_count: int = 0
    task_ids: list[str] = Field(default_factory=list)


class ArchivedHistory(BaseModel):
    """Buckets moved out of the active window; never modified afterwards"""
    model_config = ConfigDict(frozen=True)

    entries: tuple[HistoryEntry, ...]
    archived_at: str
    user_id: Optional[str] = None
    total_entries: int
