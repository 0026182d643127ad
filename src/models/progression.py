"""Progression models: XP ledger state, XP events and pending bonuses"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from src.models.quest import SkillCategory


class XPEventKind(str, Enum):
    """What produced an XP event"""
    BASE = "base"
    SECTION_BONUS = "section_bonus"
    QUEST_BONUS = "quest_bonus"


class XPEvent(BaseModel):
    """
    Signed XP change emitted by the engine

    reason_tag is stable across award/revoke so the ledger and the UI can
    pair them up (task id, section-bonus-{categoryId}, quest-bonus-{questId}).
    skill_category is only set on base events; bonuses never train a skill.
    """
    amount: int
    reason_tag: str
    kind: XPEventKind = XPEventKind.BASE
    skill_category: Optional[SkillCategory] = None


class XPBreakdown(BaseModel):
    """How an XP value was priced"""
    base: int
    difficulty_multiplier: float
    streak_multiplier: float = 1.0
    bonus: int = 0
    total: int


class PendingBonusConfirmation(BaseModel):
    """Quest completion bonus that is owed but not yet applied"""
    quest_id: str
    bonus_amount: int
    triggering_task_id: str
    quest_title: str


class LevelProgress(BaseModel):
    """Progress through the current level"""
    current: int
    max: int
    percentage: float


class SkillProgress(BaseModel):
    """XP accumulated in one skill"""
    category: SkillCategory
    xp: int = 0

    @field_validator("xp")
    @classmethod
    def xp_not_negative(cls, value: int) -> int:
        return max(0, value)

    @property
    def level(self) -> int:
        # Import here to avoid circular dependencies
        from src.gamification.leveling import calculate_level
        return calculate_level(self.xp)


def _default_skills() -> dict[SkillCategory, SkillProgress]:
    return {cat: SkillProgress(category=cat) for cat in SkillCategory}


class ProgressionState(BaseModel):
    """
    Overall and per-skill XP

    Levels are never stored; they are always derived from the xp they
    belong to through the leveling curve.
    """
    total_xp: int = 0
    skills: dict[SkillCategory, SkillProgress] = Field(default_factory=_default_skills)

    @field_validator("total_xp")
    @classmethod
    def total_xp_not_negative(cls, value: int) -> int:
        return max(0, value)

    @property
    def level(self) -> int:
        from src.gamification.leveling import calculate_level
        return calculate_level(self.total_xp)

    def skill(self, category: SkillCategory) -> SkillProgress:
        return self.skills.get(category) or SkillProgress(category=category)


class XPChangeResult(BaseModel):
    """Outcome of applying one batch of XP events to a ProgressionState"""
    xp_applied: int
    old_total_xp: int
    new_total_xp: int
    old_level: int
    new_level: int
    leveled_up: bool
    skill_levels_changed: dict[SkillCategory, int] = Field(default_factory=dict)
