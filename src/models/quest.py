"""Quest, category and task models"""
from enum import Enum
from typing import Optional
from datetime import datetime
from uuid import uuid4
from pydantic import BaseModel, Field, field_validator


def new_id() -> str:
    return str(uuid4())


class SkillCategory(str, Enum):
    """Skill a unit of work trains"""
    PHYSICAL = "Physical"
    MENTAL = "Mental"
    PROFESSIONAL = "Professional"
    SOCIAL = "Social"
    CREATIVE = "Creative"
    MISC = "Misc"


class Difficulty(str, Enum):
    """Difficulty of a unit of work"""
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"
    EPIC = "Epic"


class Task(BaseModel):
    """Standalone task (one-off or daily habit)"""
    id: str = Field(default_factory=new_id)
    title: str
    description: str = ""
    difficulty: Difficulty = Difficulty.EASY
    skill_category: SkillCategory = SkillCategory.MISC
    is_habit: bool = False
    completed: bool = False
    streak: int = 0
    last_completed_date: Optional[datetime] = None

    @field_validator("streak")
    @classmethod
    def streak_not_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("streak must be >= 0")
        return value


class QuestTask(BaseModel):
    """Task nested inside a quest category"""
    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    difficulty: Difficulty = Difficulty.EASY
    skill_category: SkillCategory = SkillCategory.MISC
    completed: bool = False


class QuestCategory(BaseModel):
    """Ordered group of tasks inside a quest (unit of the section bonus)"""
    id: str = Field(default_factory=new_id)
    title: str
    tasks: list[QuestTask] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        # Derived from the tasks every time, never stored
        return len(self.tasks) > 0 and all(t.completed for t in self.tasks)

    def find_task(self, task_id: str) -> Optional[QuestTask]:
        return next((t for t in self.tasks if t.id == task_id), None)


class Quest(BaseModel):
    """Top-level goal composed of categories"""
    id: str = Field(default_factory=new_id)
    title: str
    categories: list[QuestCategory] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return len(self.categories) > 0 and all(c.is_complete for c in self.categories)

    def find_category(self, category_id: str) -> Optional[QuestCategory]:
        return next((c for c in self.categories if c.id == category_id), None)
