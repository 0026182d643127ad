"""Global test fixtures and utilities for progression tests"""
import pytest
from datetime import datetime, date

from src.models.quest import Difficulty, Quest, QuestCategory, QuestTask, SkillCategory, Task
from src.models.progression import ProgressionState
from src.gamification.bonus_engine import CompletionBonusEngine
from src.gamification.memory_store import MemoryStore
from src.services.progression_service import ProgressionService


# ============================================================================
# Quest Builders
# ============================================================================

def build_quest(layout, title="Test Quest", quest_id="quest-1",
                difficulty=Difficulty.EASY, skill=SkillCategory.PHYSICAL):
    """
    Build a quest from a layout of completion flags

    layout: one list per category, one bool per task, e.g. [[True, False], [True]]
    Category ids are cat-1, cat-2, ...; task ids are t-<category>-<task>.
    """
    categories = []
    for ci, flags in enumerate(layout, start=1):
        tasks = [
            QuestTask(
                id=f"t-{ci}-{ti}",
                name=f"Task {ci}.{ti}",
                difficulty=difficulty,
                skill_category=skill,
                completed=done,
            )
            for ti, done in enumerate(flags, start=1)
        ]
        categories.append(QuestCategory(id=f"cat-{ci}", title=f"Category {ci}", tasks=tasks))
    return Quest(id=quest_id, title=title, categories=categories)


@pytest.fixture
def quest_builder():
    """Factory for quests built from completion-flag layouts"""
    return build_quest


@pytest.fixture
def two_task_quest():
    """One category with two open Easy/Physical tasks"""
    return build_quest([[False, False]])


@pytest.fixture
def three_category_quest():
    """Three categories, everything done except task t-3-1"""
    return build_quest([[True, True], [True], [False]], title="Run a marathon")


# ============================================================================
# Engine & Ledger Fixtures
# ============================================================================

@pytest.fixture
def engine():
    """Fresh completion bonus engine with an empty pending slot"""
    return CompletionBonusEngine()


@pytest.fixture
def progression_state():
    """Progression state with some XP already earned"""
    state = ProgressionState(total_xp=500)
    skills = dict(state.skills)
    skills[SkillCategory.PHYSICAL] = skills[SkillCategory.PHYSICAL].model_copy(update={"xp": 120})
    return state.model_copy(update={"skills": skills})


@pytest.fixture
def habit_task():
    """Habit completed yesterday with a running streak"""
    return Task(
        id="habit-1",
        title="Morning run",
        difficulty=Difficulty.MEDIUM,
        skill_category=SkillCategory.PHYSICAL,
        is_habit=True,
        completed=True,
        streak=4,
        last_completed_date=datetime(2024, 1, 14, 7, 30),
    )


@pytest.fixture
def sync_day():
    """Calendar day used for habit sync tests"""
    return date(2024, 1, 15)


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "123456789"


@pytest.fixture
def memory_store():
    """Empty in-memory store"""
    return MemoryStore()


@pytest.fixture
def progression_service(memory_store):
    """ProgressionService backed by an in-memory store"""
    return ProgressionService(memory_store)


@pytest.fixture
def activity_time():
    """Fixed local time for history entries"""
    return datetime(2024, 1, 15, 12, 0, 0)


# ============================================================================
# Environment & Config Fixtures
# ============================================================================

@pytest.fixture
def test_env_vars(monkeypatch):
    """Set standard test environment variables"""
    env_vars = {
        "LOG_LEVEL": "DEBUG",
        "HISTORY_MAX_ACTIVE_DAYS": "30",
        "HISTORY_TIMEZONE": "America/New_York",
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars
