"""
Unit tests for standalone tasks and habit streaks (src/gamification/streak_system.py)

Tests cover:
- Completing and un-completing one-off tasks and habits
- Idempotent toggles
- Daily habit reset and streak breaking
"""
import pytest
from datetime import datetime, timezone

from src import config
from src.gamification.streak_system import complete_task, sync_habits, uncomplete_task
from src.models.progression import XPEventKind
from src.models.quest import Difficulty, SkillCategory, Task


# ============================================================================
# Completion Tests
# ============================================================================

def test_complete_one_off_task():
    """Test one-off tasks award base XP and keep streak at 0"""
    task = Task(id="t-1", title="File taxes", difficulty=Difficulty.HARD, skill_category=SkillCategory.PROFESSIONAL)
    when = datetime(2024, 1, 15, 9, 0)

    updated, events = complete_task(task, completed_at=when)

    assert updated.completed is True
    assert updated.streak == 0
    assert updated.last_completed_date == when
    assert len(events) == 1
    assert events[0].amount == 20
    assert events[0].kind == XPEventKind.BASE
    assert events[0].skill_category == SkillCategory.PROFESSIONAL
    assert events[0].reason_tag == "t-1"


def test_complete_habit_extends_streak(habit_task):
    """Test completing a habit increments its streak"""
    open_habit = habit_task.model_copy(update={"completed": False})

    updated, events = complete_task(open_habit, completed_at=datetime(2024, 1, 15, 7, 0))

    assert updated.streak == 5
    assert events[0].amount == 15


def test_complete_already_completed_is_noop(habit_task):
    """Test completing twice never awards twice"""
    updated, events = complete_task(habit_task)

    assert updated is habit_task
    assert events == []


def test_complete_does_not_mutate_input(habit_task):
    """Test the original task object is left as it was"""
    open_habit = habit_task.model_copy(update={"completed": False})

    complete_task(open_habit)

    assert open_habit.completed is False
    assert open_habit.streak == 4


# ============================================================================
# Un-completion Tests
# ============================================================================

def test_uncomplete_habit_rolls_back(habit_task):
    """Test un-completing a habit reverses XP and decrements the streak"""
    updated, events = uncomplete_task(habit_task)

    assert updated.completed is False
    assert updated.streak == 3
    assert updated.last_completed_date is None
    assert events[0].amount == -15
    assert events[0].skill_category == SkillCategory.PHYSICAL


def test_uncomplete_streak_never_negative():
    """Test streak floor is 0"""
    habit = Task(title="Stretch", is_habit=True, completed=True, streak=0)

    updated, _ = uncomplete_task(habit)

    assert updated.streak == 0


def test_uncomplete_open_task_is_noop():
    """Test un-completing an open task does nothing"""
    task = Task(title="Read", completed=False)

    updated, events = uncomplete_task(task)

    assert updated is task
    assert events == []


def test_complete_then_uncomplete_nets_zero():
    """Test a round trip leaves no net XP"""
    task = Task(title="Sketch", difficulty=Difficulty.EPIC, skill_category=SkillCategory.CREATIVE)

    done, gained = complete_task(task)
    _, lost = uncomplete_task(done)

    assert sum(e.amount for e in gained + lost) == 0


def test_negative_streak_rejected():
    """Test the model refuses negative streaks"""
    with pytest.raises(ValueError):
        Task(title="Broken", streak=-1)


# ============================================================================
# Habit Sync Tests
# ============================================================================

def test_sync_resets_habit_completed_yesterday(habit_task, sync_day):
    """Test yesterday's habit becomes available and keeps its streak"""
    synced, changed = sync_habits([habit_task], today=sync_day)

    assert changed is True
    assert synced[0].completed is False
    assert synced[0].streak == 4


def test_sync_breaks_streak_after_missed_day(habit_task, sync_day):
    """Test a habit last done two days ago loses its streak"""
    stale = habit_task.model_copy(update={"last_completed_date": datetime(2024, 1, 13, 20, 0)})

    synced, changed = sync_habits([stale], today=sync_day)

    assert changed is True
    assert synced[0].completed is False
    assert synced[0].streak == 0


def test_sync_leaves_todays_habit_alone(habit_task, sync_day):
    """Test a habit completed today is untouched"""
    today_habit = habit_task.model_copy(update={"last_completed_date": datetime(2024, 1, 15, 6, 0)})

    synced, changed = sync_habits([today_habit], today=sync_day)

    assert changed is False
    assert synced[0] is today_habit


def test_sync_ignores_one_off_tasks(sync_day):
    """Test one-off tasks are never reset"""
    task = Task(title="Buy shoes", completed=True, last_completed_date=datetime(2023, 12, 1))

    synced, changed = sync_habits([task], today=sync_day)

    assert changed is False
    assert synced[0].completed is True


def test_sync_habit_never_completed(sync_day):
    """Test a fresh habit with no history is left alone"""
    habit = Task(title="Meditate", is_habit=True)

    synced, changed = sync_habits([habit], today=sync_day)

    assert changed is False
    assert synced == [habit]


def test_sync_is_idempotent(habit_task, sync_day):
    """Test running the sync twice changes nothing the second time"""
    once, _ = sync_habits([habit_task], today=sync_day)
    twice, changed = sync_habits(once, today=sync_day)

    assert changed is False
    assert twice == once


def test_sync_preserves_order(habit_task, sync_day):
    """Test the task list keeps its order"""
    tasks = [Task(id="a", title="A"), habit_task, Task(id="b", title="B", is_habit=True)]

    synced, _ = sync_habits(tasks, today=sync_day)

    assert [t.id for t in synced] == ["a", "habit-1", "b"]


def test_sync_defaults_to_today():
    """Test the sync runs against the current day when none is given"""
    habit = Task(title="Walk", is_habit=True, completed=True, streak=2, last_completed_date=datetime(2000, 1, 1))

    synced, changed = sync_habits([habit])

    assert changed is True
    assert synced[0].streak == 0
    assert synced[0].completed is False


def test_sync_uses_history_timezone_for_aware_times(habit_task, sync_day, monkeypatch):
    """Test aware completion times are read in the configured zone, like history buckets"""
    monkeypatch.setattr(config, "HISTORY_TIMEZONE", "America/New_York")
    # 02:00 UTC on the 15th is the evening of the 14th in New York
    late_evening = habit_task.model_copy(
        update={"last_completed_date": datetime(2024, 1, 15, 2, 0, tzinfo=timezone.utc)}
    )

    synced, changed = sync_habits([late_evening], today=sync_day)

    assert changed is True
    assert synced[0].completed is False
    assert synced[0].streak == 4
