"""
Standalone Task & Habit Streak System

Handles completion of tasks that live outside quests:
- One-off tasks: completing/un-completing moves their base XP
- Habits: completing extends the streak, un-completing rolls it back
- Daily sync: habits reset every calendar day, streaks break after a
  missed day
"""

from typing import List, Optional, Tuple
from datetime import date, datetime, timedelta, timezone
import logging

from src.models.quest import Task
from src.models.progression import XPEvent, XPEventKind
from src.gamification.history import normalize_date
from src.gamification.xp_system import get_xp_for_difficulty

logger = logging.getLogger(__name__)


def _day_of(moment: datetime) -> date:
    return date.fromisoformat(normalize_date(moment))


def _base_event(task: Task, sign: int) -> XPEvent:
    return XPEvent(
        amount=sign * get_xp_for_difficulty(task.difficulty),
        reason_tag=task.id,
        kind=XPEventKind.BASE,
        skill_category=task.skill_category,
    )


def complete_task(
    task: Task,
    completed_at: Optional[datetime] = None
) -> Tuple[Task, List[XPEvent]]:
    """
    Mark a standalone task completed

    Logic:
    - Already completed: no change, no XP
    - Habit: streak + 1
    - One-off task: streak stays 0

    Returns:
        (updated_task, events)
    """
    if task.completed:
        return task, []

    if completed_at is None:
        completed_at = datetime.now()

    new_streak = task.streak + 1 if task.is_habit else 0
    updated = task.model_copy(update={
        "completed": True,
        "last_completed_date": completed_at,
        "streak": new_streak,
    })

    if task.is_habit and new_streak > 1:
        logger.info(f"Habit '{task.title}' streak continues: day {new_streak}")

    return updated, [_base_event(task, 1)]


def uncomplete_task(task: Task) -> Tuple[Task, List[XPEvent]]:
    """
    Undo a standalone task completion

    Returns:
        (updated_task, events); the event reverses the completion XP
    """
    if not task.completed:
        return task, []

    new_streak = max(0, task.streak - 1) if task.is_habit else 0
    updated = task.model_copy(update={
        "completed": False,
        "last_completed_date": None,
        "streak": new_streak,
    })
    return updated, [_base_event(task, -1)]


def sync_habits(tasks: List[Task], today: Optional[date] = None) -> Tuple[List[Task], bool]:
    """
    Daily habit reset

    - Habits completed before today become available again
    - Habits not completed yesterday or today lose their streak
    - One-off tasks are never touched

    Args:
        tasks: Current standalone tasks
        today: Calendar day to sync against (defaults to today in the
            history timezone)

    Returns:
        (tasks, changed)
    """
    if today is None:
        today = _day_of(datetime.now(timezone.utc))
    yesterday = today - timedelta(days=1)

    changed = False
    synced: List[Task] = []

    for task in tasks:
        if not task.is_habit:
            synced.append(task)
            continue

        last_day = _day_of(task.last_completed_date) if task.last_completed_date else None
        update = {}

        if task.completed and (last_day is None or last_day < today):
            update["completed"] = False

        if task.streak > 0 and (last_day is None or last_day < yesterday):
            logger.info(f"Habit '{task.title}' streak broken after {task.streak} days")
            update["streak"] = 0

        if update:
            changed = True
            synced.append(task.model_copy(update=update))
        else:
            synced.append(task)

    return synced, changed
