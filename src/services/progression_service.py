"""
ProgressionService - Progression Business Logic

Drives the completion bonus engine against the latest stored snapshot and
feeds the emitted XP events into the ledger and the activity history.

Each operation:
1. Loads the current quest/task snapshot and pending confirmation
2. Runs the pure engine operation
3. Saves the new snapshot and pending confirmation
4. Applies the events to the XP ledger in one batch
5. Records one history entry for the net XP change
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from src.exceptions import StaleReferenceError, ValidationError
from src.gamification.bonus_engine import CompletionBonusEngine, BonusResult
from src.gamification.history import add_history_entry
from src.gamification.leveling import calculate_level_from_xp, get_level_progress
from src.gamification.memory_store import MemoryStore
from src.gamification.streak_system import complete_task, uncomplete_task, sync_habits
from src.gamification.xp_system import apply_xp_events
from src.models.history import ArchivedHistory
from src.models.progression import PendingBonusConfirmation, XPChangeResult, XPEvent
from src.models.quest import Difficulty, Quest, SkillCategory, Task

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """What one service operation did, for the presentation layer"""
    events: List[XPEvent] = field(default_factory=list)
    xp_change: Optional[XPChangeResult] = None
    quest: Optional[Quest] = None
    task: Optional[Task] = None
    created_id: Optional[str] = None
    pending_bonus: Optional[PendingBonusConfirmation] = None
    displaced_bonus: Optional[PendingBonusConfirmation] = None
    archived: Optional[ArchivedHistory] = None

    @property
    def xp_awarded(self) -> int:
        return sum(e.amount for e in self.events)


def _require_text(value: str, field_name: str, user_id: str) -> str:
    if not value or not value.strip():
        raise ValidationError(
            message="must not be blank",
            field=field_name,
            value=value,
            user_id=user_id,
        )
    return value.strip()


class ProgressionService:
    """
    Service for quest/task progression.

    Responsibilities:
    - Quest task toggling with section and quest bonuses
    - Quest bonus confirmation
    - Quest tree edits that move bonuses (create/delete task or category)
    - Standalone task completion and habit streaks
    - XP ledger and daily history updates
    """

    def __init__(self, store: MemoryStore):
        """
        Initialize ProgressionService.

        Args:
            store: Persistence collaborator holding snapshots and the ledger
        """
        self.store = store
        logger.debug("ProgressionService initialized")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _load_quest(self, user_id: str, quest_id: str, operation: str) -> Quest:
        quest = await self.store.get_quest(user_id, quest_id)
        if quest is None:
            raise self._stale(user_id, operation, "Quest", quest_id)
        return quest

    async def _engine(self, user_id: str) -> CompletionBonusEngine:
        return CompletionBonusEngine(pending=await self.store.get_pending_bonus(user_id))

    async def _record(
        self,
        user_id: str,
        events: List[XPEvent],
        contributing_id: str,
        occurred_at: Optional[datetime],
        result: OperationResult,
    ) -> None:
        """Apply events to the ledger and the history (one batch per call site)"""
        result.events = list(events)
        if not events:
            return

        state = await self.store.get_state(user_id)
        new_state, xp_change = apply_xp_events(state, events)
        await self.store.save_state(user_id, new_state)
        result.xp_change = xp_change

        history = await self.store.get_history(user_id)
        active, archived = add_history_entry(
            history,
            sum(e.amount for e in events),
            occurred_at or datetime.now(),
            contributing_id,
        )
        await self.store.save_history(user_id, active)
        if archived is not None:
            await self.store.append_archive(user_id, archived)
            result.archived = archived

    async def _finish_quest_operation(
        self,
        user_id: str,
        engine: CompletionBonusEngine,
        outcome: BonusResult,
        contributing_id: str,
        occurred_at: Optional[datetime],
    ) -> OperationResult:
        await self.store.save_quest(user_id, outcome.quest)
        await self.store.save_pending_bonus(user_id, engine.pending)

        result = OperationResult(
            quest=outcome.quest,
            created_id=outcome.created_id,
            pending_bonus=engine.pending,
            displaced_bonus=outcome.displaced_bonus,
        )
        await self._record(user_id, outcome.events, contributing_id, occurred_at, result)
        return result

    def _stale(self, user_id: str, operation: str, record_type: str, record_id: str) -> StaleReferenceError:
        return StaleReferenceError(
            message=f"{record_type} {record_id} not found",
            record_type=record_type,
            record_id=record_id,
            user_id=user_id,
            operation=operation,
        )

    # ------------------------------------------------------------------
    # Quests
    # ------------------------------------------------------------------

    async def create_quest(self, user_id: str, title: str) -> Quest:
        """Create an empty quest (no XP effect)"""
        quest = Quest(title=_require_text(title, "title", user_id))
        await self.store.save_quest(user_id, quest)
        logger.info(f"Created quest '{quest.title}' for user {user_id}")
        return quest

    async def toggle_quest_task(
        self,
        user_id: str,
        quest_id: str,
        category_id: str,
        task_id: str,
        occurred_at: Optional[datetime] = None,
    ) -> OperationResult:
        """
        Toggle a quest task's completion.

        Returns:
            OperationResult with the base/section/revoke events; a quest
            completion shows up as pending_bonus instead of an event
        """
        quest = await self._load_quest(user_id, quest_id, "toggle_quest_task")
        engine = await self._engine(user_id)

        outcome = engine.toggle_task(quest, category_id, task_id)
        if not outcome.applied:
            raise self._stale(user_id, "toggle_quest_task", "QuestTask", task_id)

        return await self._finish_quest_operation(user_id, engine, outcome, task_id, occurred_at)

    async def confirm_quest_bonus(
        self,
        user_id: str,
        occurred_at: Optional[datetime] = None,
    ) -> OperationResult:
        """
        Apply the pending quest bonus.

        The quest must still be complete; a confirmation whose quest has
        since regressed or disappeared is discarded without XP.
        """
        engine = await self._engine(user_id)
        pending = engine.pending
        if pending is None:
            return OperationResult()

        quest = await self.store.get_quest(user_id, pending.quest_id)
        if quest is None or not quest.is_complete:
            logger.warning(
                f"Pending bonus for quest {pending.quest_id} is no longer valid "
                f"for user {user_id}; discarding"
            )
            engine.discard_pending_bonus()
            await self.store.save_pending_bonus(user_id, None)
            return OperationResult(quest=quest)

        event = engine.confirm_pending_bonus()
        await self.store.save_pending_bonus(user_id, None)

        result = OperationResult(quest=quest)
        await self._record(user_id, [event], f"bonus-{pending.quest_id}", occurred_at, result)
        return result

    async def get_pending_bonus(self, user_id: str) -> Optional[PendingBonusConfirmation]:
        return await self.store.get_pending_bonus(user_id)

    async def create_quest_task(
        self,
        user_id: str,
        quest_id: str,
        category_id: str,
        name: str,
        difficulty: Difficulty = Difficulty.EASY,
        skill_category: SkillCategory = SkillCategory.MISC,
        description: str = "",
        occurred_at: Optional[datetime] = None,
    ) -> OperationResult:
        """Add a task to a category, revoking bonuses it un-completes"""
        name = _require_text(name, "name", user_id)
        quest = await self._load_quest(user_id, quest_id, "create_quest_task")
        engine = await self._engine(user_id)

        outcome = engine.create_task(quest, category_id, name, difficulty, skill_category, description)
        if not outcome.applied:
            raise self._stale(user_id, "create_quest_task", "QuestCategory", category_id)

        return await self._finish_quest_operation(
            user_id, engine, outcome, outcome.created_id, occurred_at
        )

    async def delete_quest_task(
        self,
        user_id: str,
        quest_id: str,
        category_id: str,
        task_id: str,
        occurred_at: Optional[datetime] = None,
    ) -> OperationResult:
        """Remove a task, paying any bonus its removal completes"""
        quest = await self._load_quest(user_id, quest_id, "delete_quest_task")
        engine = await self._engine(user_id)

        outcome = engine.delete_task(quest, category_id, task_id)
        if not outcome.applied:
            raise self._stale(user_id, "delete_quest_task", "QuestTask", task_id)

        return await self._finish_quest_operation(user_id, engine, outcome, task_id, occurred_at)

    async def create_category(
        self,
        user_id: str,
        quest_id: str,
        title: str,
        occurred_at: Optional[datetime] = None,
    ) -> OperationResult:
        """Add an empty category, revoking the quest bonus if it was complete"""
        title = _require_text(title, "title", user_id)
        quest = await self._load_quest(user_id, quest_id, "create_category")
        engine = await self._engine(user_id)

        outcome = engine.create_category(quest, title)
        return await self._finish_quest_operation(
            user_id, engine, outcome, outcome.created_id, occurred_at
        )

    async def delete_category(
        self,
        user_id: str,
        quest_id: str,
        category_id: str,
        occurred_at: Optional[datetime] = None,
    ) -> OperationResult:
        """Remove a category, adjusting the quest bonus"""
        quest = await self._load_quest(user_id, quest_id, "delete_category")
        engine = await self._engine(user_id)

        outcome = engine.delete_category(quest, category_id)
        if not outcome.applied:
            raise self._stale(user_id, "delete_category", "QuestCategory", category_id)

        return await self._finish_quest_operation(user_id, engine, outcome, category_id, occurred_at)

    # ------------------------------------------------------------------
    # Standalone tasks
    # ------------------------------------------------------------------

    async def create_task(
        self,
        user_id: str,
        title: str,
        difficulty: Difficulty = Difficulty.EASY,
        skill_category: SkillCategory = SkillCategory.MISC,
        is_habit: bool = False,
        description: str = "",
    ) -> Task:
        """Create a standalone task or habit (no XP effect)"""
        task = Task(
            title=_require_text(title, "title", user_id),
            description=description,
            difficulty=difficulty,
            skill_category=skill_category,
            is_habit=is_habit,
        )
        await self.store.save_task(user_id, task)
        return task

    async def complete_task(
        self,
        user_id: str,
        task_id: str,
        occurred_at: Optional[datetime] = None,
    ) -> OperationResult:
        """Complete a standalone task"""
        task = await self.store.get_task(user_id, task_id)
        if task is None:
            raise self._stale(user_id, "complete_task", "Task", task_id)

        updated, events = complete_task(task, occurred_at)
        await self.store.save_task(user_id, updated)

        result = OperationResult(task=updated)
        await self._record(user_id, events, task_id, occurred_at, result)
        return result

    async def uncomplete_task(
        self,
        user_id: str,
        task_id: str,
        occurred_at: Optional[datetime] = None,
    ) -> OperationResult:
        """Undo a standalone task completion"""
        task = await self.store.get_task(user_id, task_id)
        if task is None:
            raise self._stale(user_id, "uncomplete_task", "Task", task_id)

        updated, events = uncomplete_task(task)
        await self.store.save_task(user_id, updated)

        result = OperationResult(task=updated)
        await self._record(user_id, events, task_id, occurred_at, result)
        return result

    async def sync_habits(self, user_id: str, today: Optional[date] = None) -> bool:
        """
        Run the daily habit reset for a user.

        Returns:
            True if any habit changed
        """
        tasks = await self.store.get_tasks(user_id)
        synced, changed = sync_habits(tasks, today)
        if changed:
            for task in synced:
                await self.store.save_task(user_id, task)
            logger.info(f"Habits synced for user {user_id}")
        return changed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_progress(self, user_id: str) -> Dict[str, Any]:
        """
        Get user's current XP, level and skill information

        Returns:
            {
                'user_id': str,
                'total_xp': int,
                'current_level': int,
                'xp_to_next_level': int,
                'xp_in_current_level': int,
                'level_progress': float (0-100),
                'skills': {category: {'xp': int, 'level': int}},
                'pending_bonus': PendingBonusConfirmation or None
            }
        """
        state = await self.store.get_state(user_id)
        level_info = calculate_level_from_xp(state.total_xp)
        progress = get_level_progress(state.total_xp, level_info["current_level"])

        return {
            "user_id": user_id,
            "total_xp": state.total_xp,
            "current_level": level_info["current_level"],
            "xp_to_next_level": level_info["xp_to_next_level"],
            "xp_in_current_level": level_info["xp_in_current_level"],
            "level_progress": progress.percentage,
            "skills": {
                category.value: {"xp": skill.xp, "level": skill.level}
                for category, skill in state.skills.items()
            },
            "pending_bonus": await self.store.get_pending_bonus(user_id),
        }
