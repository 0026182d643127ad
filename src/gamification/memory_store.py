"""
In-Memory Progress Store

Holds quests, standalone tasks, the XP ledger and activity history per
user. Stands in for the persistence collaborator: the engine never
persists anything itself, the service layer reads the latest snapshot
from here and writes the result back.

The async interface matches what a database-backed store exposes.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

from src.models.quest import Quest, Task
from src.models.progression import PendingBonusConfirmation, ProgressionState
from src.models.history import ArchivedHistory, DailyActivity

logger = logging.getLogger(__name__)


@dataclass
class UserProgress:
    """Everything the progression engine reads or writes for one user"""
    state: ProgressionState = field(default_factory=ProgressionState)
    quests: Dict[str, Quest] = field(default_factory=dict)
    tasks: Dict[str, Task] = field(default_factory=dict)
    history: List[DailyActivity] = field(default_factory=list)
    archives: List[ArchivedHistory] = field(default_factory=list)
    pending_bonus: Optional[PendingBonusConfirmation] = None


class MemoryStore:
    """In-memory store keyed by user id (not persisted)"""

    def __init__(self):
        self._users: Dict[str, UserProgress] = {}

    def _user(self, user_id: str) -> UserProgress:
        if user_id not in self._users:
            self._users[user_id] = UserProgress()
            logger.debug(f"Created progress record for user {user_id}")
        return self._users[user_id]

    # Quests

    async def get_quest(self, user_id: str, quest_id: str) -> Optional[Quest]:
        return self._user(user_id).quests.get(quest_id)

    async def get_quests(self, user_id: str) -> List[Quest]:
        return list(self._user(user_id).quests.values())

    async def save_quest(self, user_id: str, quest: Quest) -> None:
        self._user(user_id).quests[quest.id] = quest

    async def delete_quest(self, user_id: str, quest_id: str) -> None:
        self._user(user_id).quests.pop(quest_id, None)

    # Standalone tasks

    async def get_task(self, user_id: str, task_id: str) -> Optional[Task]:
        return self._user(user_id).tasks.get(task_id)

    async def get_tasks(self, user_id: str) -> List[Task]:
        return list(self._user(user_id).tasks.values())

    async def save_task(self, user_id: str, task: Task) -> None:
        self._user(user_id).tasks[task.id] = task

    # Ledger

    async def get_state(self, user_id: str) -> ProgressionState:
        return self._user(user_id).state

    async def save_state(self, user_id: str, state: ProgressionState) -> None:
        self._user(user_id).state = state

    async def get_pending_bonus(self, user_id: str) -> Optional[PendingBonusConfirmation]:
        return self._user(user_id).pending_bonus

    async def save_pending_bonus(self, user_id: str, pending: Optional[PendingBonusConfirmation]) -> None:
        self._user(user_id).pending_bonus = pending

    # History

    async def get_history(self, user_id: str) -> List[DailyActivity]:
        return list(self._user(user_id).history)

    async def save_history(self, user_id: str, history: List[DailyActivity]) -> None:
        self._user(user_id).history = list(history)

    async def append_archive(self, user_id: str, archive: ArchivedHistory) -> None:
        # Archives are append-only
        self._user(user_id).archives.append(archive)

    async def get_archives(self, user_id: str) -> List[ArchivedHistory]:
        return list(self._user(user_id).archives)
