"""
Completion Bonus Engine

Turns edits of a quest tree (toggle, create, delete) into signed XP events.

Bonus Rules:
- Section bonus: +20 XP when a category becomes complete, -20 XP when it
  stops being complete
- Quest bonus: sized by category count (see quest_bonus()), awarded when
  the quest becomes complete and revoked when it stops being complete
- A quest completed by toggling a task is not paid immediately: the award
  waits in the pending confirmation slot until confirm_pending_bonus()
- Completion reached through create/delete is paid immediately
- The slot holds one quest; a confirmation pushed out by a newer one is
  paid immediately

Every mutation runs the same transition detector, which compares the bonus
a node was owed before the edit with the bonus it is owed after it and
emits at most one event per node. With no pending confirmation open, the
bonus XP applied for a quest therefore always equals
quest_bonus(category_count) if the quest is complete, else 0.

All operations are total: unknown ids return the snapshot unchanged with
no events.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import logging

from src.models.quest import Difficulty, Quest, QuestCategory, QuestTask, SkillCategory
from src.models.progression import PendingBonusConfirmation, XPEvent, XPEventKind
from src.gamification.xp_system import get_xp_for_difficulty

logger = logging.getLogger(__name__)

SECTION_BONUS_XP = 20


def quest_bonus(category_count: int) -> int:
    """
    Quest completion bonus for a quest with `category_count` categories

    Returns:
        0 for no categories (or a malformed negative count), 80 for 1-2,
        120 for 3-5, 180 for 6 or more
    """
    if category_count < 1:
        return 0
    if category_count < 3:
        return 80
    if category_count <= 5:
        return 120
    return 180


def is_category_complete(category: QuestCategory) -> bool:
    return category.is_complete


def is_quest_complete(quest: Quest) -> bool:
    return quest.is_complete


def section_bonus_tag(category_id: str) -> str:
    return f"section-bonus-{category_id}"


def quest_bonus_tag(quest_id: str) -> str:
    return f"quest-bonus-{quest_id}"


@dataclass
class BonusResult:
    """Outcome of one engine operation"""
    quest: Quest
    events: List[XPEvent] = field(default_factory=list)
    # False when an id was not found and the snapshot was returned untouched
    applied: bool = True
    # Id of the task or category created by the operation, if any
    created_id: Optional[str] = None
    # Earlier confirmation pushed out of the single pending slot
    displaced_bonus: Optional[PendingBonusConfirmation] = None

    @property
    def total_xp(self) -> int:
        return sum(e.amount for e in self.events)


def _with_category(quest: Quest, category: QuestCategory) -> Quest:
    categories = [category if c.id == category.id else c for c in quest.categories]
    return quest.model_copy(update={"categories": categories})


class CompletionBonusEngine:
    """
    Bonus bookkeeping for quest trees

    The engine holds no tree state; every call takes the latest quest
    snapshot and returns a new one. The only state that outlives a call is
    the single pending confirmation slot.
    """

    def __init__(self, pending: Optional[PendingBonusConfirmation] = None):
        self.pending = pending

    # ------------------------------------------------------------------
    # Task toggling
    # ------------------------------------------------------------------

    def toggle_task(self, quest: Quest, category_id: str, task_id: str) -> BonusResult:
        """
        Flip a quest task between completed and not completed

        Emits the base event (negative when un-completing), at most one
        section event and at most one quest revoke event. A quest award is
        parked in the pending slot instead of being emitted; the award it
        displaces from the slot, if any, is emitted instead.
        """
        category = quest.find_category(category_id)
        task = category.find_task(task_id) if category else None
        if task is None:
            logger.debug(f"toggle_task: task {task_id} not found in quest {quest.id}, ignoring")
            return BonusResult(quest=quest, applied=False)

        is_completing = not task.completed
        xp = get_xp_for_difficulty(task.difficulty)
        base = XPEvent(
            amount=xp if is_completing else -xp,
            reason_tag=task.id,
            kind=XPEventKind.BASE,
            skill_category=task.skill_category,
        )

        tasks = [
            t.model_copy(update={"completed": is_completing}) if t.id == task_id else t
            for t in category.tasks
        ]
        updated = _with_category(quest, category.model_copy(update={"tasks": tasks}))

        result = self._transition(
            quest, updated, category_id, defer_quest_award=True, trigger_id=task_id
        )
        result.events.insert(0, base)

        logger.debug(
            f"Toggled task {task_id} in quest {quest.id} "
            f"({'completed' if is_completing else 'uncompleted'}): {result.total_xp:+d} XP"
        )
        return result

    def confirm_pending_bonus(self) -> Optional[XPEvent]:
        """
        Pay out the pending quest bonus and clear the slot

        Returns:
            The award event, or None when nothing is pending
        """
        if self.pending is None:
            return None

        pending = self.pending
        self.pending = None
        logger.info(
            f"Quest bonus confirmed for '{pending.quest_title}' ({pending.quest_id}): "
            f"+{pending.bonus_amount} XP"
        )
        return XPEvent(
            amount=pending.bonus_amount,
            reason_tag=quest_bonus_tag(pending.quest_id),
            kind=XPEventKind.QUEST_BONUS,
        )

    def discard_pending_bonus(self) -> Optional[PendingBonusConfirmation]:
        """Drop the pending confirmation without paying it"""
        pending, self.pending = self.pending, None
        if pending is not None:
            logger.info(f"Discarded pending quest bonus for {pending.quest_id}")
        return pending

    # ------------------------------------------------------------------
    # Creation and deletion
    # ------------------------------------------------------------------

    def delete_task(self, quest: Quest, category_id: str, task_id: str) -> BonusResult:
        """Remove a task; completion reached this way is paid immediately"""
        category = quest.find_category(category_id)
        if category is None or category.find_task(task_id) is None:
            logger.debug(f"delete_task: task {task_id} not found in quest {quest.id}, ignoring")
            return BonusResult(quest=quest, applied=False)

        tasks = [t for t in category.tasks if t.id != task_id]
        updated = _with_category(quest, category.model_copy(update={"tasks": tasks}))
        return self._transition(quest, updated, category_id)

    def delete_category(self, quest: Quest, category_id: str) -> BonusResult:
        """Remove a category; completion reached this way is paid immediately"""
        if quest.find_category(category_id) is None:
            logger.debug(f"delete_category: category {category_id} not found in quest {quest.id}, ignoring")
            return BonusResult(quest=quest, applied=False)

        categories = [c for c in quest.categories if c.id != category_id]
        updated = quest.model_copy(update={"categories": categories})
        return self._transition(quest, updated, None)

    def create_task(
        self,
        quest: Quest,
        category_id: str,
        name: str,
        difficulty: Difficulty = Difficulty.EASY,
        skill_category: SkillCategory = SkillCategory.MISC,
        description: str = "",
    ) -> BonusResult:
        """Append a new, incomplete task to a category"""
        category = quest.find_category(category_id)
        if category is None:
            logger.debug(f"create_task: category {category_id} not found in quest {quest.id}, ignoring")
            return BonusResult(quest=quest, applied=False)

        task = QuestTask(
            name=name,
            description=description,
            difficulty=difficulty,
            skill_category=skill_category,
        )
        updated = _with_category(
            quest, category.model_copy(update={"tasks": [*category.tasks, task]})
        )
        result = self._transition(quest, updated, category_id)
        result.created_id = task.id
        return result

    def create_category(self, quest: Quest, title: str) -> BonusResult:
        """Append a new, empty category to a quest"""
        category = QuestCategory(title=title)
        updated = quest.model_copy(update={"categories": [*quest.categories, category]})
        result = self._transition(quest, updated, None)
        result.created_id = category.id
        return result

    # ------------------------------------------------------------------
    # Transition detection
    # ------------------------------------------------------------------

    def _transition(
        self,
        before: Quest,
        after: Quest,
        category_id: Optional[str],
        defer_quest_award: bool = False,
        trigger_id: str = "",
    ) -> BonusResult:
        result = BonusResult(quest=after)

        section = self._section_event(before, after, category_id)
        if section is not None:
            result.events.append(section)

        quest_event = self._quest_event(before, after, defer_quest_award, trigger_id, result)
        if quest_event is not None:
            result.events.append(quest_event)

        return result

    @staticmethod
    def _section_event(before: Quest, after: Quest, category_id: Optional[str]) -> Optional[XPEvent]:
        if category_id is None:
            return None
        old = before.find_category(category_id)
        new = after.find_category(category_id)
        if old is None or new is None:
            return None

        if new.is_complete and not old.is_complete:
            amount = SECTION_BONUS_XP
        elif old.is_complete and not new.is_complete:
            amount = -SECTION_BONUS_XP
        else:
            return None

        return XPEvent(
            amount=amount,
            reason_tag=section_bonus_tag(category_id),
            kind=XPEventKind.SECTION_BONUS,
        )

    def _quest_event(
        self,
        before: Quest,
        after: Quest,
        defer_award: bool,
        trigger_id: str,
        result: BonusResult,
    ) -> Optional[XPEvent]:
        owed_before = quest_bonus(len(before.categories)) if before.is_complete else 0
        owed_after = quest_bonus(len(after.categories)) if after.is_complete else 0

        if self.pending is not None and self.pending.quest_id == after.id:
            # The award was never applied, so adjust or drop the slot instead of emitting
            if owed_after:
                if owed_after != self.pending.bonus_amount:
                    self.pending = self.pending.model_copy(update={"bonus_amount": owed_after})
                    logger.debug(f"Pending quest bonus for {after.id} resized to {owed_after} XP")
            else:
                logger.info(f"Quest {after.id} regressed before its bonus was confirmed; pending bonus dropped")
                self.pending = None
            return None

        delta = owed_after - owed_before
        if delta == 0:
            return None

        if delta > 0 and defer_award:
            if self.pending is not None:
                # The displaced quest is still complete, so its award is paid here
                logger.warning(
                    f"Pending quest bonus for {self.pending.quest_id} "
                    f"({self.pending.bonus_amount} XP) replaced by quest {after.id}; paid immediately"
                )
                result.displaced_bonus = self.pending
                result.events.append(XPEvent(
                    amount=self.pending.bonus_amount,
                    reason_tag=quest_bonus_tag(self.pending.quest_id),
                    kind=XPEventKind.QUEST_BONUS,
                ))
            self.pending = PendingBonusConfirmation(
                quest_id=after.id,
                bonus_amount=owed_after,
                triggering_task_id=trigger_id,
                quest_title=after.title,
            )
            logger.info(f"Quest '{after.title}' complete, {owed_after} XP bonus awaiting confirmation")
            return None

        if delta > 0:
            logger.info(f"Quest '{after.title}' complete: +{delta} XP bonus")
        else:
            logger.info(f"Quest '{after.title}' bonus revoked: {delta} XP")

        return XPEvent(
            amount=delta,
            reason_tag=quest_bonus_tag(after.id),
            kind=XPEventKind.QUEST_BONUS,
        )
