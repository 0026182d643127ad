"""
XP System

Prices units of work and applies XP events to a ProgressionState.

XP Award Rules:
- Easy: 10 XP
- Medium: 15 XP
- Hard: 20 XP
- Epic: 30 XP
- Section (category) completion: 20 XP
- Quest completion: 80 / 120 / 180 XP depending on category count

The streak multiplier and flat bonus in the breakdown are reserved and are
always neutral in the current rule set.
"""

from collections import defaultdict
from math import floor
from typing import Dict, Iterable, Tuple
import logging

from src.models.quest import Difficulty, SkillCategory
from src.models.progression import (
    ProgressionState,
    SkillProgress,
    XPBreakdown,
    XPChangeResult,
    XPEvent,
)
from src.gamification.leveling import calculate_level

logger = logging.getLogger(__name__)

BASE_XP = 10

DIFFICULTY_MULTIPLIERS: Dict[Difficulty, float] = {
    Difficulty.EASY: 1.0,
    Difficulty.MEDIUM: 1.5,
    Difficulty.HARD: 2.0,
    Difficulty.EPIC: 3.0,
}

# Skills that accumulate their own XP; Misc only feeds the overall total
TRACKED_SKILLS = frozenset(c for c in SkillCategory if c is not SkillCategory.MISC)


def calculate_xp(difficulty: Difficulty) -> XPBreakdown:
    """
    Price a unit of work

    Args:
        difficulty: Difficulty of the task

    Returns:
        XPBreakdown whose total is floor(BASE_XP * multiplier)
    """
    multiplier = DIFFICULTY_MULTIPLIERS[difficulty]
    streak_multiplier = 1.0
    bonus = 0
    total = floor(BASE_XP * multiplier * streak_multiplier) + bonus

    return XPBreakdown(
        base=BASE_XP,
        difficulty_multiplier=multiplier,
        streak_multiplier=streak_multiplier,
        bonus=bonus,
        total=total,
    )


def get_xp_for_difficulty(difficulty: Difficulty) -> int:
    """Fixed XP value for a difficulty"""
    return calculate_xp(difficulty).total


def apply_xp_events(
    state: ProgressionState,
    events: Iterable[XPEvent],
) -> Tuple[ProgressionState, XPChangeResult]:
    """
    Apply one batch of XP events to a progression state

    The batch is applied atomically: amounts are summed first and the result
    is clamped at zero, for the overall total and for each skill. Only events
    carrying a tracked skill category move skill XP.

    Args:
        state: Current progression state
        events: Events emitted by one engine operation

    Returns:
        (new_state, XPChangeResult)
    """
    events = list(events)
    amount = sum(e.amount for e in events)

    skill_deltas: Dict[SkillCategory, int] = defaultdict(int)
    for event in events:
        if event.skill_category in TRACKED_SKILLS:
            skill_deltas[event.skill_category] += event.amount

    old_total = state.total_xp
    old_level = calculate_level(old_total)
    new_total = max(0, old_total + amount)
    new_level = calculate_level(new_total)

    skills = dict(state.skills)
    skill_levels_changed: Dict[SkillCategory, int] = {}
    for category, delta in skill_deltas.items():
        skill = state.skill(category)
        new_skill = SkillProgress(category=category, xp=max(0, skill.xp + delta))
        if new_skill.level != skill.level:
            skill_levels_changed[category] = new_skill.level
        skills[category] = new_skill

    new_state = state.model_copy(update={"total_xp": new_total, "skills": skills})

    leveled_up = amount > 0 and new_level > old_level
    result = XPChangeResult(
        xp_applied=new_total - old_total,
        old_total_xp=old_total,
        new_total_xp=new_total,
        old_level=old_level,
        new_level=new_level,
        leveled_up=leveled_up,
        skill_levels_changed=skill_levels_changed,
    )

    if events:
        logger.debug(
            f"Applied {len(events)} XP events ({amount:+d} XP). "
            f"Total: {old_total} → {new_total} XP, Level: {new_level}"
        )
    if leveled_up:
        logger.info(f"Leveled up from {old_level} to {new_level}!")

    return new_state, result
