"""
Progression system

This package implements quest/task progression with:
- Tiered leveling curve
- Difficulty-based XP pricing and the XP ledger
- Hierarchical completion bonuses (section and quest)
- Habit streaks for standalone tasks
- Daily activity history with archiving
"""

from src.gamification.leveling import calculate_level, cumulative_xp_for, get_level_progress
from src.gamification.xp_system import calculate_xp, get_xp_for_difficulty, apply_xp_events
from src.gamification.bonus_engine import CompletionBonusEngine, quest_bonus
from src.gamification.history import add_history_entry, process_history

__all__ = [
    "calculate_level",
    "cumulative_xp_for",
    "get_level_progress",
    "calculate_xp",
    "get_xp_for_difficulty",
    "apply_xp_events",
    "CompletionBonusEngine",
    "quest_bonus",
    "add_history_entry",
    "process_history",
]
