"""
Leveling Curve

Maps total XP to a level and back. Levels start at 0 and the XP needed to
leave a level grows in tiers:

- Level 0: 50 XP
- Level 1-4: 100 XP per level
- Level 5-9: 200 XP per level
- Level 10-14: 350 XP per level
- Level 15-19: 600 XP per level
- Level 20-29: 900 XP per level
- Level 30-39: 1300 XP per level
- Level 40-49: 2000 XP per level
- Level 50-59: 2500 XP per level
- Level 60+: 3000 XP per level

The same curve is used for the overall level and for every skill level.
"""

from bisect import bisect_right
from typing import Dict, List

from src.models.progression import LevelProgress

# (exclusive upper level bound, XP needed to leave a level below that bound)
LEVEL_TIERS = [
    (1, 50),
    (5, 100),
    (10, 200),
    (15, 350),
    (20, 600),
    (30, 900),
    (40, 1300),
    (50, 2000),
    (60, 2500),
]
TAIL_REQUIREMENT = 3000
TAIL_START_LEVEL = LEVEL_TIERS[-1][0]

# Hard ceiling for level lookups so absurd XP values stay bounded
MAX_LEVEL = 1000


def xp_requirement_for(level: int) -> int:
    """XP needed to advance out of `level`"""
    for bound, requirement in LEVEL_TIERS:
        if level < bound:
            return requirement
    return TAIL_REQUIREMENT


def _build_cumulative_table() -> List[int]:
    table = [0]
    for level in range(TAIL_START_LEVEL):
        table.append(table[-1] + xp_requirement_for(level))
    return table


# _CUMULATIVE[L] == total XP needed to reach level L, for L <= TAIL_START_LEVEL
_CUMULATIVE = _build_cumulative_table()


def cumulative_xp_for(target_level: int) -> int:
    """Total XP needed to reach `target_level` from zero"""
    if target_level <= 0:
        return 0
    if target_level <= TAIL_START_LEVEL:
        return _CUMULATIVE[target_level]
    return _CUMULATIVE[TAIL_START_LEVEL] + (target_level - TAIL_START_LEVEL) * TAIL_REQUIREMENT


def calculate_level(total_xp: int) -> int:
    """
    Largest level whose cumulative requirement is covered by total_xp

    Uses the cached table below the constant tail and closed form above it,
    so lookup cost does not grow with XP. Negative XP is level 0.
    """
    if total_xp <= 0:
        return 0

    tail_start_xp = _CUMULATIVE[TAIL_START_LEVEL]
    if total_xp < tail_start_xp:
        return bisect_right(_CUMULATIVE, total_xp) - 1

    level = TAIL_START_LEVEL + (total_xp - tail_start_xp) // TAIL_REQUIREMENT
    return min(level, MAX_LEVEL)


def get_level_progress(total_xp: int, level: int) -> LevelProgress:
    """
    Progress through `level`

    Returns:
        LevelProgress with current XP into the level (floored at 0), XP size of the level
        and a percentage clamped to [0, 100]
    """
    current = max(0, total_xp - cumulative_xp_for(level))
    maximum = xp_requirement_for(level)
    percentage = min(100.0, max(0.0, current / maximum * 100))
    return LevelProgress(current=current, max=maximum, percentage=percentage)


def calculate_level_from_xp(total_xp: int) -> Dict[str, int]:
    """
    Calculate level information from total XP

    Returns:
        {
            'current_level': int,
            'xp_in_current_level': int,
            'xp_to_next_level': int,
            'total_xp_for_next_level': int
        }
    """
    total_xp = max(0, total_xp)
    level = calculate_level(total_xp)
    xp_in_level = total_xp - cumulative_xp_for(level)
    next_level_total = cumulative_xp_for(level + 1)

    return {
        "current_level": level,
        "xp_in_current_level": xp_in_level,
        "xp_to_next_level": max(0, next_level_total - total_xp),
        "total_xp_for_next_level": next_level_total,
    }
