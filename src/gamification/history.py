"""
Activity History

Rolls XP deltas into one bucket per local calendar day.

- Buckets are kept most-recent-first
- At most HISTORY_MAX_ACTIVE_DAYS buckets stay active; older ones are cut
  off the tail and wrapped in an ArchivedHistory payload (nothing is lost)
- Legacy flat histories (one entry per XP change) are folded into buckets
  by migrate_to_daily_aggregates() / process_history()
"""

from collections import OrderedDict
from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfo
import logging

from src import config
from src.models.history import ArchivedHistory, DailyActivity, HistoryEntry

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]


def _history_timezone() -> Optional[ZoneInfo]:
    return ZoneInfo(config.HISTORY_TIMEZONE) if config.HISTORY_TIMEZONE else None


def normalize_date(value: DateLike) -> str:
    """
    Convert a date, datetime or ISO-8601 string to a YYYY-MM-DD day key

    Naive datetimes are taken as local time. Aware datetimes are converted
    to HISTORY_TIMEZONE, or to the system local zone when it is unset.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(_history_timezone())
        return value.date().isoformat()

    return value.isoformat()


def _sort_recent_first(buckets: List[DailyActivity]) -> List[DailyActivity]:
    return sorted(buckets, key=lambda b: b.date, reverse=True)


def aggregate_by_date(entries: Iterable[HistoryEntry]) -> List[DailyActivity]:
    """Fold individual entries into daily buckets (most recent first)"""
    daily: "OrderedDict[str, Tuple[float, List[str]]]" = OrderedDict()

    for entry in entries:
        key = normalize_date(entry.date)
        total, ids = daily.get(key, (0, []))
        if entry.task_id and entry.task_id not in ids:
            ids.append(entry.task_id)
        daily[key] = (total + entry.xp_gained, ids)

    buckets = [
        DailyActivity(date=key, total_xp=total, task_count=len(ids), task_ids=ids)
        for key, (total, ids) in daily.items()
    ]
    return _sort_recent_first(buckets)


def limit_active_history(
    history: Sequence[DailyActivity],
    max_days: Optional[int] = None,
) -> Tuple[List[DailyActivity], List[DailyActivity]]:
    """
    Split history into the active window and the overflow to archive

    Returns:
        (active_history, entries_to_archive)
    """
    if max_days is None:
        max_days = config.HISTORY_MAX_ACTIVE_DAYS

    if len(history) <= max_days:
        return list(history), []

    return list(history[:max_days]), list(history[max_days:])


def archive_data(entries: Sequence[DailyActivity], user_id: Optional[str] = None) -> ArchivedHistory:
    """
    Package evicted buckets for long-term storage

    Buckets are flattened back into per-item entries; a day's XP is split
    evenly across its contributing ids ('unknown' when it has none).
    """
    legacy: List[HistoryEntry] = []
    for daily in entries:
        if daily.task_ids:
            xp_per_task = daily.total_xp / len(daily.task_ids)
            legacy.extend(
                HistoryEntry(date=daily.date, xp_gained=xp_per_task, task_id=task_id)
                for task_id in daily.task_ids
            )
        else:
            legacy.append(HistoryEntry(date=daily.date, xp_gained=daily.total_xp, task_id="unknown"))

    return ArchivedHistory(
        entries=tuple(legacy),
        archived_at=datetime.now(timezone.utc).isoformat(),
        user_id=user_id,
        total_entries=len(legacy),
    )


def add_history_entry(
    current_history: Sequence[DailyActivity],
    xp_delta: float,
    entry_date: DateLike,
    contributing_id: str = "",
    max_days: Optional[int] = None,
) -> Tuple[List[DailyActivity], Optional[ArchivedHistory]]:
    """
    Merge one XP delta into the daily buckets

    Args:
        current_history: Buckets, most recent first
        xp_delta: Signed XP change
        entry_date: When the change happened
        contributing_id: Task (or bonus) the change is attributed to
        max_days: Active window size (defaults to HISTORY_MAX_ACTIVE_DAYS)

    Returns:
        (active_history, archived_data or None)
    """
    key = normalize_date(entry_date)
    updated = list(current_history)

    index = next((i for i, b in enumerate(updated) if b.date == key), None)
    if index is not None:
        existing = updated[index]
        ids = list(existing.task_ids)
        if contributing_id and contributing_id not in ids:
            ids.append(contributing_id)
        updated[index] = DailyActivity(
            date=key,
            total_xp=existing.total_xp + xp_delta,
            task_count=len(ids),
            task_ids=ids,
        )
    else:
        ids = [contributing_id] if contributing_id else []
        updated.insert(0, DailyActivity(date=key, total_xp=xp_delta, task_count=len(ids), task_ids=ids))

    active, overflow = limit_active_history(_sort_recent_first(updated), max_days)

    archived = None
    if overflow:
        archived = archive_data(overflow)
        logger.info(f"Archived {len(overflow)} days of history ({archived.total_entries} entries)")

    return active, archived


def _is_legacy_shape(history: Sequence[Any]) -> bool:
    first = history[0]
    if isinstance(first, HistoryEntry):
        return True
    if isinstance(first, dict):
        return "task_id" in first or "xp_gained" in first
    return False


def process_history(
    history: Sequence[Union[DailyActivity, HistoryEntry, dict]],
    user_id: Optional[str] = None,
    max_days: Optional[int] = None,
) -> Tuple[List[DailyActivity], Optional[ArchivedHistory]]:
    """
    Bring a stored history within limits, migrating the legacy format

    Safe to re-run: input that is already bucketed is detected by its shape
    and only trimmed, never re-aggregated.

    Returns:
        (active_history, archived_data or None)
    """
    if not history:
        return [], None

    if _is_legacy_shape(history):
        entries = [e if isinstance(e, HistoryEntry) else HistoryEntry(**e) for e in history]
        daily = aggregate_by_date(entries)
        logger.info(f"Migrated {len(entries)} legacy history entries into {len(daily)} days")
    else:
        daily = [b if isinstance(b, DailyActivity) else DailyActivity(**b) for b in history]

    active, overflow = limit_active_history(daily, max_days)
    archived = archive_data(overflow, user_id) if overflow else None
    return active, archived


def migrate_to_daily_aggregates(legacy_history: Iterable[HistoryEntry]) -> List[DailyActivity]:
    """One-time migration of a flat history into daily buckets"""
    return aggregate_by_date(legacy_history)
