"""Unit tests for the activity history (src/gamification/history.py)"""
import pytest
from datetime import date, datetime, timedelta, timezone

from src.gamification import history as history_module
from src.gamification.history import (
    add_history_entry,
    aggregate_by_date,
    archive_data,
    limit_active_history,
    migrate_to_daily_aggregates,
    normalize_date,
    process_history,
)
from src.models.history import ArchivedHistory, DailyActivity, HistoryEntry


def _days(count, start=date(2024, 1, 1)):
    """Buckets for `count` consecutive days, most recent first"""
    buckets = [
        DailyActivity(date=(start + timedelta(days=i)).isoformat(), total_xp=10, task_count=1, task_ids=[f"t{i}"])
        for i in range(count)
    ]
    return list(reversed(buckets))


# ============================================================================
# Date Normalization Tests
# ============================================================================

def test_normalize_date_from_date():
    """Test plain dates map to their ISO day"""
    assert normalize_date(date(2024, 3, 9)) == "2024-03-09"


def test_normalize_naive_datetime_is_local():
    """Test naive datetimes keep their own calendar day"""
    assert normalize_date(datetime(2024, 3, 9, 23, 59)) == "2024-03-09"


def test_normalize_aware_datetime_uses_history_timezone(monkeypatch):
    """Test aware datetimes are converted to the configured zone"""
    monkeypatch.setattr(history_module.config, "HISTORY_TIMEZONE", "America/New_York")

    # 02:00 UTC is still the previous evening in New York
    assert normalize_date(datetime(2024, 3, 9, 2, 0, tzinfo=timezone.utc)) == "2024-03-08"


def test_normalize_iso_string_with_z_suffix(monkeypatch):
    """Test ISO strings with a Z suffix are parsed as UTC"""
    monkeypatch.setattr(history_module.config, "HISTORY_TIMEZONE", "UTC")

    assert normalize_date("2024-03-09T10:15:00.000Z") == "2024-03-09"
    assert normalize_date("2024-03-09") == "2024-03-09"


# ============================================================================
# Add Entry Tests
# ============================================================================

def test_add_entry_creates_bucket():
    """Test first entry of a day creates a new bucket"""
    active, archived = add_history_entry([], 15, datetime(2024, 1, 15, 9, 0), "t-1")

    assert archived is None
    assert len(active) == 1
    assert active[0].date == "2024-01-15"
    assert active[0].total_xp == 15
    assert active[0].task_count == 1
    assert active[0].task_ids == ["t-1"]


def test_add_entry_same_day_merges():
    """Test two entries on the same day merge into one bucket"""
    active, _ = add_history_entry([], 15, datetime(2024, 1, 15, 9, 0), "t-1")
    active, _ = add_history_entry(active, 20, datetime(2024, 1, 15, 18, 30), "t-2")

    assert len(active) == 1
    assert active[0].total_xp == 35
    assert active[0].task_count == 2


def test_add_entry_same_id_counted_once():
    """Test task_count counts distinct contributing ids"""
    active, _ = add_history_entry([], 10, date(2024, 1, 15), "t-1")
    active, _ = add_history_entry(active, -10, date(2024, 1, 15), "t-1")

    assert active[0].total_xp == 0
    assert active[0].task_count == 1


def test_add_entry_without_id_counts_no_task():
    """Test entries without a contributing id only move XP"""
    active, _ = add_history_entry([], 10, date(2024, 1, 15), "")

    assert active[0].task_count == 0
    assert active[0].task_ids == []


def test_add_entry_keeps_recent_first():
    """Test buckets stay sorted most recent first, even for back-dated entries"""
    active, _ = add_history_entry([], 10, date(2024, 1, 15), "a")
    active, _ = add_history_entry(active, 10, date(2024, 1, 17), "b")
    active, _ = add_history_entry(active, 10, date(2024, 1, 16), "c")

    assert [b.date for b in active] == ["2024-01-17", "2024-01-16", "2024-01-15"]


def test_add_entry_does_not_mutate_input():
    """Test the input list and buckets are left untouched"""
    original = _days(2)
    snapshot = [b.model_copy() for b in original]

    add_history_entry(original, 50, date(2024, 1, 2), "x")

    assert original == snapshot


def test_add_entry_archives_overflow():
    """Test the day beyond the window is archived, not dropped"""
    active, archived = add_history_entry(_days(3), 5, date(2024, 2, 1), "new", max_days=3)

    assert [b.date for b in active] == ["2024-02-01", "2024-01-03", "2024-01-02"]
    assert isinstance(archived, ArchivedHistory)
    assert archived.total_entries == 1
    assert archived.entries[0].date == "2024-01-01"
    assert archived.entries[0].task_id == "t0"


def test_default_window_is_365_days():
    """Test the configured default keeps one year active"""
    active, archived = add_history_entry(_days(365), 5, date(2025, 6, 1), "new")

    assert len(active) == 365
    assert archived.total_entries == 1


# ============================================================================
# Archive Tests
# ============================================================================

def test_archive_splits_xp_across_ids():
    """Test a day's XP is split evenly over its contributing ids"""
    bucket = DailyActivity(date="2024-01-01", total_xp=30, task_count=3, task_ids=["a", "b", "c"])

    archived = archive_data([bucket], user_id="42")

    assert archived.total_entries == 3
    assert [e.xp_gained for e in archived.entries] == [10, 10, 10]
    assert archived.user_id == "42"
    assert archived.archived_at


def test_archive_day_without_ids_uses_unknown():
    """Test buckets with no ids archive as a single 'unknown' entry"""
    bucket = DailyActivity(date="2024-01-01", total_xp=7)

    archived = archive_data([bucket])

    assert archived.entries[0].task_id == "unknown"
    assert archived.entries[0].xp_gained == 7


def test_archive_is_immutable():
    """Test archived payloads cannot be modified"""
    archived = archive_data(_days(1))

    with pytest.raises(Exception):
        archived.total_entries = 99


def test_limit_active_history_under_limit():
    """Test nothing is archived while under the window"""
    active, overflow = limit_active_history(_days(2), max_days=5)

    assert len(active) == 2
    assert overflow == []


# ============================================================================
# Migration Tests
# ============================================================================

def test_aggregate_legacy_entries():
    """Test flat entries fold into daily buckets"""
    entries = [
        HistoryEntry(date="2024-01-01T08:00:00", xp_gained=10, task_id="a"),
        HistoryEntry(date="2024-01-01T20:00:00", xp_gained=20, task_id="b"),
        HistoryEntry(date="2024-01-01T21:00:00", xp_gained=-10, task_id="a"),
        HistoryEntry(date="2024-01-02T09:00:00", xp_gained=15, task_id="c"),
    ]

    buckets = aggregate_by_date(entries)

    assert [b.date for b in buckets] == ["2024-01-02", "2024-01-01"]
    assert buckets[1].total_xp == 20
    assert buckets[1].task_count == 2
    assert sorted(buckets[1].task_ids) == ["a", "b"]


def test_migration_is_deterministic():
    """Test migrating the same input twice gives the same result"""
    entries = [
        HistoryEntry(date="2024-01-0%dT10:00:00" % (i % 5 + 1), xp_gained=i, task_id=f"t{i % 3}")
        for i in range(20)
    ]

    assert migrate_to_daily_aggregates(entries) == migrate_to_daily_aggregates(entries)


def test_process_history_migrates_legacy_dicts():
    """Test stored legacy dictionaries are detected and aggregated"""
    raw = [
        {"date": "2024-01-01T10:00:00", "xp_gained": 10, "task_id": "a"},
        {"date": "2024-01-01T11:00:00", "xp_gained": 5, "task_id": "b"},
    ]

    active, archived = process_history(raw)

    assert archived is None
    assert len(active) == 1
    assert active[0].total_xp == 15


def test_process_history_rerun_is_noop():
    """Test already-bucketed history passes through unchanged"""
    entries = [HistoryEntry(date="2024-01-01", xp_gained=10, task_id="a")]
    first, _ = process_history(entries)

    second, archived = process_history(first)

    assert second == first
    assert archived is None


def test_process_history_trims_and_archives():
    """Test processing enforces the active window"""
    active, archived = process_history(_days(10), user_id="42", max_days=7)

    assert len(active) == 7
    assert archived.total_entries == 3
    assert archived.user_id == "42"


def test_process_history_empty():
    """Test empty history stays empty"""
    assert process_history([]) == ([], None)
