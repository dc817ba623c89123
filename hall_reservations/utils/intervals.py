from datetime import date, datetime, time, timedelta, timezone


def normalize_instant(value: datetime) -> datetime:
    """Convert to the naive-UTC form used in storage; naive input is taken as UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    # Half-open intervals: touching endpoints do not overlap
    return start_a < end_b and start_b < end_a


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def merge_intervals(intervals):
    merged = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def free_windows(window_start: datetime, window_end: datetime, busy):
    """Gaps inside [window_start, window_end) not covered by any busy interval."""
    clipped = [
        (max(start, window_start), min(end, window_end))
        for start, end in busy
        if overlaps(start, end, window_start, window_end)
    ]

    available = []
    cursor = window_start
    for start, end in merge_intervals(clipped):
        if start > cursor:
            available.append((cursor, start))
        cursor = max(cursor, end)

    if cursor < window_end:
        available.append((cursor, window_end))

    return available
