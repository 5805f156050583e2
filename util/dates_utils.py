from datetime import datetime, timedelta
from typing import List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


def month_start(reference_date: datetime) -> datetime:
    """Midnight on the first day of *reference_date*'s month."""
    return datetime(reference_date.year, reference_date.month, 1)


def add_months(reference_date: datetime, amount: int) -> datetime:
    """
    Shift the first day of *reference_date*'s month by *amount* months.

    Args:
        reference_date: Any datetime inside the starting month
        amount: Number of months to move, negative to go back

    Returns:
        The first day of the resulting month at midnight
    """
    index = reference_date.year * 12 + (reference_date.month - 1) + amount
    return datetime(index // 12, index % 12 + 1, 1)


def month_windows(reference_date: datetime, months: int = 6) -> List[Tuple[datetime, datetime]]:
    """
    Build the [start, end) windows of the trailing calendar months.

    The last window is the month containing *reference_date*; windows are
    returned oldest first.
    """
    current = month_start(reference_date)
    windows = []
    for offset in range(months - 1, -1, -1):
        start = add_months(current, -offset)
        windows.append((start, add_months(start, 1)))
    return windows


def month_key(reference_date: datetime) -> str:
    return reference_date.strftime("%Y-%m")


def month_label(reference_date: datetime) -> str:
    return reference_date.strftime("%b %Y")


def relative_time(created_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Convert datetime to relative time string"""
    if created_at is None:
        return ""
    if isinstance(created_at, str):
        try:
            created_at = datetime.fromisoformat(created_at.replace('Z', '+00:00')).replace(tzinfo=None)
        except ValueError:
            logger.warning(f"Unparseable timestamp '{created_at}'")
            return ""
    delta = (now or datetime.now()) - created_at
    if delta < timedelta(minutes=1):
        return "Just now"
    elif delta < timedelta(hours=1):
        return f"{delta.seconds//60}m"
    elif delta < timedelta(days=1):
        return f"{delta.seconds//3600}h"
    return f"{delta.days}d"
