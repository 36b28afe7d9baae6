import math
from datetime import datetime, timedelta

from .models import utcnow

# Days allowed to handle a complaint, by priority
DUE_DAYS = {"low": 7, "medium": 5, "high": 3, "critical": 1}


def relative_date(value: datetime | None, now: datetime | None = None) -> str:
    if value is None:
        return "unknown"
    now = now or utcnow()
    days = abs((now - value).days)
    if days == 0:
        return "today"
    if days == 1:
        return "yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    return f"{days // 30} months ago"


def due_label(created_at: datetime | None, priority: str | None, now: datetime | None = None) -> str:
    if created_at is None:
        return "Unknown"
    now = now or utcnow()
    due = created_at + timedelta(days=DUE_DAYS.get(priority or "low", 7))
    days = math.ceil((due - now).total_seconds() / 86400)
    if days < 0:
        return "Overdue"
    if days == 0:
        return "Today"
    if days == 1:
        return "1 day"
    return f"{days} days"


def time_slot(index: int) -> str:
    start = 9 + index * 2
    return f"{start:02d}:00 - {start + 1:02d}:30"


def display_name(user, default: str = "Unknown User") -> str:
    if user is None:
        return default
    name = f"{user.first_name or ''} {user.last_name or ''}".strip()
    return name or user.email or default
