"""Area routing: which complaints and pickups a caller sees, and auto-claim for idle officers.

Areas are free text typed by citizens ("Bopal", "south bopal ", "Bopal Road"),
so matching is loose: exact match ignoring case, else substring
containment either way. A directional qualifier present on only one side
("South Bopal" vs "Bopal") marks a different zone and blocks the match.
"""
import logging
import re
from datetime import datetime

from . import config

logger = logging.getLogger(__name__)

UNASSIGNED = "unassigned"
QUALIFIERS = ("south", "north", "east", "west")


def normalize_area(text) -> str:
    return " ".join((text or "").lower().split())


def _qualifiers(area: str) -> set:
    return set(re.findall(r"[a-z]+", area)) & set(QUALIFIERS)


def _related(a: str, b: str) -> bool:
    return a == b or a in b or b in a


def areas_match(record_area, officer_area) -> bool:
    a = normalize_area(record_area)
    b = normalize_area(officer_area)
    if not a or not b or UNASSIGNED in (a, b):
        return False
    if a == b:
        return True
    return _related(a, b) and _qualifiers(a) == _qualifiers(b)


def _area_conflict(record_area, officer_area) -> bool:
    # Same place name, different directional zone ("south bopal" vs "bopal")
    a = normalize_area(record_area)
    b = normalize_area(officer_area)
    if not a or not b:
        return False
    return _related(a, b) and _qualifiers(a) != _qualifiers(b)


def resolve_officer_area(identity: str, user=None, fallbacks: dict | None = None) -> str:
    """Stored area of the officer, else the configured per-identity fallback, else 'unassigned'."""
    if fallbacks is None:
        fallbacks = config.OFFICER_AREA_FALLBACKS
    if user is not None and normalize_area(user.area):
        return user.area
    if identity in fallbacks:
        return fallbacks[identity]
    return UNASSIGNED


def visible_complaints(complaints: list, ctx, officer_area: str = UNASSIGNED) -> list:
    if ctx.role == "admin":
        return list(complaints)
    if ctx.role == "officer":
        return [
            c for c in complaints
            if c.assigned_to == ctx.identity
            or areas_match(c.area, officer_area)
            or c.assigned_to is None
        ]
    if ctx.role == "user":
        return [c for c in complaints if c.user_id == ctx.identity]
    return []


def visible_recyclables(items: list, ctx, officer_area: str = UNASSIGNED) -> list:
    if ctx.role == "admin":
        return list(items)
    if ctx.role == "officer":
        return [i for i in items if areas_match(i.area, officer_area)]
    if ctx.role == "user":
        return [i for i in items if i.user_id == ctx.identity]
    return []


def _oldest_first(complaint):
    return complaint.created_at or datetime.min


def auto_claim(dal, officer: str, officer_area: str, batch_size: int | None = None) -> list[str]:
    """Claim unassigned complaints for an officer with no assigned complaints, resolved or not.

    Area-matching complaints are preferred; if none exist, any unassigned
    complaint outside a conflicting zone is taken. Returns the ids won.
    Claims lost to another officer, or failed writes, are logged and skipped.
    """
    if batch_size is None:
        batch_size = config.CLAIM_BATCH_SIZE

    complaints = dal.records("complaints")
    assigned = [c for c in complaints if c.assigned_to == officer]
    if assigned:
        logger.debug(f"Officer {officer} already has {len(assigned)} assigned complaints")
        return []

    unassigned = sorted(
        (c for c in complaints if c.assigned_to is None and c.status != "resolved"),
        key=_oldest_first,
    )
    candidates = [c for c in unassigned if areas_match(c.area, officer_area)]
    if not candidates:
        logger.info(f"No unassigned complaints in area '{officer_area}', falling back to any unassigned")
        candidates = [c for c in unassigned if not _area_conflict(c.area, officer_area)]

    area = officer_area if normalize_area(officer_area) not in ("", UNASSIGNED) else None
    claimed = []
    for complaint in candidates[:batch_size]:
        if dal.claim("complaints", complaint.id, officer, area):
            logger.info(f"Auto-assigned complaint {complaint.id} to officer {officer} (area {area})")
            claimed.append(complaint.id)
        else:
            logger.warning(f"Could not claim complaint {complaint.id} for officer {officer}")
    return claimed
