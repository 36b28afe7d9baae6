"""Per-role page data: list views, dashboards, admin statistics and schedules.

Everything here reads through DataAccess and shapes typed records into
plain dicts for templates and JSON responses.
"""
from datetime import datetime

from .assignment import (
    UNASSIGNED, areas_match, auto_claim, resolve_officer_area,
    visible_complaints, visible_recyclables,
)
from .formatting import display_name, due_label, relative_date, time_slot
from .models import utcnow


def _newest_first(records):
    return sorted(records, key=lambda r: r.created_at or datetime.min, reverse=True)


def _iso(value):
    return value.isoformat() if value else None


def users_by_identity(dal) -> dict:
    return {u.clerk_id: u for u in dal.records("users")}


def officer_area_for(ctx) -> str:
    if ctx.role != "officer":
        return UNASSIGNED
    return resolve_officer_area(ctx.identity, ctx.user)


# ── list views ──

def complaint_view(c, users: dict, now: datetime | None = None) -> dict:
    submitter = users.get(c.user_id)
    officer = users.get(c.assigned_to) if c.assigned_to else None
    resolution = None
    if c.status == "resolved":
        resolution = {
            "notes": c.resolution_notes,
            "date": _iso(c.resolved_at),
            "officer": display_name(users.get(c.resolved_by), "Unknown"),
        }
    return {
        "id": c.id,
        "title": c.title,
        "description": c.description,
        "location": c.location or "Location not specified",
        "coordinates": c.coordinates.model_dump() if c.coordinates else None,
        "area": c.area or UNASSIGNED,
        "status": c.status,
        "priority": c.priority,
        "date": _iso(c.created_at),
        "relative_date": relative_date(c.created_at, now),
        "due": due_label(c.created_at, c.priority, now),
        "reporter": {
            "id": c.user_id,
            "name": display_name(submitter),
            "contact": submitter.email if submitter and submitter.email else "No contact information",
        },
        "assigned_to": c.assigned_to,
        "assigned_to_name": display_name(officer) if officer else None,
        "assigned_at": _iso(c.assigned_at),
        "image_url": c.image_url,
        "resolution": resolution,
    }


def recyclable_view(i, users: dict, now: datetime | None = None) -> dict:
    return {
        "id": i.id,
        "name": i.name,
        "description": i.description or "No description provided",
        "quantity": i.quantity,
        "weight": f"{i.quantity:g} kg",
        "location": i.location or "No location specified",
        "coordinates": i.coordinates.model_dump() if i.coordinates else None,
        "area": i.area or "Unknown",
        "status": i.status,
        "user_id": i.user_id,
        "user_name": display_name(users.get(i.user_id)),
        "image_url": i.image_url,
        "collection_notes": i.collection_notes or "",
        "schedule_date": _iso(i.schedule_date),
        "collected_at": _iso(i.collected_at),
        "collected_by": i.collected_by,
        "date": _iso(i.created_at),
        "relative_date": relative_date(i.created_at, now),
    }


def search_complaints(complaints: list, q: str | None = None, statuses=None, priorities=None) -> list:
    term = (q or "").strip().lower()
    out = []
    for c in complaints:
        if term and not (term in c.title.lower() or term in (c.location or "").lower() or term in c.id.lower()):
            continue
        if statuses and c.status not in statuses:
            continue
        if priorities and c.priority not in priorities:
            continue
        out.append(c)
    return out


def load_complaints(dal, ctx) -> list:
    """Complaints the caller may see, newest first."""
    if ctx.role == "user":
        rows = dal.records("complaints", filter={"user_id": ctx.identity})
    else:
        rows = dal.records("complaints")
    return _newest_first(visible_complaints(rows, ctx, officer_area_for(ctx)))


def load_recyclables(dal, ctx) -> list:
    if ctx.role == "user":
        rows = dal.records("recyclable_items", filter={"user_id": ctx.identity})
    else:
        rows = dal.records("recyclable_items")
    return _newest_first(visible_recyclables(rows, ctx, officer_area_for(ctx)))


# ── dashboards ──

def user_dashboard(dal, ctx, now: datetime | None = None) -> dict:
    now = now or utcnow()
    complaints = load_complaints(dal, ctx)
    items = load_recyclables(dal, ctx)
    users = users_by_identity(dal)
    return {
        "stats": {
            "total": len(complaints),
            "resolved": sum(1 for c in complaints if c.status == "resolved"),
            "pending": sum(1 for c in complaints if c.status == "pending"),
            "in_progress": sum(1 for c in complaints if c.status == "in-progress"),
            "recyclables": len(items),
            "collected": sum(1 for i in items if i.status == "collected"),
        },
        "recent_complaints": [complaint_view(c, users, now) for c in complaints[:5]],
        "recent_recyclables": [recyclable_view(i, users, now) for i in items[:5]],
    }


def officer_dashboard(dal, ctx, now: datetime | None = None) -> dict:
    """Officer landing data. Claims unassigned work first when the officer has none."""
    now = now or utcnow()
    area = officer_area_for(ctx)
    claimed = auto_claim(dal, ctx.identity, area)

    complaints = dal.records("complaints")
    users = users_by_identity(dal)
    assigned = _newest_first(c for c in complaints if c.assigned_to == ctx.identity)
    open_assigned = [c for c in assigned if c.status != "resolved"]

    area_complaints = _newest_first(
        c for c in complaints
        if c.status != "resolved" and c.assigned_to != ctx.identity and areas_match(c.area, area)
    )

    assigned_views = []
    for c in assigned[:4]:
        view = complaint_view(c, users, now)
        view["relative_date"] = f"Assigned {relative_date(c.assigned_at or c.created_at, now)}"
        assigned_views.append(view)

    return {
        "area": area,
        "claimed": claimed,
        "stats": {
            "assigned": len(assigned),
            "resolved": sum(1 for c in complaints if c.status == "resolved" and c.resolved_by == ctx.identity),
            "pending": sum(1 for c in assigned if c.status in ("pending", "in-progress")),
            "critical": sum(1 for c in assigned if c.priority == "critical"),
        },
        "assigned": assigned_views,
        "schedule": [
            {
                "id": index + 1,
                "title": f"Inspect {c.title}",
                "location": c.location or "Location not specified",
                "time": time_slot(index),
                "complaint_id": c.id,
            }
            for index, c in enumerate(open_assigned[:3])
        ],
        "area_complaints": [
            dict(complaint_view(c, users, now), assigned="Assigned" if c.assigned_to else "Unassigned")
            for c in area_complaints[:4]
        ],
    }


def admin_stats(dal, now: datetime | None = None) -> dict:
    now = now or utcnow()
    users = dal.records("users")
    complaints = dal.records("complaints")
    items = dal.records("recyclable_items")
    by_identity = {u.clerk_id: u for u in users}

    area_stats = []
    for area in sorted({(c.area or UNASSIGNED).strip().lower() for c in complaints}):
        area_complaints = [c for c in complaints if (c.area or UNASSIGNED).strip().lower() == area]
        area_stats.append({
            "area": area,
            "total": len(area_complaints),
            "open": sum(1 for c in area_complaints if c.status != "resolved"),
            "resolved": sum(1 for c in area_complaints if c.status == "resolved"),
        })

    priority_stats = {}
    for c in complaints:
        priority_stats[c.priority] = priority_stats.get(c.priority, 0) + 1

    recyclable_stats = {}
    for i in items:
        recyclable_stats[i.status] = recyclable_stats.get(i.status, 0) + 1

    def _last_touched(record):
        return record.updated_at or record.created_at or datetime.min

    activities = []
    resolved = sorted((c for c in complaints if c.status == "resolved" and c.resolved_by), key=_last_touched, reverse=True)
    for c in resolved[:2]:
        activities.append({
            "id": f"resolved-{c.id}",
            "action": "Complaint Resolved",
            "detail": f"Complaint #{c.id[:8]} resolved by {display_name(by_identity.get(c.resolved_by), 'an officer')}",
            "at": _last_touched(c),
        })
    in_progress = sorted((c for c in complaints if c.status == "in-progress" and c.assigned_to), key=_last_touched, reverse=True)
    for c in in_progress[:2]:
        activities.append({
            "id": f"assigned-{c.id}",
            "action": "Complaint Assigned",
            "detail": f"Complaint #{c.id[:8]} assigned to {display_name(by_identity.get(c.assigned_to), 'an officer')}",
            "at": _last_touched(c),
        })
    for u in _newest_first(users)[:2]:
        activities.append({
            "id": f"user-{u.id}",
            "action": "New User Registered",
            "detail": f"{display_name(u)} registered as {u.role}",
            "at": u.created_at or datetime.min,
        })
    activities.sort(key=lambda a: a["at"], reverse=True)
    for a in activities:
        a["time"] = relative_date(a.pop("at"), now)

    return {
        "total_users": len(users),
        "officers": sum(1 for u in users if u.role == "officer"),
        "total_complaints": len(complaints),
        "open_complaints": sum(1 for c in complaints if c.status != "resolved"),
        "critical_cases": sum(1 for c in complaints if c.priority == "critical"),
        "area_stats": area_stats,
        "priority_stats": priority_stats,
        "recyclable_stats": recyclable_stats,
        "recent_activities": activities,
    }


def officer_roster(dal) -> list:
    complaints = dal.records("complaints")
    roster = []
    for officer in dal.records("users", filter={"role": "officer"}):
        roster.append({
            "clerk_id": officer.clerk_id,
            "name": display_name(officer),
            "email": officer.email,
            "area": resolve_officer_area(officer.clerk_id, officer),
            "active_cases": sum(1 for c in complaints if c.assigned_to == officer.clerk_id and c.status != "resolved"),
            "resolved_cases": sum(1 for c in complaints if c.resolved_by == officer.clerk_id),
            "status": "inactive" if officer.is_active is False else "active",
        })
    return roster


def user_roster(dal) -> list:
    complaints = dal.records("complaints")
    return [
        {
            "clerk_id": u.clerk_id,
            "name": display_name(u),
            "email": u.email,
            "role": u.role,
            "area": u.area,
            "complaint_count": sum(1 for c in complaints if c.user_id == u.clerk_id),
            "status": "inactive" if u.is_active is False else "active",
        }
        for u in dal.records("users", filter={"role": "user"})
    ]


def schedule(dal, ctx) -> list:
    """Officer: open assigned complaints plus pickups in the area. User: own records."""
    if ctx.role == "officer":
        area = officer_area_for(ctx)
        complaints = [c for c in dal.records("complaints") if c.assigned_to == ctx.identity and c.status != "resolved"]
        items = [
            i for i in dal.records("recyclable_items")
            if areas_match(i.area, area) and i.status not in ("collected", "cancelled")
        ]
    else:
        complaints = load_complaints(dal, ctx)
        items = load_recyclables(dal, ctx)

    entries = [
        {
            "type": "complaint",
            "id": c.id,
            "title": c.title,
            "description": c.description,
            "location": c.location or "Location not specified",
            "area": c.area or "Unknown",
            "status": c.status,
            "priority": c.priority,
            "date": _iso(c.assigned_at or c.created_at),
        }
        for c in complaints
    ]
    entries += [
        {
            "type": "recyclable",
            "id": i.id,
            "title": f"Collect {i.name}",
            "description": i.description or "Recyclable item collection",
            "location": i.location or "Location not specified",
            "area": i.area or "Unknown",
            "status": i.status,
            "priority": None,
            "date": _iso(i.schedule_date or i.created_at),
        }
        for i in items
    ]
    return entries
