import logging

from .models import utcnow
from .schemas import COMPLAINT_STATUSES, RECYCLABLE_STATUSES

logger = logging.getLogger(__name__)

STAFF_ROLES = ("officer", "admin")


class OperationError(Exception):
    status_code = 400


class NotFound(OperationError):
    status_code = 404


class Forbidden(OperationError):
    status_code = 403


class InvalidUpdate(OperationError):
    status_code = 422


def _require_staff(actor):
    if actor.role not in STAFF_ROLES:
        raise Forbidden("Only officers and admins can change status")


def update_complaint_status(dal, complaint_id: str, status: str, actor, notes: str | None = None) -> dict:
    """Set a complaint's status. Resolving requires notes and records who resolved it.

    Applying the same status twice leaves the complaint in that status; no
    other rows are written.
    """
    _require_staff(actor)
    if status not in COMPLAINT_STATUSES:
        raise InvalidUpdate(f"Unknown complaint status '{status}'")
    if dal.get("complaints", complaint_id) is None:
        raise NotFound(f"Complaint {complaint_id} not found")

    updates = {"status": status}
    if status == "resolved":
        if not (notes or "").strip():
            raise InvalidUpdate("Resolution notes are required to resolve a complaint")
        updates.update(resolution_notes=notes.strip(), resolved_at=utcnow(), resolved_by=actor.identity)

    row = dal.update("complaints", complaint_id, updates)
    if row is None:
        raise OperationError("Failed to update complaint status. Please try again.")
    logger.info(f"Complaint {complaint_id} marked {status} by {actor.identity}")
    return row


def update_recyclable_status(dal, item_id: str, status: str, actor, notes: str | None = None) -> dict:
    _require_staff(actor)
    if status not in RECYCLABLE_STATUSES:
        raise InvalidUpdate(f"Unknown recyclable item status '{status}'")
    if dal.get("recyclable_items", item_id) is None:
        raise NotFound(f"Recyclable item {item_id} not found")

    updates = {"status": status}
    if status == "scheduled":
        updates["schedule_date"] = utcnow()
    elif status == "collected":
        updates["collected_at"] = utcnow()
        updates["collected_by"] = actor.identity
    if status in ("scheduled", "collected") and (notes or "").strip():
        updates["collection_notes"] = notes.strip()

    row = dal.update("recyclable_items", item_id, updates)
    if row is None:
        raise OperationError("Failed to update recyclable item status. Please try again.")
    logger.info(f"Recyclable item {item_id} marked {status} by {actor.identity}")
    return row


def complete_task(dal, kind: str, record_id: str, actor) -> dict:
    """Schedule shortcut: resolve a complaint or mark a pickup collected."""
    _require_staff(actor)
    if kind == "complaint":
        table = "complaints"
        updates = {"status": "resolved", "resolved_at": utcnow(), "resolved_by": actor.identity}
    elif kind == "recyclable":
        table = "recyclable_items"
        updates = {"status": "collected", "collected_at": utcnow(), "collected_by": actor.identity}
    else:
        raise InvalidUpdate(f"Unknown task kind '{kind}'")

    if dal.get(table, record_id) is None:
        raise NotFound(f"{kind.capitalize()} {record_id} not found")
    row = dal.update(table, record_id, updates)
    if row is None:
        raise OperationError(f"Failed to complete {kind} {record_id}")
    return row


def upsert_user(dal, clerk_id: str, **profile):
    """Create the user row on first sign-in, or refresh its profile fields."""
    if dal.get("users", clerk_id, id_column="clerk_id") is not None:
        return dal.update("users", clerk_id, profile, id_column="clerk_id")
    return dal.insert("users", {"clerk_id": clerk_id, **profile})
