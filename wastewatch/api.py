import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import dashboards
from .assignment import visible_complaints, visible_recyclables
from .auth import SessionContext, require_roles
from .crud import DataAccess
from .database import get_db
from .operations import (
    OperationError, complete_task, update_complaint_status, update_recyclable_status,
)
from .schemas import (
    ComplaintStatusUpdate, ProfileUpdate, RecyclableStatusUpdate, UserAdminUpdate,
)
from .wizard import WIZARDS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

signed_in = require_roles()
staff = require_roles("officer", "admin")
citizen = require_roles("user")
officer_only = require_roles("officer")
admin_only = require_roles("admin")


def _raise(e: OperationError):
    raise HTTPException(status_code=e.status_code, detail=str(e))


# ── Session / profile ──

@router.get("/me")
def me(ctx: SessionContext = Depends(signed_in)):
    return {
        "is_authenticated": ctx.is_authenticated,
        "identity": ctx.identity,
        "role": ctx.role,
        "area": dashboards.officer_area_for(ctx) if ctx.role == "officer" else ctx.user.area,
    }


@router.get("/profile")
def get_profile(ctx: SessionContext = Depends(signed_in)):
    return ctx.user.model_dump()


@router.patch("/profile")
def update_profile(body: ProfileUpdate, ctx: SessionContext = Depends(signed_in), db: Session = Depends(get_db)):
    row = DataAccess(db, ctx.identity).update("users", ctx.identity, body, id_column="clerk_id")
    if row is None:
        raise HTTPException(status_code=500, detail="Failed to update profile")
    row.pop("password_hash", None)
    return jsonable_encoder(row)


# ── Complaints ──

@router.get("/complaints")
def list_complaints(
    q: Optional[str] = None,
    status: Optional[List[str]] = Query(None),
    priority: Optional[List[str]] = Query(None),
    ctx: SessionContext = Depends(signed_in),
    db: Session = Depends(get_db),
):
    dal = DataAccess(db, ctx.identity)
    complaints = dashboards.search_complaints(dashboards.load_complaints(dal, ctx), q, status, priority)
    users = dashboards.users_by_identity(dal)
    return [dashboards.complaint_view(c, users) for c in complaints]


@router.get("/complaints/{complaint_id}")
def get_complaint(complaint_id: str, ctx: SessionContext = Depends(signed_in), db: Session = Depends(get_db)):
    dal = DataAccess(db, ctx.identity)
    complaint = dal.get("complaints", complaint_id)
    if complaint is None or not visible_complaints([complaint], ctx, dashboards.officer_area_for(ctx)):
        raise HTTPException(status_code=404, detail="Complaint not found")
    return dashboards.complaint_view(complaint, dashboards.users_by_identity(dal))


@router.patch("/complaints/{complaint_id}/status")
def set_complaint_status(
    complaint_id: str,
    body: ComplaintStatusUpdate,
    ctx: SessionContext = Depends(staff),
    db: Session = Depends(get_db),
):
    try:
        row = update_complaint_status(DataAccess(db, ctx.identity), complaint_id, body.status, ctx, body.resolution_notes)
    except OperationError as e:
        _raise(e)
    return jsonable_encoder(row)


# ── Recyclable items ──

@router.get("/recyclables")
def list_recyclables(
    status: Optional[List[str]] = Query(None),
    ctx: SessionContext = Depends(signed_in),
    db: Session = Depends(get_db),
):
    dal = DataAccess(db, ctx.identity)
    items = dashboards.load_recyclables(dal, ctx)
    if status:
        items = [i for i in items if i.status in status]
    users = dashboards.users_by_identity(dal)
    return [dashboards.recyclable_view(i, users) for i in items]


@router.get("/recyclables/{item_id}")
def get_recyclable(item_id: str, ctx: SessionContext = Depends(signed_in), db: Session = Depends(get_db)):
    dal = DataAccess(db, ctx.identity)
    item = dal.get("recyclable_items", item_id)
    if item is None or not visible_recyclables([item], ctx, dashboards.officer_area_for(ctx)):
        raise HTTPException(status_code=404, detail="Recyclable item not found")
    return dashboards.recyclable_view(item, dashboards.users_by_identity(dal))


@router.patch("/recyclables/{item_id}/status")
def set_recyclable_status(
    item_id: str,
    body: RecyclableStatusUpdate,
    ctx: SessionContext = Depends(staff),
    db: Session = Depends(get_db),
):
    try:
        row = update_recyclable_status(DataAccess(db, ctx.identity), item_id, body.status, ctx, body.notes)
    except OperationError as e:
        _raise(e)
    return jsonable_encoder(row)


# ── Submission wizards ──

def _session_key(kind: str) -> str:
    return f"wizard:{kind}"


def _load_wizard(request: Request, kind: str):
    if kind not in WIZARDS:
        raise HTTPException(status_code=404, detail=f"Unknown wizard '{kind}'")
    return WIZARDS[kind].from_dict(request.session.get(_session_key(kind)))


def _save_wizard(request: Request, wizard):
    request.session[_session_key(wizard.kind)] = wizard.to_dict()
    return wizard.to_dict()


@router.post("/wizards/{kind}")
def start_wizard(kind: str, request: Request, ctx: SessionContext = Depends(citizen)):
    wizard = _load_wizard(request, kind)
    wizard.reset()
    return _save_wizard(request, wizard)


@router.get("/wizards/{kind}")
def get_wizard(kind: str, request: Request, ctx: SessionContext = Depends(citizen)):
    return _load_wizard(request, kind).to_dict()


@router.patch("/wizards/{kind}")
def update_wizard(kind: str, request: Request, fields: dict = Body(...), ctx: SessionContext = Depends(citizen)):
    wizard = _load_wizard(request, kind)
    wizard.update(fields)
    return _save_wizard(request, wizard)


@router.post("/wizards/{kind}/next")
def wizard_next(kind: str, request: Request, ctx: SessionContext = Depends(citizen)):
    wizard = _load_wizard(request, kind)
    advanced = wizard.next()
    return dict(_save_wizard(request, wizard), advanced=advanced)


@router.post("/wizards/{kind}/back")
def wizard_back(kind: str, request: Request, ctx: SessionContext = Depends(citizen)):
    wizard = _load_wizard(request, kind)
    wizard.back()
    return _save_wizard(request, wizard)


@router.post("/wizards/{kind}/submit")
def wizard_submit(
    kind: str,
    request: Request,
    image: Optional[UploadFile] = File(None),
    ctx: SessionContext = Depends(citizen),
    db: Session = Depends(get_db),
):
    wizard = _load_wizard(request, kind)
    upload = (image.filename, image.file.read()) if image is not None and image.filename else None

    row = wizard.submit(DataAccess(db, ctx.identity), upload)
    state = _save_wizard(request, wizard)
    if row is None:
        return JSONResponse(status_code=422, content=state)

    redirect = "/complaints" if kind == "complaint" else "/user-dashboard"
    return JSONResponse(status_code=201, content=jsonable_encoder({"record": row, "redirect": redirect}))


# ── Schedule ──

@router.get("/schedule")
def get_schedule(ctx: SessionContext = Depends(require_roles("user", "officer")), db: Session = Depends(get_db)):
    return dashboards.schedule(DataAccess(db, ctx.identity), ctx)


@router.post("/schedule/{kind}/{record_id}/complete")
def complete_schedule_task(kind: str, record_id: str, ctx: SessionContext = Depends(staff), db: Session = Depends(get_db)):
    try:
        row = complete_task(DataAccess(db, ctx.identity), kind, record_id, ctx)
    except OperationError as e:
        _raise(e)
    return jsonable_encoder(row)


# ── Dashboards ──

@router.get("/officer/dashboard")
def officer_dashboard(ctx: SessionContext = Depends(officer_only), db: Session = Depends(get_db)):
    return dashboards.officer_dashboard(DataAccess(db, ctx.identity), ctx)


@router.get("/user/dashboard")
def user_dashboard(ctx: SessionContext = Depends(citizen), db: Session = Depends(get_db)):
    return dashboards.user_dashboard(DataAccess(db, ctx.identity), ctx)


@router.get("/admin/stats")
def admin_stats(ctx: SessionContext = Depends(admin_only), db: Session = Depends(get_db)):
    return dashboards.admin_stats(DataAccess(db, ctx.identity))


@router.get("/admin/officers")
def admin_officers(ctx: SessionContext = Depends(admin_only), db: Session = Depends(get_db)):
    return dashboards.officer_roster(DataAccess(db, ctx.identity))


@router.get("/admin/users")
def admin_users(ctx: SessionContext = Depends(admin_only), db: Session = Depends(get_db)):
    return dashboards.user_roster(DataAccess(db, ctx.identity))


@router.patch("/admin/users/{clerk_id}")
def admin_update_user(clerk_id: str, body: UserAdminUpdate, ctx: SessionContext = Depends(admin_only), db: Session = Depends(get_db)):
    row = DataAccess(db, ctx.identity).update("users", clerk_id, body, id_column="clerk_id")
    if row is None:
        raise HTTPException(status_code=404, detail="User not found")
    row.pop("password_hash", None)
    logger.info(f"Admin {ctx.identity} updated user {clerk_id}: {body.model_dump(exclude_unset=True)}")
    return jsonable_encoder(row)
