import logging

from fastapi import FastAPI, Form, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session
from starlette.middleware.sessions import SessionMiddleware

from . import config, dashboards, models, storage
from .api import router as api_router
from .assignment import visible_complaints
from .auth import get_session_context, hash_password, new_identity, verify_password
from .crud import DataAccess
from .database import engine, get_db
from .operations import OperationError, update_complaint_status, upsert_user

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)

config.STORAGE_DIR.mkdir(parents=True, exist_ok=True)
templates = Jinja2Templates(directory=str(config.TEMPLATE_DIR))

models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="WasteWatch")
app.add_middleware(SessionMiddleware, secret_key=config.SECRET_KEY)
app.mount("/storage", StaticFiles(directory=config.STORAGE_DIR), name="storage")
app.include_router(api_router)

# Buckets are created by the operator; only warn when missing
for bucket in (config.COMPLAINT_BUCKET, config.RECYCLABLE_BUCKET):
    storage.check_bucket(bucket)

ROLE_HOME = {
    "user": "/user-dashboard",
    "officer": "/officer-dashboard",
    "admin": "/admin",
}


# ── Page helpers ──

def require_page(request: Request, db: Session, *roles):
    """Caller context and a redirect; the redirect is set when access is denied."""
    ctx = get_session_context(request, db)
    if not ctx.is_authenticated:
        return ctx, RedirectResponse("/", status_code=302)
    if roles and ctx.role not in roles:
        request.session["flash"] = "You don't have permission to access that page"
        return ctx, RedirectResponse(ROLE_HOME.get(ctx.role, "/"), status_code=302)
    return ctx, None


def render(request: Request, name: str, ctx, **context):
    context.update(ctx=ctx, flash=request.session.pop("flash", None))
    response = templates.TemplateResponse(request, name, context)
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    return response


# ══════════════════════════════════════
#   AUTH ROUTES
# ══════════════════════════════════════

@app.get("/", response_class=HTMLResponse)
def login_page(request: Request):
    if request.session.get("identity"):
        return RedirectResponse("/dashboard", status_code=302)
    return templates.TemplateResponse(request, "login.html", {"error": None})


@app.post("/login")
def do_login(request: Request, email: str = Form(...), password: str = Form(...), db: Session = Depends(get_db)):
    user = DataAccess(db).fetch("users", filter={"email": email.strip().lower()}, single=True)

    if not user or not verify_password(password, user.get("password_hash")):
        return templates.TemplateResponse(request, "login.html", {"error": "Invalid email or password"}, status_code=401)

    if user.get("is_active") is False:
        return templates.TemplateResponse(request, "login.html", {"error": "Account disabled"}, status_code=403)

    request.session.clear()
    request.session["identity"] = user["clerk_id"]
    logger.info(f"User {user['clerk_id']} signed in")
    return RedirectResponse("/dashboard", status_code=302)


@app.get("/register", response_class=HTMLResponse)
def register_page(request: Request):
    return templates.TemplateResponse(request, "register.html", {"error": None})


@app.post("/register")
def do_register(
    request: Request,
    first_name: str = Form(...),
    last_name: str = Form(""),
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    email = email.strip().lower()
    dal = DataAccess(db)

    if dal.fetch("users", filter={"email": email}, single=True):
        return templates.TemplateResponse(request, "register.html", {"error": "Email already registered"}, status_code=400)

    # Roles are never self-assigned; admins promote officers afterwards
    role = "admin" if config.BOOTSTRAP_ADMIN_EMAIL and email == config.BOOTSTRAP_ADMIN_EMAIL else "user"
    user = upsert_user(
        dal,
        new_identity(),
        email=email,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        password_hash=hash_password(password),
        role=role,
    )
    if user is None:
        return templates.TemplateResponse(request, "register.html", {"error": "Could not create account"}, status_code=500)

    request.session.clear()
    request.session["identity"] = user["clerk_id"]
    return RedirectResponse("/dashboard", status_code=302)


@app.get("/logout")
def logout(request: Request):
    request.session.clear()
    return RedirectResponse("/", status_code=302)


@app.get("/dashboard")
def dashboard(request: Request, db: Session = Depends(get_db)):
    ctx = get_session_context(request, db)
    if not ctx.is_authenticated:
        return RedirectResponse("/", status_code=302)
    return RedirectResponse(ROLE_HOME.get(ctx.role, "/"), status_code=302)


@app.get("/health")
def health():
    return {"status": "ok", "buckets": storage.list_buckets()}


# ══════════════════════════════════════
#   PROTECTED PAGES
# ══════════════════════════════════════

@app.get("/user-dashboard", response_class=HTMLResponse)
def user_dashboard(request: Request, db: Session = Depends(get_db)):
    ctx, redirect = require_page(request, db, "user")
    if redirect:
        return redirect
    data = dashboards.user_dashboard(DataAccess(db, ctx.identity), ctx)
    return render(request, "user_dashboard.html", ctx, **data)


@app.get("/officer-dashboard", response_class=HTMLResponse)
def officer_dashboard(request: Request, db: Session = Depends(get_db)):
    ctx, redirect = require_page(request, db, "officer")
    if redirect:
        return redirect
    data = dashboards.officer_dashboard(DataAccess(db, ctx.identity), ctx)
    return render(request, "officer_dashboard.html", ctx, **data)


@app.get("/admin", response_class=HTMLResponse)
def admin(request: Request, db: Session = Depends(get_db)):
    ctx, redirect = require_page(request, db, "admin")
    if redirect:
        return redirect
    dal = DataAccess(db, ctx.identity)
    return render(
        request, "admin.html", ctx,
        stats=dashboards.admin_stats(dal),
        officers=dashboards.officer_roster(dal),
    )


@app.get("/complaints", response_class=HTMLResponse)
def complaints_page(request: Request, q: str = "", db: Session = Depends(get_db)):
    ctx, redirect = require_page(request, db)
    if redirect:
        return redirect
    dal = DataAccess(db, ctx.identity)
    complaints = dashboards.search_complaints(dashboards.load_complaints(dal, ctx), q)
    users = dashboards.users_by_identity(dal)
    return render(request, "complaints.html", ctx, q=q, complaints=[dashboards.complaint_view(c, users) for c in complaints])


@app.get("/complaints/{complaint_id}", response_class=HTMLResponse)
def complaint_detail(request: Request, complaint_id: str, db: Session = Depends(get_db)):
    ctx, redirect = require_page(request, db)
    if redirect:
        return redirect
    dal = DataAccess(db, ctx.identity)
    complaint = dal.get("complaints", complaint_id)
    if complaint is None or not visible_complaints([complaint], ctx, dashboards.officer_area_for(ctx)):
        request.session["flash"] = "The complaint you're looking for doesn't exist or has been removed."
        return RedirectResponse("/complaints", status_code=302)
    view = dashboards.complaint_view(complaint, dashboards.users_by_identity(dal))
    return render(request, "complaint_detail.html", ctx, complaint=view, can_edit=ctx.role in ("officer", "admin"))


@app.post("/complaints/{complaint_id}/status")
def complaint_status_form(
    request: Request,
    complaint_id: str,
    status: str = Form(...),
    resolution_notes: str = Form(""),
    db: Session = Depends(get_db),
):
    ctx, redirect = require_page(request, db, "officer", "admin")
    if redirect:
        return redirect
    try:
        update_complaint_status(DataAccess(db, ctx.identity), complaint_id, status, ctx, resolution_notes)
        request.session["flash"] = f"Complaint marked as {status}"
    except OperationError as e:
        request.session["flash"] = str(e)
    return RedirectResponse(f"/complaints/{complaint_id}", status_code=302)
