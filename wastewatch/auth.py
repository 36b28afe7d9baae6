import uuid
from dataclasses import dataclass

import bcrypt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .crud import DataAccess
from .database import get_db
from .schemas import UserRecord


# Password hashing (direct bcrypt, no passlib)
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return bcrypt.checkpw(plain.encode('utf-8'), hashed.encode('utf-8'))

def new_identity() -> str:
    return f"user_{uuid.uuid4().hex[:24]}"


@dataclass
class SessionContext:
    """Who is calling. Passed explicitly into every page and API handler."""
    is_authenticated: bool = False
    identity: str | None = None
    role: str | None = None
    user: UserRecord | None = None


ANONYMOUS = SessionContext()


def get_session_context(request: Request, db: Session) -> SessionContext:
    """Build the caller context from the session cookie.

    The cookie only carries the identity; the role always comes from the
    users table so a tampered or stale session cannot raise privileges.
    """
    identity = request.session.get("identity")
    if not identity:
        return ANONYMOUS

    user = DataAccess(db).get("users", identity, id_column="clerk_id")
    if user is None or user.is_active is False:
        return ANONYMOUS
    return SessionContext(is_authenticated=True, identity=user.clerk_id, role=user.role, user=user)


def current_context(request: Request, db: Session = Depends(get_db)) -> SessionContext:
    return get_session_context(request, db)


def require_roles(*roles: str):
    """Dependency: 401 when signed out, 403 when the stored role is not allowed."""
    def dependency(ctx: SessionContext = Depends(current_context)) -> SessionContext:
        if not ctx.is_authenticated:
            raise HTTPException(status_code=401, detail="Sign in required")
        if roles and ctx.role not in roles:
            raise HTTPException(status_code=403, detail=f"Requires role: {', '.join(roles)}")
        return ctx
    return dependency
