import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, TIMESTAMP, Float, Boolean, JSON

from .database import Base


def utcnow() -> datetime:
    # Naive UTC, the way the columns store it
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=new_id)
    clerk_id = Column(String(64), unique=True, nullable=False, index=True)
    email = Column(String(200), unique=True)
    first_name = Column(String(100), default="")
    last_name = Column(String(100), default="")
    avatar_url = Column(Text, nullable=True)
    password_hash = Column(Text, nullable=True)
    role = Column(String(20), default="user", nullable=False)
    area = Column(String(120), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP, default=utcnow)
    updated_at = Column(TIMESTAMP, default=utcnow)


class Complaint(Base):
    __tablename__ = "complaints"
    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(Text, nullable=True)
    coordinates = Column(JSON, nullable=True)
    area = Column(String(120), nullable=True, index=True)
    priority = Column(String(20), default="medium")
    status = Column(String(20), default="pending", nullable=False)
    user_id = Column(String(64), nullable=False, index=True)
    assigned_to = Column(String(64), nullable=True, index=True)
    assigned_at = Column(TIMESTAMP, nullable=True)
    image_url = Column(Text, nullable=True)
    resolution_notes = Column(Text, nullable=True)
    resolved_at = Column(TIMESTAMP, nullable=True)
    resolved_by = Column(String(64), nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow)
    updated_at = Column(TIMESTAMP, default=utcnow)


class RecyclableItem(Base):
    __tablename__ = "recyclable_items"
    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    description = Column(Text, default="")
    quantity = Column(Float, default=1)
    location = Column(Text, nullable=True)
    coordinates = Column(JSON, nullable=True)
    area = Column(String(120), nullable=True, index=True)
    status = Column(String(20), default="pending", nullable=False)
    user_id = Column(String(64), nullable=False, index=True)
    image_url = Column(Text, nullable=True)
    collection_notes = Column(Text, nullable=True)
    schedule_date = Column(TIMESTAMP, nullable=True)
    collected_at = Column(TIMESTAMP, nullable=True)
    collected_by = Column(String(64), nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow)
    updated_at = Column(TIMESTAMP, default=utcnow)


TABLES = {
    "users": User,
    "complaints": Complaint,
    "recyclable_items": RecyclableItem,
}
