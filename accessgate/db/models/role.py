import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON, Boolean, Uuid

from accessgate.db.base import Base


class Role(Base):
    __tablename__ = "roles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), unique=True, nullable=False)
    display_name = Column(String(255), nullable=False)
    description = Column(String(500))
    # [{"resource": "payments", "actions": ["read", "approve"]}, ...]
    permissions = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True)
    is_system_role = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
