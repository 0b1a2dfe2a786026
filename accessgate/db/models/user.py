import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, Uuid
from sqlalchemy.orm import relationship

from accessgate.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    # Opaque to accessgate; hashing belongs to the credential store
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255))
    # Coarse role name (see RoleBasedStrategy)
    role = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    permission_assignments = relationship(
        "UserPermission",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
