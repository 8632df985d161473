"""
Modèle SQLAlchemy pour les profils utilisateurs.
Le rôle est fixé à la création et ne change plus ; le statut conditionne
presque toutes les vérifications d'autorisation.
"""

import enum
import uuid
from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid, func

from app.database import Base


class Role(str, enum.Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"


class Status(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False)                    # admin, teacher, student, parent
    status = Column(String(20), nullable=False, default="active")  # active, inactive
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    nickname = Column(String(100), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
