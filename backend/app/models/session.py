"""
Modèles SQLAlchemy pour la connexion par PIN et les sessions associées.
"""

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid, func

from app.database import Base


class OneTimePin(Base):
    """
    PIN à usage unique : utilisable une seule fois (claimed_at passe de NULL
    à une date) et uniquement avant expires_at. Purgé une fois consommé ou expiré.
    """
    __tablename__ = "onetime_pins"

    pin = Column(String(12), primary_key=True)
    user_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    target_role = Column(String(20), nullable=False)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    claimed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class ActiveRefreshToken(Base):
    """Jeton de rafraîchissement : seul le hash salé est conservé, jamais le jeton brut."""
    __tablename__ = "active_refresh_tokens"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    token_hash = Column(String(64), unique=True, nullable=False)
    role = Column(String(20), nullable=False)          # Rôle porté par les jetons d'accès de cette session
    viewing_student_id = Column(Uuid, nullable=True)   # Session parent ouverte sur un élève
    expires_at = Column(DateTime, nullable=False)
    last_used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
