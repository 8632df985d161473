"""
Modèles SQLAlchemy pour le registre de tickets et le catalogue de récompenses.

Le solde d'un élève n'est stocké nulle part : il vaut toujours
SUM(amount) sur ticket_transactions pour cet élève. Les lignes ne sont
jamais modifiées ni supprimées en fonctionnement normal.
"""

import enum
import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid, func

from app.database import Base


class TransactionType(str, enum.Enum):
    TASK_AWARD = "task_award"
    MANUAL_ADD = "manual_add"
    MANUAL_SUBTRACT = "manual_subtract"
    REDEMPTION = "redemption"
    STREAK_AWARD = "streak_award"


class TicketTransaction(Base):
    __tablename__ = "ticket_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Integer, nullable=False)        # Signé : crédit > 0, débit < 0
    type = Column(String(30), nullable=False)       # task_award, manual_add, manual_subtract, redemption, streak_award
    source_id = Column(Uuid, nullable=True)         # Tâche, admin ou récompense à l'origine de la ligne
    notes = Column(Text, nullable=True)
    timestamp = Column(DateTime, server_default=func.now())


class Reward(Base):
    """Récompense du catalogue. Jamais modifiée par un échange."""
    __tablename__ = "rewards"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    cost = Column(Integer, nullable=False)
    image_path = Column(String(500), nullable=True)
    is_goal_eligible = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
