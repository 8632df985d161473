"""
Modèles SQLAlchemy pour la bibliothèque de tâches et les tâches assignées.

Cycle de vie d'une tâche assignée :
- ASSIGNED          : is_complete = False, verification_status = NULL
- COMPLETED_PENDING : is_complete = True,  verification_status = 'pending'
- terminal          : verification_status ∈ {verified, partial, incomplete}
"""

import enum
import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid, func

from app.database import Base


class VerificationStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    PARTIAL = "partial"
    INCOMPLETE = "incomplete"


TERMINAL_STATUSES = {
    VerificationStatus.VERIFIED.value,
    VerificationStatus.PARTIAL.value,
    VerificationStatus.INCOMPLETE.value,
}


class TaskLibraryItem(Base):
    """Modèle de tâche réutilisable, propre à une entreprise."""
    __tablename__ = "task_library"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    base_tickets = Column(Integer, nullable=False, default=0)
    reference_url = Column(String(500), nullable=True)
    attachment_path = Column(String(500), nullable=True)   # Chemin opaque dans le stockage de fichiers
    can_self_assign = Column(Boolean, nullable=False, default=False)
    created_by_id = Column(Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class AssignedTask(Base):
    """
    Instance d'une tâche donnée à un élève.
    Les champs task_* sont une copie figée au moment de l'assignation.
    """
    __tablename__ = "assigned_tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_by_id = Column(Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    task_library_id = Column(Uuid, ForeignKey("task_library.id", ondelete="SET NULL"), nullable=True)

    task_title = Column(String(255), nullable=False)
    task_description = Column(Text, nullable=True)
    task_base_points = Column(Integer, nullable=False)
    task_link_url = Column(String(500), nullable=True)
    task_attachment_path = Column(String(500), nullable=True)

    assigned_date = Column(DateTime, server_default=func.now())
    is_complete = Column(Boolean, nullable=False, default=False)
    completed_date = Column(DateTime, nullable=True)

    verification_status = Column(String(20), nullable=True)  # NULL, pending, verified, partial, incomplete
    verified_by_id = Column(Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    verified_date = Column(DateTime, nullable=True)
    actual_points_awarded = Column(Integer, nullable=True)
