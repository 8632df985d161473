"""
Modèle SQLAlchemy pour les journaux de pratique.
Au plus une ligne par élève et par jour calendaire (contrainte d'unicité).
"""

import uuid
from sqlalchemy import Column, Date, DateTime, ForeignKey, UniqueConstraint, Uuid, func

from app.database import Base


class PracticeLog(Base):
    __tablename__ = "practice_logs"
    __table_args__ = (
        UniqueConstraint("student_id", "log_date", name="uq_practice_logs_student_day"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    log_date = Column(Date, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
