"""
Tables de liaison sans cycle de vie propre, et catalogue d'instruments.
Les liaisons sont synchronisées en bloc (diff état souhaité / état courant).
"""

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid, func

from app.database import Base


class Instrument(Base):
    __tablename__ = "instruments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class StudentTeacher(Base):
    """Association élève ↔ professeurs."""
    __tablename__ = "student_teachers"

    student_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    teacher_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime, server_default=func.now())


class ParentStudent(Base):
    """Association parent ↔ élèves."""
    __tablename__ = "parent_students"

    parent_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    student_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime, server_default=func.now())


class StudentInstrument(Base):
    """Association élève ↔ instruments pratiqués."""
    __tablename__ = "student_instruments"

    student_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    instrument_id = Column(Uuid, ForeignKey("instruments.id", ondelete="CASCADE"), primary_key=True)
