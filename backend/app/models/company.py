"""
Modèle SQLAlchemy pour les entreprises (locataires).
Chaque autre table porte un company_id : c'est la frontière d'isolation des données.
"""

import uuid
from sqlalchemy import Column, DateTime, String, Uuid, func

from app.database import Base


class Company(Base):
    __tablename__ = "companies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
