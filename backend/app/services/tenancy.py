"""
Cloisonnement par entreprise.

Toute lecture d'entité faite au nom d'un appelant passe par ces fonctions :
une entité d'une autre entreprise est traitée exactement comme une entité
inexistante, pour ne pas révéler son existence.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.exceptions import ResourceNotFoundError, StateConflictError
from app.models.profile import Profile, Role, Status


def scoped_select(model, company_id: uuid.UUID):
    """SELECT de base restreint à l'entreprise."""
    return select(model).where(model.company_id == company_id)


def get_scoped(db: Session, model, entity_id: uuid.UUID, company_id: uuid.UUID, label: str):
    """Retourne l'entité si elle appartient à l'entreprise, sinon lève ResourceNotFoundError."""
    entity = db.execute(
        scoped_select(model, company_id).where(model.id == entity_id)
    ).scalar()
    if entity is None:
        raise ResourceNotFoundError(f"{label} introuvable.")
    return entity


def get_active_student(db: Session, student_id: uuid.UUID, company_id: uuid.UUID) -> Profile:
    """
    Retourne un élève de l'entreprise.
    Lève ResourceNotFoundError si absent ou si le profil n'est pas un élève,
    StateConflictError si l'élève est inactif.
    """
    student = get_scoped(db, Profile, student_id, company_id, "Élève")
    if student.role != Role.STUDENT.value:
        raise ResourceNotFoundError("Élève introuvable.")
    if student.status != Status.ACTIVE.value:
        raise StateConflictError("Cet élève est inactif.")
    return student
