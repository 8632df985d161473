"""
Service métier pour la gestion des utilisateurs d'une entreprise.

Les liaisons (professeurs, parents, instruments) sont synchronisées par
différence : on supprime les paires retirées et on insère les nouvelles.
Le rôle d'un profil est fixé à la création.
"""

import uuid
import logging
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import AuthorizationError, StateConflictError, ValidationError
from app.models.links import Instrument, ParentStudent, StudentInstrument, StudentTeacher
from app.models.profile import Profile, Role, Status
from app.schemas.user import UserCreate, UserResponse, UserUpdate
from app.services import authorization
from app.services.authorization import Caller, Capability
from app.services.tenancy import get_scoped

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {"first_name", "last_name", "nickname"}


def _require_user_admin(db: Session, caller: Caller) -> None:
    role = authorization.active_role(db, caller.id)
    if not authorization.has_capability(role, Capability.MANAGE_USERS):
        raise AuthorizationError("Permission refusée : seuls les admins actifs gèrent les utilisateurs.")


def create_user(db: Session, caller: Caller, data: UserCreate) -> UserResponse:
    """
    Crée un profil dans l'entreprise de l'admin, avec ses liaisons.
    Les cibles des liaisons doivent appartenir à l'entreprise et avoir le bon rôle.
    """
    _require_user_admin(db, caller)

    _check_profiles(db, caller.company_id, data.linked_teacher_ids, Role.TEACHER, "Professeur")
    _check_profiles(db, caller.company_id, data.linked_student_ids, Role.STUDENT, "Élève")
    _check_instruments(db, caller.company_id, data.instrument_ids)

    profile = Profile(
        company_id=caller.company_id,
        role=data.role.value,
        status=Status.ACTIVE.value,
        first_name=data.first_name,
        last_name=data.last_name,
        nickname=data.nickname,
    )
    db.add(profile)
    db.flush()

    if data.role == Role.STUDENT:
        _sync_links(db, StudentTeacher, "student_id", profile.id, "teacher_id", data.linked_teacher_ids)
        _sync_links(db, StudentInstrument, "student_id", profile.id, "instrument_id", data.instrument_ids)
    elif data.role == Role.PARENT:
        _sync_links(db, ParentStudent, "parent_id", profile.id, "student_id", data.linked_student_ids)

    db.commit()
    db.refresh(profile)

    logger.info(
        "Utilisateur créé : %s %s (%s, %s) par l'admin %s",
        profile.first_name, profile.last_name, profile.role, profile.id, caller.id,
    )
    return to_response(db, profile)


def update_user(db: Session, caller: Caller, data: UserUpdate) -> UserResponse:
    """
    Met à jour un profil. Chaque groupe de champs a ses propres droits :

    - prénom, nom, surnom : l'utilisateur lui-même, un admin, ou un professeur
      lié (si la cible est un élève)
    - instruments : un admin ou un professeur lié
    - professeurs d'un élève, élèves d'un parent : un admin

    Toutes les permissions sont vérifiées avant la moindre écriture.
    """
    target = get_scoped(db, Profile, data.user_id, caller.company_id, "Utilisateur")
    updates = data.updates.model_dump(exclude_unset=True)
    if not updates:
        raise ValidationError("Aucune modification fournie.")

    caller_role = authorization.active_role(db, caller.id)
    if caller_role is None:
        raise AuthorizationError("Permission refusée : compte inactif ou introuvable.")
    is_admin = caller_role == Role.ADMIN
    is_linked_teacher = (
        caller_role == Role.TEACHER
        and target.role == Role.STUDENT.value
        and authorization.is_teacher_linked(db, caller.id, target.id)
    )

    if PROFILE_FIELDS & updates.keys():
        if not (caller.id == target.id or is_admin or is_linked_teacher):
            raise AuthorizationError("Permission refusée : vous ne pouvez pas modifier ce profil.")
    if "instrument_ids" in updates:
        if target.role != Role.STUDENT.value:
            raise ValidationError("Seul un élève peut être lié à des instruments.")
        if not (is_admin or is_linked_teacher):
            raise AuthorizationError("Permission refusée : vous ne pouvez pas modifier les instruments.")
    if "linked_teacher_ids" in updates:
        if target.role != Role.STUDENT.value:
            raise ValidationError("Seul un élève peut être lié à des professeurs.")
        if not is_admin:
            raise AuthorizationError("Permission refusée : seul un admin modifie les professeurs d'un élève.")
    if "linked_student_ids" in updates:
        if target.role != Role.PARENT.value:
            raise ValidationError("Seul un parent peut être lié à des élèves.")
        if not is_admin:
            raise AuthorizationError("Permission refusée : seul un admin modifie les élèves d'un parent.")

    if updates.get("instrument_ids") is not None:
        _check_instruments(db, caller.company_id, updates["instrument_ids"])
    if updates.get("linked_teacher_ids") is not None:
        _check_profiles(db, caller.company_id, updates["linked_teacher_ids"], Role.TEACHER, "Professeur")
    if updates.get("linked_student_ids") is not None:
        _check_profiles(db, caller.company_id, updates["linked_student_ids"], Role.STUDENT, "Élève")

    if updates.get("first_name", "") is None or updates.get("last_name", "") is None:
        raise ValidationError("Le prénom et le nom ne peuvent pas être vides.")

    for field in PROFILE_FIELDS & updates.keys():
        setattr(target, field, updates[field])

    if "instrument_ids" in updates:
        _sync_links(db, StudentInstrument, "student_id", target.id, "instrument_id", updates["instrument_ids"] or [])
    if "linked_teacher_ids" in updates:
        _sync_links(db, StudentTeacher, "student_id", target.id, "teacher_id", updates["linked_teacher_ids"] or [])
    if "linked_student_ids" in updates:
        _sync_links(db, ParentStudent, "parent_id", target.id, "student_id", updates["linked_student_ids"] or [])

    db.commit()
    db.refresh(target)
    logger.info("Utilisateur %s mis à jour par %s (%s)", target.id, caller.id, ", ".join(sorted(updates)))
    return to_response(db, target)


def delete_user(db: Session, caller: Caller, user_id: uuid.UUID) -> None:
    """
    Supprime définitivement un profil. Les tâches, transactions, liaisons,
    PIN et sessions de l'utilisateur sont supprimés en cascade par la base.
    """
    _require_user_admin(db, caller)
    target = get_scoped(db, Profile, user_id, caller.company_id, "Utilisateur")
    _ensure_not_protected(caller, target, "supprimer")

    db.delete(target)
    db.commit()
    logger.info("Utilisateur %s supprimé par l'admin %s", user_id, caller.id)


def toggle_status(db: Session, caller: Caller, user_id: uuid.UUID) -> Profile:
    """Bascule le statut d'un profil entre active et inactive."""
    _require_user_admin(db, caller)
    target = get_scoped(db, Profile, user_id, caller.company_id, "Utilisateur")
    _ensure_not_protected(caller, target, "désactiver")

    target.status = (
        Status.INACTIVE.value if target.status == Status.ACTIVE.value else Status.ACTIVE.value
    )
    db.commit()
    db.refresh(target)
    logger.info("Statut de l'utilisateur %s → %s (admin %s)", target.id, target.status, caller.id)
    return target


def to_response(db: Session, profile: Profile) -> UserResponse:
    """Construit la réponse avec les identifiants des liaisons du profil."""
    instrument_ids, teacher_ids, student_ids = [], [], []
    if profile.role == Role.STUDENT.value:
        instrument_ids = db.execute(
            select(StudentInstrument.instrument_id).where(StudentInstrument.student_id == profile.id)
        ).scalars().all()
        teacher_ids = db.execute(
            select(StudentTeacher.teacher_id).where(StudentTeacher.student_id == profile.id)
        ).scalars().all()
    elif profile.role == Role.PARENT.value:
        student_ids = db.execute(
            select(ParentStudent.student_id).where(ParentStudent.parent_id == profile.id)
        ).scalars().all()

    return UserResponse(
        id=profile.id,
        company_id=profile.company_id,
        role=profile.role,
        status=profile.status,
        first_name=profile.first_name,
        last_name=profile.last_name,
        nickname=profile.nickname,
        instrument_ids=list(instrument_ids),
        linked_teacher_ids=list(teacher_ids),
        linked_student_ids=list(student_ids),
    )


def _ensure_not_protected(caller: Caller, target: Profile, action: str) -> None:
    if target.id == caller.id:
        raise StateConflictError(f"Vous ne pouvez pas vous {action} vous-même.")
    if str(target.id) in settings.protected_admin_ids:
        raise StateConflictError(f"Ce compte administrateur est protégé : impossible de le {action}.")


def _check_profiles(
    db: Session, company_id: uuid.UUID, ids: Iterable[uuid.UUID], role: Role, label: str
) -> None:
    wanted = set(ids)
    if not wanted:
        return
    found = set(db.execute(
        select(Profile.id).where(
            Profile.id.in_(wanted),
            Profile.company_id == company_id,
            Profile.role == role.value,
        )
    ).scalars().all())
    if found != wanted:
        raise ValidationError(f"{label} invalide : {len(wanted - found)} identifiant(s) inconnu(s).")


def _check_instruments(db: Session, company_id: uuid.UUID, ids: Iterable[uuid.UUID]) -> None:
    wanted = set(ids)
    if not wanted:
        return
    found = set(db.execute(
        select(Instrument.id).where(Instrument.id.in_(wanted), Instrument.company_id == company_id)
    ).scalars().all())
    if found != wanted:
        raise ValidationError(f"Instrument invalide : {len(wanted - found)} identifiant(s) inconnu(s).")


def _sync_links(db: Session, model, owner_col: str, owner_id: uuid.UUID, target_col: str, desired) -> None:
    """Aligne les liaisons d'un propriétaire sur l'ensemble souhaité (sans commit)."""
    owner = getattr(model, owner_col)
    target = getattr(model, target_col)
    desired = set(desired)
    current = set(db.execute(select(target).where(owner == owner_id)).scalars().all())

    removed = current - desired
    if removed:
        db.execute(delete(model).where(owner == owner_id, target.in_(removed)))

    added = desired - current
    if added:
        db.bulk_insert_mappings(model, [
            {owner_col: owner_id, target_col: tid} for tid in added
        ])
