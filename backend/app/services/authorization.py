"""
Couche d'identité et d'autorisation.

Toutes les écritures passent par un ou plusieurs de ces prédicats avant de
toucher aux données. Un prédicat ne lève jamais d'exception : toute erreur de
lecture (profil absent, erreur SQL) est journalisée et se traduit par un refus.
"""

import enum
import functools
import logging
import uuid
from dataclasses import dataclass
from typing import NamedTuple, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.links import ParentStudent, StudentTeacher
from app.models.profile import Profile, Role, Status

logger = logging.getLogger(__name__)


class Capability(str, enum.Enum):
    MANAGE_USERS = "manage_users"
    MANAGE_CATALOG = "manage_catalog"          # récompenses, instruments
    ADJUST_TICKETS = "adjust_tickets"
    REDEEM_REWARDS = "redeem_rewards"
    FORCE_LOGOUT = "force_logout"
    GENERATE_PIN = "generate_pin"
    MANAGE_TASK_LIBRARY = "manage_task_library"
    MANAGE_ANY_STUDENT = "manage_any_student"  # assigner / vérifier pour tout élève de l'entreprise
    MANAGE_LINKED_STUDENT = "manage_linked_student"
    ACT_FOR_STUDENT = "act_for_student"        # compléter, s'auto-assigner, noter sa pratique


ROLE_CAPABILITIES = {
    Role.ADMIN: frozenset({
        Capability.MANAGE_USERS,
        Capability.MANAGE_CATALOG,
        Capability.ADJUST_TICKETS,
        Capability.REDEEM_REWARDS,
        Capability.FORCE_LOGOUT,
        Capability.GENERATE_PIN,
        Capability.MANAGE_TASK_LIBRARY,
        Capability.MANAGE_ANY_STUDENT,
    }),
    Role.TEACHER: frozenset({
        Capability.GENERATE_PIN,
        Capability.MANAGE_TASK_LIBRARY,
        Capability.MANAGE_LINKED_STUDENT,
    }),
    Role.STUDENT: frozenset({Capability.ACT_FOR_STUDENT}),
    Role.PARENT: frozenset({Capability.ACT_FOR_STUDENT}),
}


class AuthCheck(NamedTuple):
    authorized: bool
    role: Optional[Role]


@dataclass(frozen=True)
class Caller:
    """
    Identité de l'appelant, issue du jeton d'accès et du profil en base.
    Pour une session parent ouverte via le PIN d'un élève, id est celui de
    l'élève, role vaut PARENT et viewing_student_id est renseigné.
    """
    id: uuid.UUID
    company_id: uuid.UUID
    role: Role
    viewing_student_id: Optional[uuid.UUID] = None


def fail_closed(default):
    """Transforme toute erreur levée par un prédicat en refus (valeur `default`)."""
    def decorator(predicate):
        @functools.wraps(predicate)
        def wrapper(*args, **kwargs):
            try:
                return predicate(*args, **kwargs)
            except Exception as exc:
                logger.error("[%s] Erreur de vérification, accès refusé : %s", predicate.__name__, exc)
                return default
        return wrapper
    return decorator


def has_capability(role, capability: Capability) -> bool:
    try:
        return capability in ROLE_CAPABILITIES[Role(role)]
    except ValueError:
        return False


def _role_and_status(db: Session, user_id: uuid.UUID):
    return db.execute(
        select(Profile.role, Profile.status).where(Profile.id == user_id)
    ).first()


@fail_closed(None)
def active_role(db: Session, user_id: uuid.UUID) -> Optional[Role]:
    """Rôle du profil s'il est actif, None sinon (profil absent, inactif ou erreur)."""
    row = _role_and_status(db, user_id)
    if row is None or row.status != Status.ACTIVE.value:
        return None
    return Role(row.role)


@fail_closed(False)
def is_active_admin(db: Session, user_id: uuid.UUID) -> bool:
    row = _role_and_status(db, user_id)
    return row is not None and row.role == Role.ADMIN.value and row.status == Status.ACTIVE.value


@fail_closed(False)
def is_active_teacher(db: Session, user_id: uuid.UUID) -> bool:
    row = _role_and_status(db, user_id)
    return row is not None and row.role == Role.TEACHER.value and row.status == Status.ACTIVE.value


@fail_closed(AuthCheck(False, None))
def is_active_admin_or_teacher(db: Session, user_id: uuid.UUID) -> AuthCheck:
    """
    Retourne le résultat et le rôle résolu, pour que l'appelant sache
    quel privilège s'applique. Profil absent → (False, None).
    """
    row = _role_and_status(db, user_id)
    if row is None:
        logger.warning("[is_active_admin_or_teacher] Profil introuvable : %s", user_id)
        return AuthCheck(False, None)
    role = Role(row.role)
    authorized = row.status == Status.ACTIVE.value and role in (Role.ADMIN, Role.TEACHER)
    return AuthCheck(authorized, role)


@fail_closed(False)
def is_teacher_linked(db: Session, teacher_id: uuid.UUID, student_id: uuid.UUID) -> bool:
    if not teacher_id or not student_id or teacher_id == student_id:
        return False
    count = db.execute(
        select(func.count())
        .select_from(StudentTeacher)
        .where(
            StudentTeacher.teacher_id == teacher_id,
            StudentTeacher.student_id == student_id,
        )
    ).scalar()
    return (count or 0) > 0


@fail_closed(False)
def is_parent_of_student(db: Session, parent_id: uuid.UUID, student_id: uuid.UUID) -> bool:
    if not parent_id or not student_id or parent_id == student_id:
        return False
    count = db.execute(
        select(func.count())
        .select_from(ParentStudent)
        .where(
            ParentStudent.parent_id == parent_id,
            ParentStudent.student_id == student_id,
        )
    ).scalar()
    return (count or 0) > 0


def can_manage_student(db: Session, caller_id: uuid.UUID, student_id: uuid.UUID) -> bool:
    """Admin actif, ou professeur actif lié à l'élève."""
    role = active_role(db, caller_id)
    if role is None:
        return False
    if has_capability(role, Capability.MANAGE_ANY_STUDENT):
        return True
    if has_capability(role, Capability.MANAGE_LINKED_STUDENT):
        return is_teacher_linked(db, caller_id, student_id)
    return False


def can_act_for_student(db: Session, caller: Caller, student_id: uuid.UUID) -> bool:
    """L'élève lui-même (ou une session parent ouverte sur lui), ou un parent lié."""
    if caller.id == student_id:
        return active_role(db, caller.id) is not None
    if caller.role != Role.PARENT:
        return False
    return active_role(db, caller.id) == Role.PARENT and is_parent_of_student(db, caller.id, student_id)


def can_view_student(db: Session, caller: Caller, student_id: uuid.UUID) -> bool:
    return can_manage_student(db, caller.id, student_id) or can_act_for_student(db, caller, student_id)
