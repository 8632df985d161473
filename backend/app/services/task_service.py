"""
Service métier pour les tâches assignées.

Transitions :
    ASSIGNED --complete--> COMPLETED_PENDING --verify--> verified | partial | incomplete

La vérification est une mise à jour conditionnelle (verification_status = 'pending')
suivie de l'insertion éventuelle d'une ligne task_award, dans une seule transaction :
deux vérificateurs concurrents ne peuvent pas créditer deux fois la même tâche.
"""

import uuid
import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.exceptions import AuthorizationError, StateConflictError
from app.models.ledger import TransactionType
from app.models.profile import Profile
from app.models.task import AssignedTask, TaskLibraryItem, VerificationStatus
from app.schemas.task import TaskAssign, TaskVerify
from app.services import authorization, ledger_service
from app.services.authorization import Caller, Capability
from app.services.tenancy import get_active_student, get_scoped
from app.timeutils import utcnow

logger = logging.getLogger(__name__)


def assign_task(db: Session, caller: Caller, data: TaskAssign) -> AssignedTask:
    """
    Assigne une tâche à un élève.

    Autorisé pour :
    - un admin actif (tout élève de l'entreprise)
    - un professeur actif lié à l'élève
    - l'élève lui-même ou un parent lié, uniquement pour une tâche de la
      bibliothèque marquée can_self_assign
    """
    student = get_active_student(db, data.student_id, caller.company_id)

    library_item = None
    if data.task_library_id is not None:
        library_item = get_scoped(
            db, TaskLibraryItem, data.task_library_id, caller.company_id, "Tâche de la bibliothèque"
        )

    self_assigned = False
    if not authorization.can_manage_student(db, caller.id, student.id):
        if not authorization.can_act_for_student(db, caller, student.id):
            raise AuthorizationError(
                "Permission refusée : vous ne pouvez pas assigner de tâche à cet élève."
            )
        if library_item is None or not library_item.can_self_assign:
            raise AuthorizationError(
                "Seules les tâches de la bibliothèque ouvertes à l'auto-assignation "
                "peuvent être choisies par l'élève."
            )
        _ensure_no_open_copy(db, student.id, library_item.id)
        self_assigned = True

    if library_item is not None:
        task = AssignedTask(
            task_library_id=library_item.id,
            task_title=library_item.title,
            task_description=library_item.description,
            task_base_points=library_item.base_tickets,
            task_link_url=library_item.reference_url,
            task_attachment_path=library_item.attachment_path,
        )
    else:
        task = AssignedTask(
            task_title=data.task_title,
            task_description=data.task_description,
            task_base_points=data.task_base_points,
            task_link_url=data.task_link_url,
            task_attachment_path=data.task_attachment_path,
        )
    task.student_id = student.id
    task.company_id = caller.company_id
    # Une auto-assignation est attribuée à l'élève, même via une session parent
    task.assigned_by_id = student.id if self_assigned else caller.id
    task.is_complete = False

    db.add(task)
    db.commit()
    db.refresh(task)

    logger.info(
        "Tâche '%s' (%s) assignée à l'élève %s par %s%s",
        task.task_title, task.id, student.id, caller.id,
        " (auto-assignation)" if self_assigned else "",
    )
    return task


def _ensure_no_open_copy(db: Session, student_id: uuid.UUID, library_id: uuid.UUID) -> None:
    open_count = db.execute(
        select(func.count())
        .select_from(AssignedTask)
        .where(
            AssignedTask.student_id == student_id,
            AssignedTask.task_library_id == library_id,
            AssignedTask.is_complete.is_(False),
        )
    ).scalar()
    if open_count:
        raise StateConflictError("Cette tâche est déjà assignée et pas encore terminée.")


def complete_task(db: Session, caller: Caller, assignment_id: uuid.UUID) -> AssignedTask:
    """Marque une tâche comme terminée : elle passe en attente de vérification."""
    task = get_scoped(db, AssignedTask, assignment_id, caller.company_id, "Tâche")

    if not authorization.can_act_for_student(db, caller, task.student_id):
        raise AuthorizationError(
            "Permission refusée : seul l'élève (ou son parent) peut terminer cette tâche."
        )

    result = db.execute(
        update(AssignedTask)
        .where(AssignedTask.id == task.id, AssignedTask.is_complete.is_(False))
        .values(
            is_complete=True,
            completed_date=utcnow(),
            verification_status=VerificationStatus.PENDING.value,
        )
    )
    if result.rowcount != 1:
        db.rollback()
        raise StateConflictError("Cette tâche est déjà terminée.")

    db.commit()
    db.refresh(task)
    logger.info("Tâche %s terminée par l'élève %s", task.id, task.student_id)
    return task


def verify_task(db: Session, caller: Caller, data: TaskVerify) -> AssignedTask:
    """
    Vérifie une tâche terminée (admin actif ou professeur actif lié).

    La mise à jour du statut et le crédit éventuel forment une seule
    transaction. Une tâche déjà vérifiée n'est jamais créditée une seconde fois.
    """
    task = get_scoped(db, AssignedTask, data.assignment_id, caller.company_id, "Tâche")

    if not authorization.can_manage_student(db, caller.id, task.student_id):
        raise AuthorizationError(
            "Permission refusée : seuls un admin ou un professeur lié à l'élève peuvent vérifier."
        )

    points = data.actual_points_awarded
    result = db.execute(
        update(AssignedTask)
        .where(
            AssignedTask.id == task.id,
            AssignedTask.is_complete.is_(True),
            AssignedTask.verification_status == VerificationStatus.PENDING.value,
        )
        .values(
            verification_status=data.verification_status.value,
            verified_by_id=caller.id,
            verified_date=utcnow(),
            actual_points_awarded=points,
        )
    )
    if result.rowcount != 1:
        db.rollback()
        raise StateConflictError("Cette tâche n'est pas en attente de vérification.")

    if points > 0:
        ledger_service.insert_credit(
            db,
            task.student_id,
            task.company_id,
            points,
            TransactionType.TASK_AWARD,
            source_id=task.id,
            notes=f"Tâche : {task.task_title}",
        )

    db.commit()
    db.refresh(task)
    logger.info(
        "Tâche %s vérifiée (%s, %d tickets) par %s",
        task.id, task.verification_status, points, caller.id,
    )
    return task


def delete_task(db: Session, caller: Caller, assignment_id: uuid.UUID) -> None:
    """
    Supprime une tâche tant qu'elle n'est pas vérifiée (statut NULL ou pending).

    Autorisé pour un admin actif, le professeur qui l'a assignée, ou, pour
    une tâche auto-assignée, un professeur actif lié à l'élève.
    """
    task = get_scoped(db, AssignedTask, assignment_id, caller.company_id, "Tâche")

    if not _can_delete(db, caller, task):
        raise AuthorizationError("Permission refusée : vous ne pouvez pas supprimer cette tâche.")

    if task.verification_status not in (None, VerificationStatus.PENDING.value):
        raise StateConflictError("Une tâche déjà vérifiée ne peut plus être supprimée.")

    db.delete(task)
    db.commit()
    logger.info("Tâche %s supprimée par %s", assignment_id, caller.id)


def _can_delete(db: Session, caller: Caller, task: AssignedTask) -> bool:
    role = authorization.active_role(db, caller.id)
    if role is None:
        return False
    if authorization.has_capability(role, Capability.MANAGE_ANY_STUDENT):
        return True
    if not authorization.has_capability(role, Capability.MANAGE_LINKED_STUDENT):
        return False
    if task.assigned_by_id == caller.id:
        return True
    self_assigned = task.assigned_by_id == task.student_id
    return self_assigned and authorization.is_teacher_linked(db, caller.id, task.student_id)


def list_student_tasks(db: Session, caller: Caller, student_id: uuid.UUID) -> list[AssignedTask]:
    """Tâches d'un élève, les plus récentes d'abord."""
    get_scoped(db, Profile, student_id, caller.company_id, "Élève")
    if not authorization.can_view_student(db, caller, student_id):
        raise AuthorizationError("Permission refusée : vous ne pouvez pas consulter cet élève.")
    return list(db.execute(
        select(AssignedTask)
        .where(AssignedTask.student_id == student_id)
        .order_by(AssignedTask.assigned_date.desc())
    ).scalars().all())
