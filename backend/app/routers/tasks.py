"""
Router pour les tâches assignées : assignation, complétion, vérification, suppression.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.common import MessageResponse
from app.schemas.task import AssignedTaskResponse, TaskAssign, TaskComplete, TaskDelete, TaskVerify
from app.services import task_service
from app.services.authorization import Caller

router = APIRouter(prefix="/api/v1/tasks", tags=["Tâches"])


@router.post("/assign", response_model=AssignedTaskResponse, status_code=201, summary="Assigner une tâche")
def assign_task(
    data: TaskAssign,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    """
    Assigne une tâche à un élève, depuis la bibliothèque ou en tâche libre.
    Un élève (ou son parent) peut s'auto-assigner une tâche de la bibliothèque
    ouverte à l'auto-assignation.
    """
    return task_service.assign_task(db, caller, data)


@router.post("/complete", response_model=AssignedTaskResponse, summary="Terminer une tâche")
def complete_task(
    data: TaskComplete,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    """La tâche passe en attente de vérification."""
    return task_service.complete_task(db, caller, data.assignment_id)


@router.post("/verify", response_model=AssignedTaskResponse, summary="Vérifier une tâche terminée")
def verify_task(
    data: TaskVerify,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    """
    Statut final verified, partial ou incomplete.
    Les points attribués (> 0) sont crédités dans le registre.
    """
    return task_service.verify_task(db, caller, data)


@router.post("/delete", response_model=MessageResponse, summary="Supprimer une tâche non vérifiée")
def delete_task(
    data: TaskDelete,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    task_service.delete_task(db, caller, data.assignment_id)
    return MessageResponse(message="Tâche supprimée.")
