"""
Router pour la bibliothèque de tâches réutilisables.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.common import MessageResponse
from app.schemas.task import TaskLibraryCreate, TaskLibraryDelete, TaskLibraryResponse, TaskLibraryUpdate
from app.services import library_service
from app.services.authorization import Caller

router = APIRouter(prefix="/api/v1/task-library", tags=["Bibliothèque de tâches"])


@router.get("", response_model=List[TaskLibraryResponse], summary="Lister la bibliothèque")
def list_items(db: Session = Depends(get_db), caller: Caller = Depends(get_current_user)):
    return library_service.list_items(db, caller)


@router.post("/create", response_model=TaskLibraryResponse, status_code=201, summary="Créer une tâche de bibliothèque")
def create_item(
    data: TaskLibraryCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    return library_service.create_item(db, caller, data)


@router.post("/update", response_model=TaskLibraryResponse, summary="Modifier une tâche de bibliothèque")
def update_item(
    data: TaskLibraryUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    """Seuls les champs fournis sont modifiés. Réservé à l'auteur ou à un admin."""
    return library_service.update_item(db, caller, data)


@router.post("/delete", response_model=MessageResponse, summary="Supprimer une tâche de bibliothèque")
def delete_item(
    data: TaskLibraryDelete,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    library_service.delete_item(db, caller, data.item_id)
    return MessageResponse(message="Tâche de bibliothèque supprimée.")
