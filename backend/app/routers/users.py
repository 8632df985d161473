"""
Router pour la gestion des utilisateurs (création, modification, suppression, statut).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.common import MessageResponse
from app.schemas.user import UserCreate, UserResponse, UserStatusResponse, UserTarget, UserUpdate
from app.services import user_service
from app.services.authorization import Caller

router = APIRouter(prefix="/api/v1/users", tags=["Utilisateurs"])


@router.post("/create", response_model=UserResponse, status_code=201, summary="Créer un utilisateur")
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    """
    Crée un profil dans l'entreprise de l'admin.
    Élève : instruments et professeurs. Parent : élèves liés.
    """
    return user_service.create_user(db, caller, data)


@router.post("/update", response_model=UserResponse, summary="Modifier un utilisateur")
def update_user(
    data: UserUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    """Le rôle ne peut pas être modifié. Les droits dépendent des champs fournis."""
    return user_service.update_user(db, caller, data)


@router.post("/delete", response_model=MessageResponse, summary="Supprimer un utilisateur")
def delete_user(
    data: UserTarget,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    """Suppression définitive, en cascade sur toutes les données de l'utilisateur."""
    user_service.delete_user(db, caller, data.user_id)
    return MessageResponse(message="Utilisateur supprimé.")


@router.post("/toggle-status", response_model=UserStatusResponse, summary="Activer / désactiver un utilisateur")
def toggle_status(
    data: UserTarget,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    return user_service.toggle_status(db, caller, data.user_id)
