"""
Service métier pour la bibliothèque de tâches réutilisables.
Création par un admin ou un professeur actif ; modification et suppression
par un admin ou par le professeur qui a créé l'entrée.
"""

import uuid
import logging

from sqlalchemy.orm import Session

from app.exceptions import AuthorizationError
from app.models.profile import Role
from app.models.task import TaskLibraryItem
from app.schemas.task import TaskLibraryCreate, TaskLibraryUpdate
from app.services import authorization
from app.services.authorization import Caller, Capability
from app.services.tenancy import get_scoped, scoped_select

logger = logging.getLogger(__name__)


def create_item(db: Session, caller: Caller, data: TaskLibraryCreate) -> TaskLibraryItem:
    role = authorization.active_role(db, caller.id)
    if not authorization.has_capability(role, Capability.MANAGE_TASK_LIBRARY):
        raise AuthorizationError(
            "Permission refusée : seuls les admins et professeurs actifs gèrent la bibliothèque."
        )

    item = TaskLibraryItem(
        company_id=caller.company_id,
        created_by_id=caller.id,
        **data.model_dump(),
    )
    db.add(item)
    db.commit()
    db.refresh(item)

    logger.info("Tâche de bibliothèque créée : %s (%s) par %s", item.title, item.id, caller.id)
    return item


def update_item(db: Session, caller: Caller, data: TaskLibraryUpdate) -> TaskLibraryItem:
    """Met à jour une entrée. Seuls les champs fournis sont modifiés."""
    item = get_scoped(db, TaskLibraryItem, data.item_id, caller.company_id, "Tâche de la bibliothèque")
    _require_owner_or_admin(db, caller, item)

    for field, value in data.model_dump(exclude_unset=True, exclude={"item_id"}).items():
        setattr(item, field, value)

    db.commit()
    db.refresh(item)
    logger.info("Tâche de bibliothèque mise à jour : %s", item.id)
    return item


def delete_item(db: Session, caller: Caller, item_id: uuid.UUID) -> None:
    """
    Supprime une entrée de la bibliothèque.
    Les tâches déjà assignées gardent leur copie figée (task_library_id → NULL).
    """
    item = get_scoped(db, TaskLibraryItem, item_id, caller.company_id, "Tâche de la bibliothèque")
    _require_owner_or_admin(db, caller, item)

    db.delete(item)
    db.commit()
    logger.info("Tâche de bibliothèque supprimée : %s par %s", item_id, caller.id)


def list_items(db: Session, caller: Caller) -> list[TaskLibraryItem]:
    return list(db.execute(
        scoped_select(TaskLibraryItem, caller.company_id).order_by(TaskLibraryItem.title)
    ).scalars().all())


def _require_owner_or_admin(db: Session, caller: Caller, item: TaskLibraryItem) -> None:
    role = authorization.active_role(db, caller.id)
    if role == Role.ADMIN:
        return
    if role == Role.TEACHER and item.created_by_id == caller.id:
        return
    raise AuthorizationError(
        "Permission refusée : seul l'auteur ou un admin peut modifier cette tâche."
    )
