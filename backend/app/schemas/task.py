"""
Schémas Pydantic pour la bibliothèque de tâches et les tâches assignées.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, StrictInt, field_validator, model_validator

from app.models.task import VerificationStatus

VALID_VERIFICATION_STATUSES = {
    VerificationStatus.VERIFIED,
    VerificationStatus.PARTIAL,
    VerificationStatus.INCOMPLETE,
}


class TaskAssign(BaseModel):
    """
    Corps de requête pour assigner une tâche à un élève.
    Soit task_library_id (copie figée de la bibliothèque), soit une tâche libre
    avec task_title et task_base_points.
    """
    student_id: uuid.UUID
    task_library_id: Optional[uuid.UUID] = None
    task_title: Optional[str] = None
    task_description: Optional[str] = None
    task_base_points: Optional[StrictInt] = None
    task_link_url: Optional[str] = None
    task_attachment_path: Optional[str] = None

    @field_validator("task_base_points")
    @classmethod
    def points_not_negative(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("Les points de la tâche doivent être un entier positif ou nul.")
        return v

    @model_validator(mode="after")
    def library_or_adhoc(self):
        if self.task_library_id is not None:
            if self.task_title is not None or self.task_base_points is not None:
                raise ValueError(
                    "Choisir une tâche de la bibliothèque ou une tâche libre, pas les deux."
                )
            return self
        if not self.task_title or not self.task_title.strip():
            raise ValueError("Le titre de la tâche est obligatoire.")
        if self.task_base_points is None:
            raise ValueError("Les points de la tâche sont obligatoires.")
        self.task_title = self.task_title.strip()
        return self


class TaskComplete(BaseModel):
    assignment_id: uuid.UUID


class TaskDelete(BaseModel):
    assignment_id: uuid.UUID


class TaskVerify(BaseModel):
    """Corps de requête pour vérifier une tâche complétée."""
    assignment_id: uuid.UUID
    verification_status: VerificationStatus
    actual_points_awarded: StrictInt

    @field_validator("verification_status")
    @classmethod
    def not_pending(cls, v: VerificationStatus) -> VerificationStatus:
        if v not in VALID_VERIFICATION_STATUSES:
            raise ValueError("Statut invalide. Valeurs acceptées : verified, partial, incomplete.")
        return v

    @field_validator("actual_points_awarded")
    @classmethod
    def points_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Les points attribués doivent être un entier positif ou nul.")
        return v

    @model_validator(mode="after")
    def incomplete_means_zero(self):
        if self.verification_status == VerificationStatus.INCOMPLETE and self.actual_points_awarded != 0:
            raise ValueError("Les points doivent valoir 0 pour une tâche incomplète.")
        return self


class AssignedTaskResponse(BaseModel):
    id: uuid.UUID
    student_id: uuid.UUID
    assigned_by_id: Optional[uuid.UUID]
    company_id: uuid.UUID
    task_library_id: Optional[uuid.UUID] = None
    task_title: str
    task_description: Optional[str] = None
    task_base_points: int
    task_link_url: Optional[str] = None
    task_attachment_path: Optional[str] = None
    assigned_date: Optional[datetime] = None
    is_complete: bool
    completed_date: Optional[datetime] = None
    verification_status: Optional[str] = None
    verified_by_id: Optional[uuid.UUID] = None
    verified_date: Optional[datetime] = None
    actual_points_awarded: Optional[int] = None

    model_config = {"from_attributes": True}


# --- Bibliothèque de tâches ---

class TaskLibraryCreate(BaseModel):
    title: str
    description: Optional[str] = None
    base_tickets: StrictInt
    reference_url: Optional[str] = None
    attachment_path: Optional[str] = None
    can_self_assign: bool = False

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le titre ne peut pas être vide.")
        return v.strip()

    @field_validator("base_tickets")
    @classmethod
    def tickets_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Le nombre de tickets doit être un entier positif ou nul.")
        return v


class TaskLibraryUpdate(BaseModel):
    """Les champs absents ne sont pas modifiés."""
    item_id: uuid.UUID
    title: Optional[str] = None
    description: Optional[str] = None
    base_tickets: Optional[StrictInt] = None
    reference_url: Optional[str] = None
    attachment_path: Optional[str] = None
    can_self_assign: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Le titre ne peut pas être vide.")
        return v.strip() if v else v

    @field_validator("base_tickets")
    @classmethod
    def tickets_not_negative(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("Le nombre de tickets doit être un entier positif ou nul.")
        return v


class TaskLibraryDelete(BaseModel):
    item_id: uuid.UUID


class TaskLibraryResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    title: str
    description: Optional[str] = None
    base_tickets: int
    reference_url: Optional[str] = None
    attachment_path: Optional[str] = None
    can_self_assign: bool
    created_by_id: Optional[uuid.UUID] = None

    model_config = {"from_attributes": True}
