"""
Schémas Pydantic pour la gestion des utilisateurs.
"""

import uuid
from typing import List, Optional

from pydantic import BaseModel, field_validator, model_validator

from app.models.profile import Role


def _name_not_empty(v: Optional[str]) -> Optional[str]:
    if v is not None and not v.strip():
        raise ValueError("Le prénom et le nom ne peuvent pas être vides.")
    return v.strip() if v is not None else v


class UserCreate(BaseModel):
    """
    Corps de requête pour créer un utilisateur dans l'entreprise de l'admin.
    Les liaisons dépendent du rôle : instruments et professeurs pour un élève,
    élèves pour un parent.
    """
    role: Role
    first_name: str
    last_name: str
    nickname: Optional[str] = None
    instrument_ids: List[uuid.UUID] = []
    linked_teacher_ids: List[uuid.UUID] = []
    linked_student_ids: List[uuid.UUID] = []

    @field_validator("first_name", "last_name")
    @classmethod
    def names_not_empty(cls, v: Optional[str]) -> Optional[str]:
        return _name_not_empty(v)

    @model_validator(mode="after")
    def links_match_role(self):
        if self.role != Role.STUDENT and (self.instrument_ids or self.linked_teacher_ids):
            raise ValueError("Seul un élève peut être lié à des instruments ou des professeurs.")
        if self.role != Role.PARENT and self.linked_student_ids:
            raise ValueError("Seul un parent peut être lié à des élèves.")
        return self


class UserUpdateFields(BaseModel):
    """
    Champs modifiables. Le rôle n'en fait pas partie : il est immuable
    après création, tout champ inconnu est rejeté.
    """
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    nickname: Optional[str] = None
    instrument_ids: Optional[List[uuid.UUID]] = None
    linked_teacher_ids: Optional[List[uuid.UUID]] = None
    linked_student_ids: Optional[List[uuid.UUID]] = None

    model_config = {"extra": "forbid"}

    @field_validator("first_name", "last_name")
    @classmethod
    def names_not_empty(cls, v: Optional[str]) -> Optional[str]:
        return _name_not_empty(v)

    @field_validator("nickname")
    @classmethod
    def strip_nickname(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


class UserUpdate(BaseModel):
    user_id: uuid.UUID
    updates: UserUpdateFields


class UserTarget(BaseModel):
    """Corps de requête des opérations visant un seul utilisateur (suppression, statut)."""
    user_id: uuid.UUID


class UserResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    role: str
    status: str
    first_name: str
    last_name: str
    nickname: Optional[str] = None
    instrument_ids: List[uuid.UUID] = []
    linked_teacher_ids: List[uuid.UUID] = []
    linked_student_ids: List[uuid.UUID] = []


class UserStatusResponse(BaseModel):
    id: uuid.UUID
    status: str

    model_config = {"from_attributes": True}
