"""
Schémas Pydantic pour la connexion par PIN et les sessions.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from app.models.profile import Role


class PinGenerate(BaseModel):
    user_id: uuid.UUID
    target_role: Role


class PinResponse(BaseModel):
    """Le PIN en clair n'est renvoyé qu'une seule fois, à la génération."""
    pin: str
    expires_at: datetime


class PinClaim(BaseModel):
    pin: str

    @field_validator("pin")
    @classmethod
    def pin_format(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 4 or not v.isdigit():
            raise ValueError("PIN invalide ou manquant.")
        return v


class SessionResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: uuid.UUID
    role: str
    viewing_student_id: Optional[uuid.UUID] = None


class RefreshRequest(BaseModel):
    refresh_token: str

    @field_validator("refresh_token")
    @classmethod
    def token_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("refresh_token manquant.")
        return v.strip()


class RefreshResponse(BaseModel):
    """refresh_token n'est renseigné que si la rotation des jetons est active."""
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: int
    user_id: uuid.UUID
    role: str


class ForceLogout(BaseModel):
    target_user_id: uuid.UUID


class ForceLogoutResponse(BaseModel):
    message: str
    revoked_sessions: int
