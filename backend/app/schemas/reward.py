"""
Schémas Pydantic pour le catalogue (récompenses, instruments) et les échanges.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, StrictInt, field_validator


class RewardCreate(BaseModel):
    name: str
    description: Optional[str] = None
    cost: StrictInt
    image_path: Optional[str] = None
    is_goal_eligible: bool = False

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le nom de la récompense ne peut pas être vide.")
        return v.strip()

    @field_validator("cost")
    @classmethod
    def cost_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Le coût doit être un entier strictement positif.")
        return v


class RewardResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    name: str
    description: Optional[str] = None
    cost: int
    image_path: Optional[str] = None
    is_goal_eligible: bool

    model_config = {"from_attributes": True}


class RedeemRequest(BaseModel):
    student_id: uuid.UUID
    reward_id: uuid.UUID


class RedeemResponse(BaseModel):
    message: str
    new_balance: int


class InstrumentCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le nom de l'instrument ne peut pas être vide.")
        return v.strip()


class InstrumentResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    name: str

    model_config = {"from_attributes": True}
