"""
Schémas Pydantic pour le registre de tickets.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, StrictInt, field_validator


class TicketAdjust(BaseModel):
    """Ajustement manuel : montant entier non nul, positif (ajout) ou négatif (retrait)."""
    student_id: uuid.UUID
    amount: StrictInt
    notes: str

    @field_validator("amount")
    @classmethod
    def amount_not_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Le montant doit être un entier non nul.")
        return v

    @field_validator("notes")
    @classmethod
    def notes_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Une note est obligatoire pour un ajustement manuel.")
        return v.strip()


class TransactionResponse(BaseModel):
    id: uuid.UUID
    student_id: uuid.UUID
    company_id: uuid.UUID
    amount: int
    type: str
    source_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    timestamp: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AdjustResponse(BaseModel):
    message: str
    transaction: TransactionResponse
    new_balance: int


class BalanceResponse(BaseModel):
    student_id: uuid.UUID
    balance: int


class TransactionHistoryResponse(BaseModel):
    student_id: uuid.UUID
    total: int
    transactions: List[TransactionResponse]
