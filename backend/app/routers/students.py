"""
Router de consultation d'un élève : solde, historique, série, tâches.
Accessible à l'admin, au professeur lié, à l'élève et à ses parents.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.practice import StreakResponse
from app.schemas.task import AssignedTaskResponse
from app.schemas.ticket import BalanceResponse, TransactionHistoryResponse, TransactionResponse
from app.services import ledger_service, practice_service, task_service
from app.services.authorization import Caller

router = APIRouter(prefix="/api/v1/students", tags=["Élèves"])


@router.get("/{student_id}/balance", response_model=BalanceResponse, summary="Solde de tickets")
def get_balance(
    student_id: uuid.UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    """Solde recalculé à chaque lecture (somme des transactions)."""
    balance = ledger_service.get_student_balance(db, caller, student_id)
    return BalanceResponse(student_id=student_id, balance=balance)


@router.get(
    "/{student_id}/transactions",
    response_model=TransactionHistoryResponse,
    summary="Historique des transactions",
)
def get_transactions(
    student_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    total, transactions = ledger_service.get_transactions(db, caller, student_id, limit, offset)
    return TransactionHistoryResponse(
        student_id=student_id,
        total=total,
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
    )


@router.get("/{student_id}/streak", response_model=StreakResponse, summary="Série de pratique")
def get_streak(
    student_id: uuid.UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    return practice_service.get_streak(db, caller, student_id)


@router.get("/{student_id}/tasks", response_model=List[AssignedTaskResponse], summary="Tâches d'un élève")
def get_tasks(
    student_id: uuid.UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    return task_service.list_student_tasks(db, caller, student_id)
