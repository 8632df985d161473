"""
Router pour le suivi de pratique.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.practice import PracticeLogRequest, PracticeLogResponse
from app.services import practice_service
from app.services.authorization import Caller

router = APIRouter(prefix="/api/v1/practice", tags=["Pratique"])


@router.post("/log", response_model=PracticeLogResponse, status_code=201, summary="Enregistrer la pratique du jour")
def log_practice(
    data: PracticeLogRequest,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    """Une entrée par jour. Tous les 7 jours consécutifs, 10 tickets sont crédités."""
    return practice_service.log_practice(db, caller, data.student_id)
