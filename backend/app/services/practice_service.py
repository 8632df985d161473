"""
Suivi de la pratique quotidienne et des séries (streaks).

Une série est le nombre de jours calendaires consécutifs se terminant au
dernier jour de pratique enregistré. À chaque palier (multiple de
STREAK_MILESTONE_DAYS), l'élève reçoit STREAK_MILESTONE_AWARD tickets.
"""

import uuid
import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import AuthorizationError, PartialFailureError, StateConflictError
from app.models.ledger import TransactionType
from app.models.practice import PracticeLog
from app.models.profile import Profile
from app.schemas.practice import PracticeLogResponse, StreakResponse
from app.services import authorization, ledger_service
from app.services.authorization import Caller
from app.services.tenancy import get_active_student, get_scoped
from app.timeutils import today

logger = logging.getLogger(__name__)


def compute_streaks(log_dates: list[date]) -> tuple[int, int]:
    """
    Retourne (série courante, plus longue série) à partir des dates de pratique.
    La série courante se termine au jour le plus récent enregistré.
    """
    days = sorted(set(log_dates))
    if not days:
        return 0, 0

    longest = run = 1
    for previous, current in zip(days, days[1:]):
        run = run + 1 if current - previous == timedelta(days=1) else 1
        longest = max(longest, run)
    return run, longest


def is_milestone(streak: int, milestone_days: Optional[int] = None) -> bool:
    milestone_days = milestone_days or settings.STREAK_MILESTONE_DAYS
    return streak > 0 and streak % milestone_days == 0


def _log_dates(db: Session, student_id: uuid.UUID) -> list[date]:
    return list(db.execute(
        select(PracticeLog.log_date).where(PracticeLog.student_id == student_id)
    ).scalars().all())


def log_practice(db: Session, caller: Caller, student_id: uuid.UUID) -> PracticeLogResponse:
    """
    Enregistre la pratique du jour pour un élève (l'élève lui-même ou un parent lié).

    Une seule entrée par jour : un doublon lève StateConflictError.
    Si la série atteint un palier, un crédit streak_award est inséré. Le
    journal de pratique est déjà validé à ce moment-là : un échec du crédit
    est signalé par PartialFailureError, sans nouvelle tentative.
    """
    student = get_active_student(db, student_id, caller.company_id)
    if not authorization.can_act_for_student(db, caller, student.id):
        raise AuthorizationError(
            "Permission refusée : seul l'élève (ou son parent) peut enregistrer sa pratique."
        )

    db.add(PracticeLog(student_id=student.id, company_id=caller.company_id, log_date=today()))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise StateConflictError("Pratique déjà enregistrée aujourd'hui.")

    streak, _ = compute_streaks(_log_dates(db, student_id))

    award = None
    if is_milestone(streak):
        award = settings.STREAK_MILESTONE_AWARD
        try:
            ledger_service.insert_credit(
                db,
                student_id,
                caller.company_id,
                award,
                TransactionType.STREAK_AWARD,
                notes=f"Série de {streak} jours",
            )
            db.commit()
        except Exception as exc:
            db.rollback()
            logger.error("Crédit de série échoué pour l'élève %s (série %d) : %s", student_id, streak, exc)
            raise PartialFailureError(
                "Pratique enregistrée, mais le crédit de la série n'a pas pu être attribué."
            ) from exc
        logger.info("Palier de série atteint par l'élève %s : %d jours, +%d tickets", student_id, streak, award)

    logger.info("Pratique enregistrée pour l'élève %s (série : %d)", student_id, streak)
    return PracticeLogResponse(new_streak=streak, streak_award=award)


def get_streak(db: Session, caller: Caller, student_id: uuid.UUID) -> StreakResponse:
    get_scoped(db, Profile, student_id, caller.company_id, "Élève")
    if not authorization.can_view_student(db, caller, student_id):
        raise AuthorizationError("Permission refusée : vous ne pouvez pas consulter cet élève.")

    dates = _log_dates(db, student_id)
    current, longest = compute_streaks(dates)
    return StreakResponse(
        student_id=student_id,
        current_streak=current,
        longest_streak=longest,
        last_log_date=max(dates) if dates else None,
    )
