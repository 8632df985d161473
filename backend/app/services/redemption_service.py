"""
Service d'échange de récompenses.

Un échange est un débit atomique : vérification du solde et insertion de la
ligne 'redemption' dans la même instruction SQL (voir ledger_service.insert_debit).
"""

import uuid
import logging
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from app.exceptions import AuthorizationError
from app.models.ledger import Reward, TransactionType
from app.services import authorization, ledger_service
from app.services.authorization import Caller
from app.services.tenancy import get_active_student, get_scoped

logger = logging.getLogger(__name__)


class RedemptionResult(NamedTuple):
    success: bool
    message: str
    new_balance: Optional[int] = None


def redeem_reward(
    db: Session,
    caller: Caller,
    student_id: uuid.UUID,
    reward_id: uuid.UUID,
) -> RedemptionResult:
    """
    Échange une récompense pour un élève, au nom d'un admin actif.

    Un solde insuffisant n'est pas une exception : le résultat porte
    success=False et rien n'est écrit.
    """
    if not authorization.is_active_admin(db, caller.id):
        raise AuthorizationError(
            "Permission refusée : seuls les admins actifs peuvent échanger des récompenses."
        )
    student = get_active_student(db, student_id, caller.company_id)
    reward = get_scoped(db, Reward, reward_id, caller.company_id, "Récompense")
    reward_name, cost = reward.name, reward.cost

    transaction_id = ledger_service.insert_debit(
        db,
        student.id,
        caller.company_id,
        -cost,
        TransactionType.REDEMPTION,
        source_id=reward.id,
        notes=f"Échange : {reward_name}",
    )
    if transaction_id is None:
        db.rollback()
        logger.info(
            "Échange refusé pour l'élève %s : solde insuffisant pour '%s' (%d tickets)",
            student_id, reward_name, cost,
        )
        return RedemptionResult(False, "Solde insuffisant pour cette récompense.")

    db.commit()
    new_balance = ledger_service.get_balance(db, student_id)
    logger.info(
        "Récompense '%s' échangée pour l'élève %s par %s (nouveau solde : %d)",
        reward_name, student_id, caller.id, new_balance,
    )
    return RedemptionResult(True, f"Récompense '{reward_name}' échangée.", new_balance)
