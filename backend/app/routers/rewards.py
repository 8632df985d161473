"""
Router pour le catalogue de récompenses et les échanges.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.exceptions import InsufficientBalanceError
from app.schemas.reward import RedeemRequest, RedeemResponse, RewardCreate, RewardResponse
from app.services import catalog_service, redemption_service
from app.services.authorization import Caller

router = APIRouter(prefix="/api/v1/rewards", tags=["Récompenses"])


@router.get("", response_model=List[RewardResponse], summary="Lister les récompenses")
def list_rewards(db: Session = Depends(get_db), caller: Caller = Depends(get_current_user)):
    return catalog_service.list_rewards(db, caller)


@router.post("/create", response_model=RewardResponse, status_code=201, summary="Créer une récompense")
def create_reward(
    data: RewardCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    return catalog_service.create_reward(db, caller, data)


@router.post("/redeem", response_model=RedeemResponse, summary="Échanger une récompense")
def redeem_reward(
    data: RedeemRequest,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    """
    Débite le coût de la récompense du solde de l'élève (admin uniquement).
    Solde insuffisant → 400, aucune écriture.
    """
    result = redemption_service.redeem_reward(db, caller, data.student_id, data.reward_id)
    if not result.success:
        raise InsufficientBalanceError(result.message)
    return RedeemResponse(message=result.message, new_balance=result.new_balance)
