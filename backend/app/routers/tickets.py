"""
Router pour les ajustements manuels du registre de tickets.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.ticket import AdjustResponse, TicketAdjust
from app.services import ledger_service
from app.services.authorization import Caller

router = APIRouter(prefix="/api/v1/tickets", tags=["Tickets"])


@router.post("/adjust", response_model=AdjustResponse, summary="Ajuster le solde d'un élève")
def adjust_tickets(
    data: TicketAdjust,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    """
    Ajout (montant positif) ou retrait (montant négatif) manuel, réservé aux admins.
    Un retrait qui rendrait le solde négatif est refusé sans rien écrire.
    """
    return ledger_service.adjust_tickets(db, caller, data)
