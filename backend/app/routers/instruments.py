"""
Router pour le catalogue d'instruments.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.reward import InstrumentCreate, InstrumentResponse
from app.services import catalog_service
from app.services.authorization import Caller

router = APIRouter(prefix="/api/v1/instruments", tags=["Instruments"])


@router.get("", response_model=List[InstrumentResponse], summary="Lister les instruments")
def list_instruments(db: Session = Depends(get_db), caller: Caller = Depends(get_current_user)):
    return catalog_service.list_instruments(db, caller)


@router.post("/create", response_model=InstrumentResponse, status_code=201, summary="Créer un instrument")
def create_instrument(
    data: InstrumentCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    return catalog_service.create_instrument(db, caller, data)
