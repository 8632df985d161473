"""
Router d'authentification : PIN à usage unique, rafraîchissement, déconnexion forcée.
Le PIN claim et le refresh ne demandent pas de jeton d'accès.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user, get_token_issuer
from app.schemas.auth import (
    ForceLogout,
    ForceLogoutResponse,
    PinClaim,
    PinGenerate,
    PinResponse,
    RefreshRequest,
    RefreshResponse,
    SessionResponse,
)
from app.services import pin_service, session_service
from app.services.authorization import Caller
from app.services.session_service import TokenIssuer

router = APIRouter(prefix="/api/v1/auth", tags=["Authentification"])


@router.post("/pin/generate", response_model=PinResponse, status_code=201, summary="Générer un PIN de connexion")
def generate_pin(
    data: PinGenerate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    """
    PIN numérique valable quelques minutes, à usage unique.
    Collision (rare) → 409, il suffit de relancer la génération.
    """
    return pin_service.generate_pin(db, caller, data)


@router.post("/pin/claim", response_model=SessionResponse, summary="Se connecter avec un PIN")
def claim_pin(
    data: PinClaim,
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    return pin_service.claim_pin(db, issuer, data.pin)


@router.post("/refresh", response_model=RefreshResponse, summary="Rafraîchir le jeton d'accès")
def refresh(
    data: RefreshRequest,
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    return session_service.refresh_session(db, issuer, data.refresh_token)


@router.post("/force-logout", response_model=ForceLogoutResponse, summary="Déconnecter un utilisateur")
def force_logout(
    data: ForceLogout,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_user),
):
    """Révoque toutes les sessions (jetons de rafraîchissement) de l'utilisateur ciblé."""
    return session_service.force_logout(db, caller, data.target_user_id)
