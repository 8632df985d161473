"""
Dépendances FastAPI partagées : émetteur de jetons et identité de l'appelant.
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.exceptions import AuthenticationError
from app.services.authorization import Caller
from app.services.session_service import TokenIssuer

bearer_scheme = HTTPBearer(auto_error=False)

_issuer = TokenIssuer.from_settings()


def get_token_issuer() -> TokenIssuer:
    return _issuer


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> Caller:
    """Décode le jeton Bearer. Absent ou invalide → 401 {"error": ...}."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("En-tête Authorization: Bearer manquant.")
    return issuer.decode_access_token(credentials.credentials)
