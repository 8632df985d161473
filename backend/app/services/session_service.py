"""
Émission et rafraîchissement des sessions.

- Jeton d'accès : JWT HS256 court (sub, role, company_id, viewing_student_id)
- Jeton de rafraîchissement : chaîne aléatoire longue ; seul son hash salé
  (SHA-256) est stocké dans active_refresh_tokens
"""

import hashlib
import logging
import secrets
import uuid
from datetime import timedelta
from typing import Optional

from jose import JWTError, jwt
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.config import Settings, settings
from app.exceptions import AuthenticationError, AuthorizationError
from app.models.profile import Profile, Role
from app.models.session import ActiveRefreshToken
from app.schemas.auth import ForceLogoutResponse, RefreshResponse, SessionResponse
from app.services import authorization
from app.services.authorization import Caller, Capability
from app.services.tenancy import get_scoped
from app.timeutils import utcnow

logger = logging.getLogger(__name__)


class TokenIssuer:
    """Signe et vérifie les jetons. Les secrets sont fournis à la construction."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str,
        access_expire_minutes: int,
        refresh_salt: str,
        refresh_expire_days: int,
        rotate_refresh_tokens: bool = True,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_expire_minutes = access_expire_minutes
        self.refresh_salt = refresh_salt
        self.refresh_expire_days = refresh_expire_days
        self.rotate_refresh_tokens = rotate_refresh_tokens

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "TokenIssuer":
        return cls(
            secret_key=config.SECRET_KEY,
            algorithm=config.ALGORITHM,
            access_expire_minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES,
            refresh_salt=config.REFRESH_TOKEN_SALT,
            refresh_expire_days=config.REFRESH_TOKEN_EXPIRE_DAYS,
            rotate_refresh_tokens=config.REFRESH_TOKEN_ROTATION,
        )

    @property
    def expires_in(self) -> int:
        return self.access_expire_minutes * 60

    def create_access_token(
        self,
        user_id: uuid.UUID,
        role: str,
        company_id: uuid.UUID,
        viewing_student_id: Optional[uuid.UUID] = None,
    ) -> str:
        now = utcnow()
        claims = {
            "sub": str(user_id),
            "role": role,
            "company_id": str(company_id),
            "iat": now,
            "exp": now + timedelta(minutes=self.access_expire_minutes),
        }
        if viewing_student_id is not None:
            claims["viewing_student_id"] = str(viewing_student_id)
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def decode_access_token(self, token: str) -> Caller:
        """Vérifie signature et expiration. Lève AuthenticationError sinon."""
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
            viewing = claims.get("viewing_student_id")
            return Caller(
                id=uuid.UUID(claims["sub"]),
                company_id=uuid.UUID(claims["company_id"]),
                role=Role(claims["role"]),
                viewing_student_id=uuid.UUID(viewing) if viewing else None,
            )
        except (JWTError, KeyError, ValueError) as exc:
            logger.info("Jeton d'accès refusé : %s", exc)
            raise AuthenticationError("Jeton d'accès invalide ou expiré.")

    def new_refresh_token(self) -> str:
        return secrets.token_urlsafe(48)

    def hash_refresh_token(self, token: str) -> str:
        return hashlib.sha256((self.refresh_salt + token).encode("utf-8")).hexdigest()


def open_session(
    db: Session,
    issuer: TokenIssuer,
    profile: Profile,
    role: str,
    viewing_student_id: Optional[uuid.UUID] = None,
) -> SessionResponse:
    """
    Crée une session pour un profil : jeton d'accès + jeton de rafraîchissement.
    Ajoute la ligne active_refresh_tokens sans commit.
    """
    raw_refresh = issuer.new_refresh_token()
    db.add(ActiveRefreshToken(
        user_id=profile.id,
        company_id=profile.company_id,
        token_hash=issuer.hash_refresh_token(raw_refresh),
        role=role,
        viewing_student_id=viewing_student_id,
        expires_at=utcnow() + timedelta(days=issuer.refresh_expire_days),
    ))
    return SessionResponse(
        access_token=issuer.create_access_token(profile.id, role, profile.company_id, viewing_student_id),
        refresh_token=raw_refresh,
        expires_in=issuer.expires_in,
        user_id=profile.id,
        role=role,
        viewing_student_id=viewing_student_id,
    )


def refresh_session(db: Session, issuer: TokenIssuer, raw_token: str) -> RefreshResponse:
    """
    Émet un nouveau jeton d'accès à partir d'un jeton de rafraîchissement.

    Jeton inconnu → erreur. Jeton expiré, ou propriétaire absent/inactif →
    la ligne est supprimée puis erreur. Avec la rotation active, l'ancienne
    ligne est remplacée et un nouveau jeton brut est renvoyé.
    """
    token_hash = issuer.hash_refresh_token(raw_token)
    row = db.execute(
        select(ActiveRefreshToken).where(ActiveRefreshToken.token_hash == token_hash)
    ).scalar()
    if row is None:
        raise AuthenticationError("Jeton de rafraîchissement invalide.")

    if row.expires_at <= utcnow():
        db.delete(row)
        db.commit()
        raise AuthenticationError("Session expirée, veuillez vous reconnecter.")

    if authorization.active_role(db, row.user_id) is None:
        db.delete(row)
        db.commit()
        logger.warning("Rafraîchissement refusé : utilisateur %s absent ou inactif", row.user_id)
        raise AuthenticationError("Compte inactif ou introuvable.")

    user_id, company_id, role, viewing = row.user_id, row.company_id, row.role, row.viewing_student_id
    access_token = issuer.create_access_token(user_id, role, company_id, viewing)

    new_raw = None
    if issuer.rotate_refresh_tokens:
        new_raw = issuer.new_refresh_token()
        row.token_hash = issuer.hash_refresh_token(new_raw)
        row.expires_at = utcnow() + timedelta(days=issuer.refresh_expire_days)
    row.last_used_at = utcnow()
    db.commit()

    logger.info("Session rafraîchie pour l'utilisateur %s", user_id)
    return RefreshResponse(
        access_token=access_token,
        refresh_token=new_raw,
        expires_in=issuer.expires_in,
        user_id=user_id,
        role=role,
    )


def force_logout(db: Session, caller: Caller, target_user_id: uuid.UUID) -> ForceLogoutResponse:
    """
    Révoque toutes les sessions d'un utilisateur de l'entreprise (admin actif).
    Les jetons d'accès déjà émis restent valides jusqu'à leur expiration.
    """
    role = authorization.active_role(db, caller.id)
    if not authorization.has_capability(role, Capability.FORCE_LOGOUT):
        raise AuthorizationError("Permission refusée : seuls les admins actifs peuvent déconnecter un utilisateur.")
    target = get_scoped(db, Profile, target_user_id, caller.company_id, "Utilisateur")

    result = db.execute(
        delete(ActiveRefreshToken).where(ActiveRefreshToken.user_id == target.id)
    )
    db.commit()

    revoked = result.rowcount or 0
    logger.info("Déconnexion forcée de %s par l'admin %s : %d session(s)", target.id, caller.id, revoked)
    return ForceLogoutResponse(
        message=f"{revoked} session(s) révoquée(s).",
        revoked_sessions=revoked,
    )


def purge_expired_tokens(db: Session) -> int:
    result = db.execute(
        delete(ActiveRefreshToken).where(ActiveRefreshToken.expires_at <= utcnow())
    )
    db.commit()
    return result.rowcount or 0
