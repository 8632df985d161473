"""
Connexion par code PIN à usage unique.

Un admin ou un professeur génère un PIN pour un utilisateur de son
entreprise ; l'utilisateur le saisit sur son appareil pour ouvrir une session.
Un PIN 'parent' généré pour un élève ouvre une session parent en lecture
sur cet élève.
"""

import logging
import secrets
from datetime import timedelta

from sqlalchemy import delete, insert, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import AuthenticationError, AuthorizationError, PinCollisionError, ValidationError
from app.models.profile import Profile, Role, Status
from app.models.session import OneTimePin
from app.schemas.auth import PinGenerate, PinResponse, SessionResponse
from app.services import authorization
from app.services.authorization import Caller, Capability
from app.services.session_service import TokenIssuer, open_session
from app.services.tenancy import get_scoped
from app.timeutils import utcnow

logger = logging.getLogger(__name__)

INVALID_PIN_MESSAGE = "PIN invalide ou expiré."

# Profils dont le PIN ne peut être généré que par un admin
PRIVILEGED_ROLES = {Role.ADMIN.value, Role.TEACHER.value}


def random_pin(length: int) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))


def generate_pin(db: Session, caller: Caller, data: PinGenerate) -> PinResponse:
    """
    Génère un PIN pour un utilisateur de l'entreprise (admin ou professeur actif).

    Le rôle demandé doit être celui du profil, sauf 'parent' qui est accepté
    pour un élève (session parent). Seul un admin génère un PIN pour un admin
    ou un professeur. Une collision sur un PIN encore présent
    lève PinCollisionError : l'appelant peut simplement réessayer.
    """
    check = authorization.is_active_admin_or_teacher(db, caller.id)
    if not check.authorized or not authorization.has_capability(check.role, Capability.GENERATE_PIN):
        raise AuthorizationError("Permission refusée : seuls les admins et professeurs actifs génèrent des PIN.")

    target = get_scoped(db, Profile, data.user_id, caller.company_id, "Utilisateur")
    parent_view = data.target_role == Role.PARENT and target.role == Role.STUDENT.value
    if data.target_role.value != target.role and not parent_view:
        raise ValidationError("Le rôle demandé ne correspond pas au profil de l'utilisateur.")
    if target.role in PRIVILEGED_ROLES and not authorization.has_capability(check.role, Capability.MANAGE_USERS):
        raise AuthorizationError("Permission refusée : seul un admin génère un PIN pour un admin ou un professeur.")
    if target.status != Status.ACTIVE.value:
        raise ValidationError("Impossible de générer un PIN pour un utilisateur inactif.")

    pin_value = random_pin(settings.PIN_LENGTH)
    expires_at = utcnow() + timedelta(minutes=settings.PIN_EXPIRE_MINUTES)
    try:
        db.execute(insert(OneTimePin).values(
            pin=pin_value,
            user_id=target.id,
            target_role=data.target_role.value,
            company_id=caller.company_id,
            expires_at=expires_at,
        ))
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Collision de PIN pour l'utilisateur %s", data.user_id)
        raise PinCollisionError("Collision de PIN, veuillez réessayer.")

    logger.info(
        "PIN généré pour l'utilisateur %s (rôle %s) par %s, valable %d min",
        target.id, data.target_role.value, caller.id, settings.PIN_EXPIRE_MINUTES,
    )
    return PinResponse(pin=pin_value, expires_at=expires_at)


def claim_pin(db: Session, issuer: TokenIssuer, pin_value: str) -> SessionResponse:
    """
    Échange un PIN contre une session. Sans identité d'appelant.

    PIN inconnu, déjà utilisé ou expiré : toujours la même erreur générique.
    La consommation est une mise à jour conditionnelle (claimed_at IS NULL) :
    deux saisies simultanées du même PIN n'ouvrent qu'une seule session.
    """
    now = utcnow()
    result = db.execute(
        update(OneTimePin)
        .where(
            OneTimePin.pin == pin_value,
            OneTimePin.claimed_at.is_(None),
            OneTimePin.expires_at > now,
        )
        .values(claimed_at=now)
    )
    if result.rowcount != 1:
        db.rollback()
        logger.info("Tentative de connexion avec un PIN invalide ou expiré")
        raise AuthenticationError(INVALID_PIN_MESSAGE)

    pin = db.get(OneTimePin, pin_value)
    profile = db.get(Profile, pin.user_id)
    if profile is None or profile.status != Status.ACTIVE.value:
        # Le PIN reste consommé
        db.commit()
        raise AuthenticationError(INVALID_PIN_MESSAGE)

    viewing_student_id = None
    if pin.target_role == Role.PARENT.value and profile.role == Role.STUDENT.value:
        viewing_student_id = profile.id

    session = open_session(db, issuer, profile, pin.target_role, viewing_student_id)
    db.commit()

    logger.info("PIN consommé : session %s ouverte pour l'utilisateur %s", pin.target_role, profile.id)
    return session


def purge_pins(db: Session) -> int:
    """Supprime les PIN consommés ou expirés."""
    result = db.execute(
        delete(OneTimePin).where(
            or_(OneTimePin.claimed_at.is_not(None), OneTimePin.expires_at <= utcnow())
        )
    )
    db.commit()
    return result.rowcount or 0
