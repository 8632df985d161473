"""
Catalogue de l'entreprise : récompenses et instruments.
"""

import logging

from sqlalchemy.orm import Session

from app.exceptions import AuthorizationError
from app.models.ledger import Reward
from app.models.links import Instrument
from app.schemas.reward import InstrumentCreate, RewardCreate
from app.services import authorization
from app.services.authorization import Caller, Capability
from app.services.tenancy import scoped_select

logger = logging.getLogger(__name__)


def _require_catalog_admin(db: Session, caller: Caller) -> None:
    role = authorization.active_role(db, caller.id)
    if not authorization.has_capability(role, Capability.MANAGE_CATALOG):
        raise AuthorizationError("Permission refusée : seuls les admins actifs gèrent le catalogue.")


def create_reward(db: Session, caller: Caller, data: RewardCreate) -> Reward:
    _require_catalog_admin(db, caller)
    reward = Reward(company_id=caller.company_id, **data.model_dump())
    db.add(reward)
    db.commit()
    db.refresh(reward)
    logger.info("Récompense créée : %s (%d tickets)", reward.name, reward.cost)
    return reward


def list_rewards(db: Session, caller: Caller) -> list[Reward]:
    """Récompenses de l'entreprise, de la moins chère à la plus chère."""
    return list(db.execute(
        scoped_select(Reward, caller.company_id).order_by(Reward.cost, Reward.name)
    ).scalars().all())


def create_instrument(db: Session, caller: Caller, data: InstrumentCreate) -> Instrument:
    _require_catalog_admin(db, caller)
    instrument = Instrument(company_id=caller.company_id, name=data.name)
    db.add(instrument)
    db.commit()
    db.refresh(instrument)
    logger.info("Instrument créé : %s", instrument.name)
    return instrument


def list_instruments(db: Session, caller: Caller) -> list[Instrument]:
    return list(db.execute(
        scoped_select(Instrument, caller.company_id).order_by(Instrument.name)
    ).scalars().all())
