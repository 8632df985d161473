"""
Initialisation d'une entreprise : tables, premier admin et PIN de connexion.

Usage : python -m app.seed --company "École de musique" --first-name Ada --last-name Admin
"""

import argparse
import logging
from datetime import timedelta

from sqlalchemy.orm import Session

import app.models  # noqa: F401
from app.config import settings
from app.database import Base, SessionLocal, engine
from app.models.company import Company
from app.models.profile import Profile, Role, Status
from app.models.session import OneTimePin
from app.services.pin_service import random_pin
from app.timeutils import utcnow

logger = logging.getLogger(__name__)


def seed_company(db: Session, company_name: str, first_name: str, last_name: str) -> tuple[Profile, str]:
    """Crée l'entreprise, son admin et un PIN 'admin'. Retourne (admin, pin)."""
    company = Company(name=company_name)
    db.add(company)
    db.flush()

    admin = Profile(
        company_id=company.id,
        role=Role.ADMIN.value,
        status=Status.ACTIVE.value,
        first_name=first_name,
        last_name=last_name,
    )
    db.add(admin)
    db.flush()

    pin = random_pin(settings.PIN_LENGTH)
    db.add(OneTimePin(
        pin=pin,
        user_id=admin.id,
        target_role=Role.ADMIN.value,
        company_id=company.id,
        expires_at=utcnow() + timedelta(minutes=settings.PIN_EXPIRE_MINUTES),
    ))
    db.commit()
    db.refresh(admin)

    logger.info("Entreprise '%s' créée avec l'admin %s", company_name, admin.id)
    return admin, pin


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Crée une entreprise et son premier administrateur.")
    parser.add_argument("--company", required=True, help="Nom de l'entreprise")
    parser.add_argument("--first-name", required=True)
    parser.add_argument("--last-name", required=True)
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        admin, pin = seed_company(db, args.company, args.first_name, args.last_name)
    finally:
        db.close()

    print(f"Admin créé : {admin.id}")
    print(f"PIN de connexion ({settings.PIN_EXPIRE_MINUTES} min) : {pin}")


if __name__ == "__main__":
    main()
