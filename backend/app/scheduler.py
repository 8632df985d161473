"""
Planificateur APScheduler pour le nettoyage des données d'authentification.

Le job s'exécute toutes les heures et supprime les PIN consommés ou expirés
ainsi que les jetons de rafraîchissement expirés.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.database import SessionLocal

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def purge_auth_data() -> None:
    """
    Tâche planifiée : purge des PIN et des sessions expirés.
    Import local pour éviter les imports circulaires.
    """
    from app.services.pin_service import purge_pins
    from app.services.session_service import purge_expired_tokens

    db = SessionLocal()
    try:
        pins = purge_pins(db)
        tokens = purge_expired_tokens(db)
        logger.info("Purge : %d PIN et %d jeton(s) de rafraîchissement supprimés", pins, tokens)
    except Exception as exc:
        db.rollback()
        logger.error("Erreur lors de la purge des PIN et sessions : %s", exc)
    finally:
        db.close()


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    scheduler.add_job(
        purge_auth_data,
        trigger="interval",
        hours=1,
        id="purge_auth_data",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler démarré : purge des PIN et sessions toutes les heures.")


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
