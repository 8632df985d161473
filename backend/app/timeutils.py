"""
Horloge de l'application.
Toutes les dates sont stockées en UTC naïf (sans tzinfo) pour rester
comparables entre PostgreSQL et SQLite.
"""

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()
