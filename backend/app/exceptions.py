"""
Erreurs métier levées par les services.

Chaque erreur porte le code HTTP sous lequel elle est renvoyée au client.
Le handler enregistré dans app.main les traduit en réponse JSON {"error": "..."}.
"""


class ServiceError(Exception):
    """Base de toutes les erreurs métier."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(ServiceError):
    """Jeton absent, invalide ou expiré."""
    status_code = 401


class AuthorizationError(ServiceError):
    """L'appelant n'a pas le rôle, le lien ou l'entreprise requis."""
    status_code = 403


class ValidationError(ServiceError):
    """Données incohérentes détectées par un service (avant toute écriture)."""
    status_code = 400


class ResourceNotFoundError(ServiceError):
    """Identifiant introuvable, ou appartenant à une autre entreprise."""
    status_code = 404


class StateConflictError(ServiceError):
    """L'entité n'est pas dans l'état requis pour la transition demandée."""
    status_code = 409


class PinCollisionError(StateConflictError):
    """Collision sur l'unicité du PIN : l'appelant peut réessayer."""


class InsufficientBalanceError(StateConflictError):
    status_code = 400


class PartialFailureError(ServiceError):
    """Une première étape a été validée en base, une étape suivante a échoué."""
    status_code = 500
