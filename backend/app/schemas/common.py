"""
Schémas Pydantic partagés entre plusieurs routers.
"""

from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Confirmation simple d'une opération sans corps métier."""
    message: str
