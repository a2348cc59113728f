"""
Identification de l'appelant.

L'authentification est assurée en amont (passerelle) : l'application ne fait
que lire l'identifiant utilisateur transmis dans l'en-tête configuré.
"""
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from .config import CALLER_HEADER

caller_header = APIKeyHeader(name=CALLER_HEADER, auto_error=False)


async def get_caller_id(caller_id: Optional[str] = Security(caller_header)) -> str:
    """
    Retourne l'identifiant de l'appelant.

    Raises:
        HTTPException: Si l'en-tête est absent ou vide
    """
    if not caller_id or not caller_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Identifiant utilisateur manquant. Fournissez l'en-tête {CALLER_HEADER}.",
        )
    return caller_id.strip()
