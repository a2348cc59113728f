"""
Calcul des champs dérivés d'un enregistrement de participation.

- Suffrage exprimé = votants - bulletins nuls
- Taux de participation = votants / inscrits * 100, arrondi à 2 décimales

Les valeurs négatives ne sont pas corrigées ici : c'est le validateur
qui les signale.
"""
from __future__ import annotations

from .records import ParticipationRecord


def calculate_expressed_suffrage(voters_count: int, null_ballots: int) -> int:
    """
    Retourne le suffrage exprimé.

    Examples:
        >>> calculate_expressed_suffrage(18500, 700)
        17800
    """
    return voters_count - null_ballots


def calculate_participation_rate(voters_count: int, registered_voters: int) -> float:
    """
    Retourne le taux de participation en pourcentage (0-100, peut dépasser 100).

    Un nombre d'inscrits nul donne un taux de 0 plutôt qu'une division par zéro.

    Examples:
        >>> calculate_participation_rate(18500, 25000)
        74.0
        >>> calculate_participation_rate(10, 0)
        0.0
    """
    if registered_voters == 0:
        return 0.0
    return round((voters_count / registered_voters) * 100, 2)


def compute_derived_fields(record: ParticipationRecord) -> ParticipationRecord:
    """
    Complète les champs dérivés absents.

    Une valeur déjà fournie par l'appelant n'est jamais écrasée, ce qui rend
    l'opération idempotente.

    Args:
        record: Enregistrement brut

    Returns:
        Une copie de l'enregistrement avec suffrage exprimé et taux renseignés
    """
    changes = {}
    if record.expressed_suffrage is None:
        changes["expressed_suffrage"] = calculate_expressed_suffrage(
            record.voters_count, record.null_ballots
        )
    if record.participation_rate is None:
        changes["participation_rate"] = calculate_participation_rate(
            record.voters_count, record.registered_voters
        )
    if not changes:
        return record
    return record.with_changes(**changes)


__all__ = [
    "calculate_expressed_suffrage",
    "calculate_participation_rate",
    "compute_derived_fields",
]
