"""Règles de cohérence des chiffres de participation."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .calculations import calculate_expressed_suffrage
from .records import COUNT_FIELDS, ParticipationRecord

# Écart toléré (en points de pourcentage) entre taux saisi et taux calculé
RATE_TOLERANCE = 0.1
MAX_PLAUSIBLE_RATE = 105.0
MAX_NULL_BALLOT_SHARE = 0.10


@dataclass
class ValidationResult:
    """Résultat d'une validation : erreurs bloquantes et avertissements."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def needs_confirmation(self) -> bool:
        return bool(self.errors or self.warnings)

    def to_dict(self) -> dict:
        return {
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "is_valid": self.is_valid,
        }


Rule = Callable[[ParticipationRecord, ValidationResult], None]


def _check_negative_counts(record: ParticipationRecord, result: ValidationResult) -> None:
    for name in COUNT_FIELDS:
        value = getattr(record, name)
        if value < 0:
            result.errors.append(f"{name} cannot be negative ({value})")


def _check_voters_within_registered(record: ParticipationRecord, result: ValidationResult) -> None:
    if record.voters_count > record.registered_voters:
        result.errors.append(
            f"Number of voters ({record.voters_count}) exceeds registered voters "
            f"({record.registered_voters}) - this is mathematically impossible"
        )


def _check_null_within_voters(record: ParticipationRecord, result: ValidationResult) -> None:
    if record.null_ballots > record.voters_count:
        result.errors.append(
            f"Null ballots ({record.null_ballots}) exceed total voters "
            f"({record.voters_count}) - this cannot be correct"
        )


def _check_envelopes_match_voters(record: ParticipationRecord, result: ValidationResult) -> None:
    if record.envelopes_in_ballot_boxes != record.voters_count:
        result.warnings.append(
            f"Envelopes in ballot boxes ({record.envelopes_in_ballot_boxes}) "
            f"doesn't match voters ({record.voters_count})"
        )


def _check_expressed_suffrage(record: ParticipationRecord, result: ValidationResult) -> None:
    if record.expressed_suffrage is None:
        return
    expected = calculate_expressed_suffrage(record.voters_count, record.null_ballots)
    if record.expressed_suffrage != expected:
        result.warnings.append(
            f"Expressed suffrage ({record.expressed_suffrage}) doesn't match calculated value ({expected})"
        )


def _raw_rate(record: ParticipationRecord) -> Optional[float]:
    if record.registered_voters <= 0:
        return None
    return record.voters_count / record.registered_voters * 100


def _check_participation_rate(record: ParticipationRecord, result: ValidationResult) -> None:
    if record.participation_rate is None:
        return
    if not math.isfinite(record.participation_rate):
        result.errors.append(f"Participation rate ({record.participation_rate}) is not a finite number")
        return
    expected = _raw_rate(record)
    if expected is None:
        return
    if abs(record.participation_rate - expected) > RATE_TOLERANCE:
        result.warnings.append(
            f"Participation rate ({record.participation_rate}%) doesn't match "
            f"calculated rate ({expected:.2f}%)"
        )


def _check_plausible_rate(record: ParticipationRecord, result: ValidationResult) -> None:
    rate = _raw_rate(record)
    if rate is not None and rate > MAX_PLAUSIBLE_RATE:
        result.warnings.append(
            f"Participation rate exceeds {MAX_PLAUSIBLE_RATE:g}% - please verify the numbers"
        )


def _check_null_ballot_share(record: ParticipationRecord, result: ValidationResult) -> None:
    if record.voters_count > 0 and record.null_ballots / record.voters_count > MAX_NULL_BALLOT_SHARE:
        result.warnings.append(
            f"Null ballots exceed {MAX_NULL_BALLOT_SHARE * 100:g}% of total voters - this seems unusually high"
        )


def _check_key_values_present(record: ParticipationRecord, result: ValidationResult) -> None:
    if record.registered_voters == 0:
        result.warnings.append("Number of registered voters is not specified")
    if record.voters_count == 0:
        result.warnings.append("Number of voters is not specified")


def _check_irregular_ballots(record: ParticipationRecord, result: ValidationResult) -> None:
    irregular = record.irregular_ballots
    if irregular > record.voters_count:
        result.warnings.append(
            f"Sum of irregular ballots ({irregular}) exceeds total voters "
            f"({record.voters_count}) - please verify the breakdown"
        )


RULES: List[Rule] = [
    _check_negative_counts,
    _check_voters_within_registered,
    _check_null_within_voters,
    _check_envelopes_match_voters,
    _check_expressed_suffrage,
    _check_participation_rate,
    _check_plausible_rate,
    _check_null_ballot_share,
    _check_key_values_present,
    _check_irregular_ballots,
]


def validate_participation(record: ParticipationRecord) -> ValidationResult:
    """
    Applique toutes les règles à un enregistrement déjà dérivé.

    Toutes les règles sont évaluées à chaque appel afin que l'appelant
    obtienne la liste complète des anomalies en une seule passe.
    """
    result = ValidationResult()
    for rule in RULES:
        rule(record, result)
    return result


__all__ = [
    "RATE_TOLERANCE",
    "MAX_PLAUSIBLE_RATE",
    "MAX_NULL_BALLOT_SHARE",
    "ValidationResult",
    "validate_participation",
]
