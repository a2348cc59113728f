"""
Service de mise à jour des chiffres de participation.

Enchaîne pour chaque appel : contrôle d'affectation territoriale, calcul des
champs dérivés, validation, puis écriture unique ou rejet.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Tuple, Union

from ..core.calculations import compute_derived_fields
from ..core.logging_config import audit_logger, get_logger
from ..core.records import ParticipationRecord, TerritorialUnit
from ..core.validation import ValidationResult, validate_participation
from ..exceptions import UnauthorizedError, ValidationRequiredError
from ..repositories import ParticipationRepository, TerritorialAccess

logger = get_logger(__name__)

ParticipationInput = Union[ParticipationRecord, Mapping[str, Any]]


@dataclass
class ParticipationUpdate:
    """Résultat d'une mise à jour persistée."""

    record: Any
    validation: ValidationResult
    forced: bool


class ParticipationService:
    """
    Orchestrateur des mises à jour de participation.

    Args:
        access: objet exposant resolve_unit(unit) et is_caller_assigned(caller_id, unit)
        repository: objet exposant get / upsert / delete par unité territoriale
    """

    def __init__(self, access, repository):
        self.access = access
        self.repository = repository

    def _authorize(self, caller_id, unit: TerritorialUnit) -> TerritorialUnit:
        """Retourne l'unité rattachée à son département enregistré, ou lève UnauthorizedError."""
        resolved = self.access.resolve_unit(unit)
        if resolved is None or not self.access.is_caller_assigned(caller_id, resolved):
            audit_logger.log_access_denied(caller_id, unit.label)
            logger.warning("Access denied: user=%s unit=%s", caller_id, unit.label)
            raise UnauthorizedError(caller_id, unit.label)
        return resolved

    @staticmethod
    def _prepare(data: ParticipationInput) -> Tuple[ParticipationRecord, ValidationResult]:
        record = data if isinstance(data, ParticipationRecord) else ParticipationRecord.from_mapping(data)
        record = compute_derived_fields(record)
        return record, validate_participation(record)

    def get_participation(self, unit: TerritorialUnit, caller_id):
        unit = self._authorize(caller_id, unit)
        return self.repository.get(unit)

    def preview_participation(
        self, data: ParticipationInput, unit: TerritorialUnit, caller_id
    ) -> Tuple[ParticipationRecord, ValidationResult]:
        """Calcule et valide sans jamais écrire."""
        self._authorize(caller_id, unit)
        return self._prepare(data)

    def update_participation(
        self,
        data: ParticipationInput,
        unit: TerritorialUnit,
        caller_id,
        force_update: bool = False,
    ) -> ParticipationUpdate:
        """
        Met à jour (ou crée) la participation d'une unité territoriale.

        Raises:
            UnauthorizedError: l'appelant n'est pas affecté à l'unité
            ValidationRequiredError: erreurs ou avertissements sans force_update
            StorageError: échec de la couche de persistance
        """
        unit = self._authorize(caller_id, unit)
        record, result = self._prepare(data)

        if result.needs_confirmation and not force_update:
            audit_logger.log_validation_blocked(
                caller_id, unit.label, len(result.errors), len(result.warnings)
            )
            logger.warning(
                "Participation update for %s needs confirmation (%d errors, %d warnings)",
                unit.label, len(result.errors), len(result.warnings),
            )
            raise ValidationRequiredError(result)

        forced = force_update and result.needs_confirmation
        if forced:
            logger.warning(
                "Forced participation update for %s by user %s despite %d errors and %d warnings",
                unit.label, caller_id, len(result.errors), len(result.warnings),
            )

        persisted = self.repository.upsert(unit, record)
        audit_logger.log_participation_update(
            caller_id, unit.label, forced, len(result.errors), len(result.warnings)
        )
        logger.info("Participation saved for %s", unit.label)
        return ParticipationUpdate(record=persisted, validation=result, forced=forced)

    def delete_participation(self, unit: TerritorialUnit, caller_id) -> bool:
        unit = self._authorize(caller_id, unit)
        deleted = self.repository.delete(unit)
        if deleted:
            logger.info("Participation deleted for %s by user %s", unit.label, caller_id)
        return deleted


def build_participation_service(db) -> ParticipationService:
    return ParticipationService(TerritorialAccess(db), ParticipationRepository(db))


__all__ = ["ParticipationService", "ParticipationUpdate", "build_participation_service"]
