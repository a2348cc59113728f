"""
Service de gestion des redressements (corrections a posteriori).

Deux types :
- "bureau"   : chiffres de participation d'un bureau de vote
- "candidat" : voix d'un parti dans un bureau de vote

Les valeurs initiales ne sont jamais écrasées ; l'écart et sa variation en
pourcentage sont recalculés à chaque lecture.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping

from ..core.logging_config import audit_logger, get_logger
from ..core.records import TerritorialUnit
from ..core.redressement import CorrectionDelta, require_justification
from ..exceptions import InvalidCorrectionError, UnauthorizedError
from ..repositories import CORRECTION_KEYS, CorrectionRepository, TerritorialAccess

logger = get_logger(__name__)

# Paires (initiale, redressée) suivies pour chaque type de redressement
METRIC_PAIRS = {
    "bureau": {
        "registered": ("registered_initial", "registered_redressed"),
        "voters": ("voters_initial", "voters_redressed"),
        "null_ballots": ("null_ballots_initial", "null_ballots_redressed"),
        "expressed": ("expressed_initial", "expressed_redressed"),
    },
    "candidat": {
        "votes": ("initial_votes", "redressed_votes"),
    },
}


def correction_deltas(kind: str, row) -> Dict[str, Dict[str, Any]]:
    """Écarts calculés pour chaque métrique renseignée du redressement."""
    deltas = {}
    for metric, (initial_col, redressed_col) in METRIC_PAIRS[kind].items():
        initial = getattr(row, initial_col)
        redressed = getattr(row, redressed_col)
        if initial is None and redressed is None:
            continue
        deltas[metric] = CorrectionDelta(initial, redressed).to_dict()
    return deltas


def _check_pairs(kind: str, values: Mapping[str, Any]) -> None:
    complete = 0
    for metric, (initial_col, redressed_col) in METRIC_PAIRS[kind].items():
        initial = values.get(initial_col)
        redressed = values.get(redressed_col)
        if (initial is None) != (redressed is None):
            raise InvalidCorrectionError(
                f"Metric '{metric}' needs both an initial and a redressed value"
            )
        if initial is not None:
            if initial < 0 or redressed < 0:
                raise InvalidCorrectionError(f"Metric '{metric}' cannot be negative")
            complete += 1
    if not complete:
        raise InvalidCorrectionError("A correction must carry at least one initial/redressed pair")


class RedressementService:
    def __init__(self, access, repository):
        self.access = access
        self.repository = repository

    def _authorize(self, caller_id, department_code: int) -> None:
        unit = TerritorialUnit("departement", department_code)
        if not self.access.is_caller_assigned(caller_id, unit):
            audit_logger.log_access_denied(caller_id, unit.label)
            logger.warning("Access denied to corrections: user=%s unit=%s", caller_id, unit.label)
            raise UnauthorizedError(caller_id, unit.label)

    def _check_bureau_department(self, caller_id, bureau_code: int, department_code: int) -> None:
        """Le bureau de vote doit relever, au référentiel, du département déclaré."""
        parent = self.access.parent_department("bureau_vote", bureau_code)
        if parent is None:
            raise InvalidCorrectionError(f"Unknown polling station {bureau_code}")
        if parent != department_code:
            label = f"bureau_vote {bureau_code}"
            audit_logger.log_access_denied(caller_id, label)
            logger.warning(
                "Correction refused: bureau %s belongs to department %s, not %s",
                bureau_code, parent, department_code,
            )
            raise UnauthorizedError(caller_id, label)

    def _create(self, kind: str, payload: Mapping[str, Any], caller_id):
        values = dict(payload)
        if values.get("department_code") is None:
            raise InvalidCorrectionError("A correction must be attached to a department")
        self._authorize(caller_id, values["department_code"])
        self._check_bureau_department(caller_id, values["bureau_code"], values["department_code"])
        values["justification"] = require_justification(values.get("justification"))
        _check_pairs(kind, values)
        values["created_by"] = str(caller_id)

        row = self.repository.create(kind, values)
        key = tuple(values[name] for name in CORRECTION_KEYS[kind])
        audit_logger.log_correction(caller_id, kind, "create", key)
        logger.info("Created %s correction %s (id=%s)", kind, key, row.id)
        return row

    def create_bureau_correction(self, payload: Mapping[str, Any], caller_id):
        return self._create("bureau", payload, caller_id)

    def create_candidate_correction(self, payload: Mapping[str, Any], caller_id):
        return self._create("candidat", payload, caller_id)

    def update_correction(self, kind: str, correction_id: int, changes: Mapping[str, Any], caller_id):
        """Modifie les valeurs redressées et/ou la justification, jamais les valeurs initiales."""
        row = self.repository.get(kind, correction_id)
        self._authorize(caller_id, row.department_code)

        allowed = {redressed for _, redressed in METRIC_PAIRS[kind].values()} | {"justification"}
        forbidden = sorted(set(changes) - allowed)
        if forbidden:
            raise InvalidCorrectionError(
                f"Only redressed values and justification can be changed (got {', '.join(forbidden)})"
            )

        updates = dict(changes)
        if "justification" in updates:
            updates["justification"] = require_justification(updates["justification"])
        for metric, (initial_col, redressed_col) in METRIC_PAIRS[kind].items():
            if redressed_col not in updates:
                continue
            value = updates[redressed_col]
            if value is None or value < 0:
                raise InvalidCorrectionError(f"Metric '{metric}' needs a non-negative redressed value")
            if getattr(row, initial_col) is None:
                raise InvalidCorrectionError(f"Metric '{metric}' has no initial value to correct")

        row = self.repository.update(kind, correction_id, updates)
        audit_logger.log_correction(caller_id, kind, "update", correction_id)
        return row

    def delete_correction(self, kind: str, correction_id: int, caller_id) -> None:
        row = self.repository.get(kind, correction_id)
        self._authorize(caller_id, row.department_code)
        self.repository.delete(kind, correction_id)
        audit_logger.log_correction(caller_id, kind, "delete", correction_id)
        logger.info("Deleted %s correction id=%s", kind, correction_id)

    def list_corrections(self, kind: str, department_code: int, caller_id) -> List[Dict[str, Any]]:
        self._authorize(caller_id, department_code)
        return [describe_correction(kind, row) for row in self.repository.list(kind, department_code)]


def describe_correction(kind: str, row) -> Dict[str, Any]:
    data = {column.name: getattr(row, column.name) for column in row.__table__.columns}
    data["deltas"] = correction_deltas(kind, row)
    return data


def build_redressement_service(db) -> RedressementService:
    return RedressementService(TerritorialAccess(db), CorrectionRepository(db))


__all__ = [
    "RedressementService",
    "METRIC_PAIRS",
    "correction_deltas",
    "describe_correction",
    "build_redressement_service",
]
