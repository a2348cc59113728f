"""
Accès aux données : affectations territoriales, participations et redressements.

Chaque opération est une écriture ou lecture unitaire ; toute erreur SQLAlchemy
est convertie en StorageError après rollback de la session.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, List, Mapping, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .core.logging_config import get_logger
from .core.records import COUNT_FIELDS, ParticipationRecord, TerritorialUnit
from .exceptions import CorrectionNotFoundError, DuplicateCorrectionError, StorageError
from .models import (
    Participation,
    RedressementBureau,
    RedressementCandidat,
    TerritorialAssignment,
    TerritorialReference,
)

logger = get_logger(__name__)

CORRECTION_MODELS = {
    "bureau": RedressementBureau,
    "candidat": RedressementCandidat,
}

# Colonnes formant la clé d'unicité de chaque type de redressement
CORRECTION_KEYS = {
    "bureau": ("bureau_code",),
    "candidat": ("bureau_code", "party_code"),
}


@contextmanager
def _storage_guard(db: Session, action: str):
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Storage failure while %s: %s", action, exc)
        raise StorageError(f"Storage failure while {action}", exc) from exc


def row_to_record(row: Participation) -> ParticipationRecord:
    values = {name: getattr(row, name) or 0 for name in COUNT_FIELDS}
    return ParticipationRecord(
        expressed_suffrage=row.expressed_suffrage,
        participation_rate=row.participation_rate,
        **values,
    )


class TerritorialAccess:
    """Vérifie les affectations territoriales d'un utilisateur."""

    def __init__(self, db: Session):
        self.db = db

    def parent_department(self, unit_type: str, unit_code: int) -> Optional[int]:
        """Département de rattachement d'une unité selon le référentiel, None si inconnue."""
        if unit_type == "departement":
            return unit_code
        with _storage_guard(self.db, f"resolving department of {unit_type} {unit_code}"):
            parent = (
                self.db.query(TerritorialReference.department_code)
                .filter(
                    TerritorialReference.unit_type == unit_type,
                    TerritorialReference.unit_code == unit_code,
                )
                .first()
            )
        return parent[0] if parent is not None else None

    def resolve_unit(self, unit: TerritorialUnit) -> Optional[TerritorialUnit]:
        """
        Rattache l'unité au département enregistré au référentiel.

        Le département transmis par l'appelant n'est qu'une indication :
        None si elle contredit le référentiel, ignorée si l'unité n'y figure pas.
        """
        parent = self.parent_department(unit.unit_type, unit.code)
        if unit.department_code is not None and parent is not None and unit.department_code != parent:
            logger.warning(
                "Department mismatch for %s: claimed %s, registered %s",
                unit.label, unit.department_code, parent,
            )
            return None
        return TerritorialUnit(unit.unit_type, unit.code, parent)

    def is_caller_assigned(self, caller_id, unit: TerritorialUnit) -> bool:
        """
        True si l'utilisateur est affecté à l'unité, ou au département
        dont elle dépend (unité déjà résolue par resolve_unit).
        """
        scopes = [
            and_(
                TerritorialAssignment.unit_type == unit.unit_type,
                TerritorialAssignment.unit_code == unit.code,
            )
        ]
        if unit.unit_type != "departement" and unit.department_code is not None:
            scopes.append(
                and_(
                    TerritorialAssignment.unit_type == "departement",
                    TerritorialAssignment.unit_code == unit.department_code,
                )
            )

        with _storage_guard(self.db, "checking territorial assignment"):
            assignment = (
                self.db.query(TerritorialAssignment.id)
                .filter(
                    TerritorialAssignment.user_id == str(caller_id),
                    TerritorialAssignment.is_active.is_(True),
                    or_(*scopes),
                )
                .first()
            )
        return assignment is not None


class ParticipationRepository:
    """Un enregistrement de participation par unité territoriale."""

    def __init__(self, db: Session):
        self.db = db

    def _find(self, unit: TerritorialUnit) -> Optional[Participation]:
        return (
            self.db.query(Participation)
            .filter(Participation.unit_type == unit.unit_type, Participation.unit_code == unit.code)
            .one_or_none()
        )

    def get(self, unit: TerritorialUnit) -> Optional[Participation]:
        with _storage_guard(self.db, f"reading participation for {unit.label}"):
            return self._find(unit)

    def upsert(self, unit: TerritorialUnit, record: ParticipationRecord) -> Participation:
        with _storage_guard(self.db, f"saving participation for {unit.label}"):
            row = self._find(unit)
            if row is None:
                row = Participation(unit_type=unit.unit_type, unit_code=unit.code)
                self.db.add(row)
            # unité résolue par TerritorialAccess : département issu du référentiel
            row.department_code = unit.department_code
            for name, value in record.to_dict().items():
                setattr(row, name, value)
            self.db.commit()
            self.db.refresh(row)
        return row

    def delete(self, unit: TerritorialUnit) -> bool:
        with _storage_guard(self.db, f"deleting participation for {unit.label}"):
            row = self._find(unit)
            if row is None:
                return False
            self.db.delete(row)
            self.db.commit()
        return True


class CorrectionRepository:
    """Redressements par bureau de vote ou par bureau et parti."""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _model(kind: str):
        try:
            return CORRECTION_MODELS[kind]
        except KeyError:
            raise ValueError(f"Unknown correction kind {kind!r}") from None

    def create(self, kind: str, values: Mapping[str, Any]):
        model = self._model(kind)
        key = tuple(values[name] for name in CORRECTION_KEYS[kind])
        filters = [getattr(model, name) == values[name] for name in CORRECTION_KEYS[kind]]

        with _storage_guard(self.db, f"checking {kind} correction {key}"):
            existing = self.db.query(model.id).filter(*filters).first()
        if existing is not None:
            raise DuplicateCorrectionError(kind, key)

        row = model(**values)
        try:
            self.db.add(row)
            self.db.commit()
        except IntegrityError as exc:
            # Création concurrente sur la même clé
            self.db.rollback()
            raise DuplicateCorrectionError(kind, key) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Storage failure while creating %s correction %s: %s", kind, key, exc)
            raise StorageError(f"Storage failure while creating {kind} correction", exc) from exc
        self.db.refresh(row)
        return row

    def get(self, kind: str, correction_id: int):
        model = self._model(kind)
        with _storage_guard(self.db, f"reading {kind} correction {correction_id}"):
            row = self.db.get(model, correction_id)
        if row is None:
            raise CorrectionNotFoundError(f"No {kind} correction with id {correction_id}")
        return row

    def update(self, kind: str, correction_id: int, changes: Mapping[str, Any]):
        row = self.get(kind, correction_id)
        with _storage_guard(self.db, f"updating {kind} correction {correction_id}"):
            for name, value in changes.items():
                setattr(row, name, value)
            self.db.commit()
            self.db.refresh(row)
        return row

    def delete(self, kind: str, correction_id: int) -> None:
        row = self.get(kind, correction_id)
        with _storage_guard(self.db, f"deleting {kind} correction {correction_id}"):
            self.db.delete(row)
            self.db.commit()

    def list(self, kind: str, department_code: Optional[int] = None) -> List[Any]:
        model = self._model(kind)
        with _storage_guard(self.db, f"listing {kind} corrections"):
            query = self.db.query(model)
            if department_code is not None:
                query = query.filter(model.department_code == department_code)
            return query.order_by(model.corrected_at.desc(), model.id.desc()).all()


__all__ = [
    "TerritorialAccess",
    "ParticipationRepository",
    "CorrectionRepository",
    "CORRECTION_MODELS",
    "CORRECTION_KEYS",
    "row_to_record",
]
