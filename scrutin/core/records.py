"""Structures de données manipulées par le coeur de validation."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple

UNIT_TYPES = ("departement", "arrondissement", "commune")

# Sous-comptes d'irrégularités relevés sur le PV
IRREGULARITY_FIELDS: Tuple[str, ...] = (
    "envelopes_with_different_ballots",
    "identifiable_voter_ballots",
    "signed_envelope_ballots",
    "non_official_envelopes",
    "non_official_ballots",
    "ballots_without_envelope",
    "empty_envelopes",
)

COUNT_FIELDS: Tuple[str, ...] = (
    "polling_station_count",
    "registered_voters",
    "voters_count",
    "envelopes_in_ballot_boxes",
    *IRREGULARITY_FIELDS,
    "valid_suffrages",
    "null_ballots",
)


@dataclass(frozen=True)
class TerritorialUnit:
    """Unité territoriale portant un enregistrement de participation."""

    unit_type: str
    code: int
    department_code: Optional[int] = None

    def __post_init__(self) -> None:
        if self.unit_type not in UNIT_TYPES:
            raise ValueError(
                f"Unknown territorial unit type {self.unit_type!r} (expected one of {', '.join(UNIT_TYPES)})"
            )

    @property
    def label(self) -> str:
        return f"{self.unit_type} {self.code}"


@dataclass(frozen=True)
class ParticipationRecord:
    """Chiffres de participation d'une unité territoriale.

    Les champs dérivés (``expressed_suffrage``, ``participation_rate``) valent
    ``None`` tant qu'ils n'ont été ni saisis ni calculés.
    """

    registered_voters: int = 0
    voters_count: int = 0
    envelopes_in_ballot_boxes: int = 0
    envelopes_with_different_ballots: int = 0
    identifiable_voter_ballots: int = 0
    signed_envelope_ballots: int = 0
    non_official_envelopes: int = 0
    non_official_ballots: int = 0
    ballots_without_envelope: int = 0
    empty_envelopes: int = 0
    valid_suffrages: int = 0
    null_ballots: int = 0
    polling_station_count: int = 0
    expressed_suffrage: Optional[int] = None
    participation_rate: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ParticipationRecord":
        """Construit un enregistrement en refusant les champs inconnus."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown participation field(s): {', '.join(unknown)}")

        values: Dict[str, Any] = {}
        for name, raw in data.items():
            if raw is None:
                if name in COUNT_FIELDS:
                    continue
                values[name] = None
            elif name == "participation_rate":
                values[name] = _as_rate(raw)
            else:
                values[name] = _as_int(name, raw)
        return cls(**values)

    @property
    def irregular_ballots(self) -> int:
        return sum(getattr(self, name) for name in IRREGULARITY_FIELDS)

    def with_changes(self, **changes: Any) -> "ParticipationRecord":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _as_rate(raw: Any) -> float:
    try:
        rate = float(raw)
    except (TypeError, ValueError):
        raise ValueError(f"participation_rate must be a number, got {raw!r}") from None
    if not math.isfinite(rate):
        raise ValueError(f"participation_rate must be a finite number, got {raw!r}")
    return rate


def _as_int(name: str, raw: Any) -> int:
    if isinstance(raw, bool):
        raise ValueError(f"{name} must be an integer, got a boolean")
    if isinstance(raw, float):
        if not raw.is_integer():
            raise ValueError(f"{name} must be an integer, got {raw!r}")
        return int(raw)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


__all__ = [
    "UNIT_TYPES",
    "IRREGULARITY_FIELDS",
    "COUNT_FIELDS",
    "TerritorialUnit",
    "ParticipationRecord",
]
