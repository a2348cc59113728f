"""
Convention de redressement : chaque correction conserve la valeur initiale
et la valeur redressée, l'écart est recalculé à la lecture.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..exceptions import MissingJustificationError


@dataclass(frozen=True)
class CorrectionDelta:
    """Écart entre une valeur initiale et sa valeur redressée."""

    initial: Optional[float]
    redressed: Optional[float]

    @property
    def delta(self) -> Optional[float]:
        if self.initial is None or self.redressed is None:
            return None
        return self.redressed - self.initial

    @property
    def percent_change(self) -> Optional[float]:
        delta = self.delta
        if delta is None or self.initial == 0:
            return None
        return round(delta / self.initial * 100, 2)

    @property
    def direction(self) -> Optional[str]:
        delta = self.delta
        if delta is None:
            return None
        if delta > 0:
            return "up"
        if delta < 0:
            return "down"
        return "unchanged"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "initial": self.initial,
            "redressed": self.redressed,
            "delta": self.delta,
            "percent_change": self.percent_change,
            "direction": self.direction,
        }


def require_justification(text: Optional[str]) -> str:
    """Retourne la justification nettoyée, ou lève si elle est absente."""
    if text is None or not str(text).strip():
        raise MissingJustificationError()
    return str(text).strip()


__all__ = ["CorrectionDelta", "require_justification"]
