"""Routes API de saisie des participations et des redressements."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from ..auth import get_caller_id
from ..core.records import TerritorialUnit
from ..core.validation import validate_participation
from ..db import get_session
from ..repositories import row_to_record
from ..schemas import (
    ParticipationIn,
    ParticipationOut,
    ParticipationResponse,
    RedressementBureauIn,
    RedressementBureauUpdate,
    RedressementCandidatIn,
    RedressementCandidatUpdate,
    RedressementOut,
)
from ..services.participation import build_participation_service
from ..services.redressement import build_redressement_service, describe_correction

router = APIRouter(prefix="/api", tags=["api"])


def _unit(unit_type: str, unit_code: int, department_code: Optional[int] = None) -> TerritorialUnit:
    try:
        return TerritorialUnit(unit_type, unit_code, department_code)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


# =========================================================
# Participation
# =========================================================

@router.get("/participation/{unit_type}/{unit_code}", response_model=ParticipationResponse)
def get_participation(
    unit_type: str,
    unit_code: int,
    department_code: Optional[int] = Query(None),
    db: Session = Depends(get_session),
    caller_id: str = Depends(get_caller_id),
):
    service = build_participation_service(db)
    row = service.get_participation(_unit(unit_type, unit_code, department_code), caller_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Participation introuvable")
    # Les chiffres stockés sont revalidés à chaque lecture
    validation = validate_participation(row_to_record(row))
    return {
        "record": ParticipationOut.model_validate(row),
        "validation": validation.to_dict(),
    }


@router.put("/participation/{unit_type}/{unit_code}", response_model=ParticipationResponse)
def put_participation(
    unit_type: str,
    unit_code: int,
    payload: ParticipationIn,
    force: bool = Query(False, description="Enregistrer malgré les erreurs et avertissements"),
    db: Session = Depends(get_session),
    caller_id: str = Depends(get_caller_id),
):
    data = payload.model_dump()
    unit = _unit(unit_type, unit_code, data.pop("department_code"))
    service = build_participation_service(db)
    update = service.update_participation(data, unit, caller_id, force_update=force)
    return {
        "record": ParticipationOut.model_validate(update.record),
        "validation": update.validation.to_dict(),
        "forced": update.forced,
    }


@router.post("/participation/{unit_type}/{unit_code}/validate")
def validate_participation_payload(
    unit_type: str,
    unit_code: int,
    payload: ParticipationIn,
    db: Session = Depends(get_session),
    caller_id: str = Depends(get_caller_id),
):
    data = payload.model_dump()
    unit = _unit(unit_type, unit_code, data.pop("department_code"))
    record, result = build_participation_service(db).preview_participation(data, unit, caller_id)
    return {"record": record.to_dict(), "validation": result.to_dict()}


@router.delete("/participation/{unit_type}/{unit_code}", status_code=status.HTTP_204_NO_CONTENT)
def delete_participation(
    unit_type: str,
    unit_code: int,
    department_code: Optional[int] = Query(None),
    db: Session = Depends(get_session),
    caller_id: str = Depends(get_caller_id),
):
    deleted = build_participation_service(db).delete_participation(
        _unit(unit_type, unit_code, department_code), caller_id
    )
    if not deleted:
        raise HTTPException(status_code=404, detail="Participation introuvable")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =========================================================
# Redressements
# =========================================================

@router.get("/redressements/bureau", response_model=List[RedressementOut])
def list_bureau_corrections(
    department_code: int = Query(...),
    db: Session = Depends(get_session),
    caller_id: str = Depends(get_caller_id),
):
    return build_redressement_service(db).list_corrections("bureau", department_code, caller_id)


@router.post("/redressements/bureau", response_model=RedressementOut, status_code=status.HTTP_201_CREATED)
def create_bureau_correction(
    payload: RedressementBureauIn,
    db: Session = Depends(get_session),
    caller_id: str = Depends(get_caller_id),
):
    row = build_redressement_service(db).create_bureau_correction(payload.model_dump(), caller_id)
    return describe_correction("bureau", row)


@router.put("/redressements/bureau/{correction_id}", response_model=RedressementOut)
def update_bureau_correction(
    correction_id: int,
    payload: RedressementBureauUpdate,
    db: Session = Depends(get_session),
    caller_id: str = Depends(get_caller_id),
):
    row = build_redressement_service(db).update_correction(
        "bureau", correction_id, payload.model_dump(exclude_unset=True), caller_id
    )
    return describe_correction("bureau", row)


@router.delete("/redressements/bureau/{correction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_bureau_correction(
    correction_id: int,
    db: Session = Depends(get_session),
    caller_id: str = Depends(get_caller_id),
):
    build_redressement_service(db).delete_correction("bureau", correction_id, caller_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/redressements/candidat", response_model=List[RedressementOut])
def list_candidate_corrections(
    department_code: int = Query(...),
    db: Session = Depends(get_session),
    caller_id: str = Depends(get_caller_id),
):
    return build_redressement_service(db).list_corrections("candidat", department_code, caller_id)


@router.post("/redressements/candidat", response_model=RedressementOut, status_code=status.HTTP_201_CREATED)
def create_candidate_correction(
    payload: RedressementCandidatIn,
    db: Session = Depends(get_session),
    caller_id: str = Depends(get_caller_id),
):
    row = build_redressement_service(db).create_candidate_correction(payload.model_dump(), caller_id)
    return describe_correction("candidat", row)


@router.put("/redressements/candidat/{correction_id}", response_model=RedressementOut)
def update_candidate_correction(
    correction_id: int,
    payload: RedressementCandidatUpdate,
    db: Session = Depends(get_session),
    caller_id: str = Depends(get_caller_id),
):
    row = build_redressement_service(db).update_correction(
        "candidat", correction_id, payload.model_dump(exclude_unset=True), caller_id
    )
    return describe_correction("candidat", row)


@router.delete("/redressements/candidat/{correction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_candidate_correction(
    correction_id: int,
    db: Session = Depends(get_session),
    caller_id: str = Depends(get_caller_id),
):
    build_redressement_service(db).delete_correction("candidat", correction_id, caller_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
