from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ParticipationIn(BaseModel):
    polling_station_count: int = Field(0, ge=0)
    registered_voters: int = Field(..., ge=0)
    voters_count: int = Field(..., ge=0)
    envelopes_in_ballot_boxes: int = Field(0, ge=0)
    envelopes_with_different_ballots: int = Field(0, ge=0)
    identifiable_voter_ballots: int = Field(0, ge=0)
    signed_envelope_ballots: int = Field(0, ge=0)
    non_official_envelopes: int = Field(0, ge=0)
    non_official_ballots: int = Field(0, ge=0)
    ballots_without_envelope: int = Field(0, ge=0)
    empty_envelopes: int = Field(0, ge=0)
    valid_suffrages: int = Field(0, ge=0)
    null_ballots: int = Field(0, ge=0)
    expressed_suffrage: Optional[int] = Field(None, ge=0)
    participation_rate: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    department_code: Optional[int] = Field(None, description="Département de rattachement (arrondissement, commune)")

    class Config:
        extra = "forbid"


class ValidationResultOut(BaseModel):
    errors: List[str]
    warnings: List[str]
    is_valid: bool


class ParticipationOut(BaseModel):
    unit_type: str
    unit_code: int
    department_code: Optional[int]
    polling_station_count: Optional[int]
    registered_voters: Optional[int]
    voters_count: Optional[int]
    envelopes_in_ballot_boxes: Optional[int]
    envelopes_with_different_ballots: Optional[int]
    identifiable_voter_ballots: Optional[int]
    signed_envelope_ballots: Optional[int]
    non_official_envelopes: Optional[int]
    non_official_ballots: Optional[int]
    ballots_without_envelope: Optional[int]
    empty_envelopes: Optional[int]
    valid_suffrages: Optional[int]
    null_ballots: Optional[int]
    expressed_suffrage: Optional[int]
    participation_rate: Optional[float]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ParticipationResponse(BaseModel):
    record: ParticipationOut
    validation: ValidationResultOut
    forced: bool = False


class RedressementBureauIn(BaseModel):
    bureau_code: int
    department_code: int
    registered_initial: Optional[int] = Field(None, ge=0)
    registered_redressed: Optional[int] = Field(None, ge=0)
    voters_initial: Optional[int] = Field(None, ge=0)
    voters_redressed: Optional[int] = Field(None, ge=0)
    null_ballots_initial: Optional[int] = Field(None, ge=0)
    null_ballots_redressed: Optional[int] = Field(None, ge=0)
    expressed_initial: Optional[int] = Field(None, ge=0)
    expressed_redressed: Optional[int] = Field(None, ge=0)
    justification: Optional[str] = None

    class Config:
        extra = "forbid"


class RedressementBureauUpdate(BaseModel):
    registered_redressed: Optional[int] = Field(None, ge=0)
    voters_redressed: Optional[int] = Field(None, ge=0)
    null_ballots_redressed: Optional[int] = Field(None, ge=0)
    expressed_redressed: Optional[int] = Field(None, ge=0)
    justification: Optional[str] = None

    class Config:
        extra = "forbid"


class RedressementCandidatIn(BaseModel):
    bureau_code: int
    party_code: int
    department_code: int
    initial_votes: int = Field(..., ge=0)
    redressed_votes: int = Field(..., ge=0)
    justification: Optional[str] = None

    class Config:
        extra = "forbid"


class RedressementCandidatUpdate(BaseModel):
    redressed_votes: Optional[int] = Field(None, ge=0)
    justification: Optional[str] = None

    class Config:
        extra = "forbid"


class CorrectionDeltaOut(BaseModel):
    initial: Optional[float]
    redressed: Optional[float]
    delta: Optional[float]
    percent_change: Optional[float]
    direction: Optional[str]


class RedressementOut(BaseModel):
    id: int
    bureau_code: int
    department_code: int
    party_code: Optional[int] = None
    justification: str
    created_by: Optional[str]
    corrected_at: Optional[datetime]
    deltas: Dict[str, CorrectionDeltaOut]

    class Config:
        extra = "allow"
