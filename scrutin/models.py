from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text, UniqueConstraint
from .db import Base


class TerritorialAssignment(Base):
    __tablename__ = "territorial_assignments"
    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), index=True, nullable=False)
    unit_type = Column(String(20), nullable=False)              # 'departement' / 'arrondissement' / 'commune'
    unit_code = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class TerritorialReference(Base):
    """Référentiel territorial : département de rattachement de chaque unité."""
    __tablename__ = "territorial_units"
    __table_args__ = (UniqueConstraint("unit_type", "unit_code", name="uq_territorial_unit"),)

    id = Column(Integer, primary_key=True)
    unit_type = Column(String(20), nullable=False)              # 'arrondissement' / 'commune' / 'bureau_vote'
    unit_code = Column(Integer, nullable=False)
    department_code = Column(Integer, index=True, nullable=False)


class Participation(Base):
    __tablename__ = "participations"
    __table_args__ = (UniqueConstraint("unit_type", "unit_code", name="uq_participation_unit"),)

    id = Column(Integer, primary_key=True)
    unit_type = Column(String(20), nullable=False)
    unit_code = Column(Integer, nullable=False)
    department_code = Column(Integer, index=True)               # département de rattachement

    polling_station_count = Column(Integer, default=0)          # nombre_bureau_vote
    registered_voters = Column(Integer, default=0)              # nombre_inscrit
    voters_count = Column(Integer, default=0)                   # nombre_votant
    envelopes_in_ballot_boxes = Column(Integer, default=0)      # nombre_enveloppe_urnes

    # Irrégularités relevées au PV
    envelopes_with_different_ballots = Column(Integer, default=0)
    identifiable_voter_ballots = Column(Integer, default=0)
    signed_envelope_ballots = Column(Integer, default=0)
    non_official_envelopes = Column(Integer, default=0)
    non_official_ballots = Column(Integer, default=0)
    ballots_without_envelope = Column(Integer, default=0)
    empty_envelopes = Column(Integer, default=0)

    valid_suffrages = Column(Integer, default=0)                # nombre_suffrages_valable
    null_ballots = Column(Integer, default=0)                   # bulletin_nul
    expressed_suffrage = Column(Integer)                        # suffrage_exprime
    participation_rate = Column(Float)                          # taux_participation (0-100)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class RedressementBureau(Base):
    __tablename__ = "redressements_bureau"
    __table_args__ = (UniqueConstraint("bureau_code", name="uq_redressement_bureau"),)

    id = Column(Integer, primary_key=True)
    bureau_code = Column(Integer, nullable=False)
    department_code = Column(Integer, index=True, nullable=False)

    registered_initial = Column(Integer)
    registered_redressed = Column(Integer)
    voters_initial = Column(Integer)
    voters_redressed = Column(Integer)
    null_ballots_initial = Column(Integer)
    null_ballots_redressed = Column(Integer)
    expressed_initial = Column(Integer)
    expressed_redressed = Column(Integer)

    justification = Column(Text, nullable=False)
    created_by = Column(String(64))
    corrected_at = Column(DateTime, default=datetime.utcnow)


class RedressementCandidat(Base):
    __tablename__ = "redressements_candidat"
    __table_args__ = (UniqueConstraint("bureau_code", "party_code", name="uq_redressement_candidat"),)

    id = Column(Integer, primary_key=True)
    bureau_code = Column(Integer, nullable=False)
    party_code = Column(Integer, nullable=False)
    department_code = Column(Integer, index=True, nullable=False)

    initial_votes = Column(Integer, nullable=False)
    redressed_votes = Column(Integer, nullable=False)

    justification = Column(Text, nullable=False)
    created_by = Column(String(64))
    corrected_at = Column(DateTime, default=datetime.utcnow)
