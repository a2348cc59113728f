import pytest

from scrutin.core.calculations import compute_derived_fields
from scrutin.core.records import ParticipationRecord, TerritorialUnit
from scrutin.core.validation import validate_participation


def _clean(**overrides):
    values = dict(
        registered_voters=25000,
        voters_count=18500,
        envelopes_in_ballot_boxes=18500,
        valid_suffrages=17800,
        null_ballots=700,
    )
    values.update(overrides)
    return compute_derived_fields(ParticipationRecord(**values))


def test_scenario_clean_record_is_valid_without_warnings():
    record = _clean()
    result = validate_participation(record)
    assert record.expressed_suffrage == 17800
    assert record.participation_rate == 74.0
    assert result.is_valid
    assert result.errors == []
    assert result.warnings == []
    assert not result.needs_confirmation


def test_voters_exceeding_registered_is_an_error():
    record = compute_derived_fields(
        ParticipationRecord(registered_voters=1000, voters_count=1500, envelopes_in_ballot_boxes=1500)
    )
    result = validate_participation(record)
    assert not result.is_valid
    assert any("exceeds registered voters" in message for message in result.errors)


@pytest.mark.parametrize("registered,voters", [(0, 1), (10, 11), (999, 1000)])
def test_any_voter_excess_is_invalid(registered, voters):
    result = validate_participation(_clean(registered_voters=registered, voters_count=voters))
    assert not result.is_valid
    assert any("exceeds registered voters" in message for message in result.errors)


def test_null_ballots_exceeding_voters_is_an_error():
    result = validate_participation(_clean(null_ballots=20000, expressed_suffrage=None))
    assert not result.is_valid
    assert any("Null ballots (20000) exceed total voters" in message for message in result.errors)


def test_rate_within_tolerance_raises_no_warning():
    result = validate_participation(_clean(participation_rate=74.05))
    assert result.warnings == []


def test_rate_outside_tolerance_warns_once_and_stays_valid():
    result = validate_participation(_clean(participation_rate=74.2))
    assert result.is_valid
    assert len(result.warnings) == 1
    assert "doesn't match calculated rate (74.00%)" in result.warnings[0]


def test_expressed_suffrage_mismatch_is_a_warning():
    result = validate_participation(_clean(expressed_suffrage=17000))
    assert result.is_valid
    assert result.warnings == ["Expressed suffrage (17000) doesn't match calculated value (17800)"]


def test_all_warnings_are_reported_together():
    record = _clean(
        envelopes_in_ballot_boxes=18000,
        null_ballots=2000,
        valid_suffrages=16500,
        empty_envelopes=10000,
        non_official_ballots=9000,
    )
    result = validate_participation(record)
    assert result.is_valid
    assert len(result.warnings) == 3
    assert any(w.startswith("Envelopes in ballot boxes (18000)") for w in result.warnings)
    assert any(w.startswith("Null ballots exceed 10%") for w in result.warnings)
    assert any(w.startswith("Sum of irregular ballots (19000)") for w in result.warnings)


def test_errors_and_warnings_are_collected_in_one_pass():
    record = compute_derived_fields(
        ParticipationRecord(registered_voters=1000, voters_count=1500, null_ballots=1600)
    )
    result = validate_participation(record)
    assert len(result.errors) == 2
    assert "Participation rate exceeds 105% - please verify the numbers" in result.warnings
    assert any(w.startswith("Envelopes in ballot boxes (0)") for w in result.warnings)


def test_missing_key_values_are_flagged():
    result = validate_participation(compute_derived_fields(ParticipationRecord()))
    assert result.is_valid
    assert "Number of registered voters is not specified" in result.warnings
    assert "Number of voters is not specified" in result.warnings


def test_negative_counts_are_errors():
    result = validate_participation(_clean(empty_envelopes=-3))
    assert not result.is_valid
    assert "empty_envelopes cannot be negative (-3)" in result.errors


@pytest.mark.parametrize("rate", [float("nan"), float("inf")])
def test_non_finite_rate_is_an_error(rate):
    result = validate_participation(_clean(participation_rate=rate))
    assert not result.is_valid
    assert result.needs_confirmation
    assert any("not a finite number" in message for message in result.errors)


@pytest.mark.parametrize("raw", ["nan", "inf", float("-inf")])
def test_from_mapping_rejects_non_finite_rate(raw):
    with pytest.raises(ValueError, match="participation_rate"):
        ParticipationRecord.from_mapping({"registered_voters": 1000, "voters_count": 800, "participation_rate": raw})


def test_result_to_dict():
    result = validate_participation(_clean(participation_rate=80.0))
    payload = result.to_dict()
    assert payload["is_valid"] is True
    assert payload["errors"] == []
    assert len(payload["warnings"]) == 1


def test_from_mapping_rejects_unknown_fields():
    with pytest.raises(ValueError, match="nombre_votant"):
        ParticipationRecord.from_mapping({"registered_voters": 10, "nombre_votant": 5})


def test_from_mapping_rejects_non_integer_counts():
    with pytest.raises(ValueError):
        ParticipationRecord.from_mapping({"voters_count": 10.5})
    with pytest.raises(ValueError):
        ParticipationRecord.from_mapping({"voters_count": "beaucoup"})


def test_from_mapping_coerces_and_skips_null_counts():
    record = ParticipationRecord.from_mapping(
        {"registered_voters": "100", "voters_count": 80.0, "null_ballots": None, "participation_rate": None}
    )
    assert record.registered_voters == 100
    assert record.voters_count == 80
    assert record.null_ballots == 0
    assert record.participation_rate is None


def test_unknown_unit_type_is_rejected():
    with pytest.raises(ValueError):
        TerritorialUnit("region", 1)
