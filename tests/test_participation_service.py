import logging

import pytest
from sqlalchemy.exc import OperationalError

from scrutin.core.records import ParticipationRecord, TerritorialUnit
from scrutin.exceptions import StorageError, UnauthorizedError, ValidationRequiredError
from scrutin.models import Participation
from scrutin.services.participation import ParticipationService, build_participation_service

DEPT_1 = TerritorialUnit("departement", 1)


class FakeAccess:
    def __init__(self, allowed=True):
        self.allowed = allowed
        self.calls = []

    def resolve_unit(self, unit):
        return unit

    def is_caller_assigned(self, caller_id, unit):
        self.calls.append((caller_id, unit))
        return self.allowed


class FakeRepository:
    def __init__(self, fail=False):
        self.fail = fail
        self.upserts = []

    def upsert(self, unit, record):
        if self.fail:
            raise StorageError("database unavailable")
        self.upserts.append((unit, record))
        return record

    def get(self, unit):
        for stored_unit, record in reversed(self.upserts):
            if stored_unit == unit:
                return record
        return None

    def delete(self, unit):
        return False


def test_clean_update_persists_once(clean_payload):
    repo = FakeRepository()
    service = ParticipationService(FakeAccess(), repo)

    update = service.update_participation(clean_payload, DEPT_1, "agent-1")

    assert len(repo.upserts) == 1
    assert update.forced is False
    assert update.validation.is_valid
    assert update.record.expressed_suffrage == 17800
    assert update.record.participation_rate == 74.0


def test_warnings_without_force_block_persistence(clean_payload):
    repo = FakeRepository()
    service = ParticipationService(FakeAccess(), repo)
    clean_payload["envelopes_in_ballot_boxes"] = 18400

    with pytest.raises(ValidationRequiredError) as excinfo:
        service.update_participation(clean_payload, DEPT_1, "agent-1")

    assert repo.upserts == []
    assert excinfo.value.result.is_valid
    assert len(excinfo.value.result.warnings) == 1


def test_force_update_persists_despite_warnings(clean_payload):
    repo = FakeRepository()
    service = ParticipationService(FakeAccess(), repo)
    clean_payload["envelopes_in_ballot_boxes"] = 18400

    update = service.update_participation(clean_payload, DEPT_1, "agent-1", force_update=True)

    assert len(repo.upserts) == 1
    assert update.forced is True


def test_force_update_overrides_hard_errors():
    repo = FakeRepository()
    service = ParticipationService(FakeAccess(), repo)
    record = ParticipationRecord(registered_voters=1000, voters_count=1500, envelopes_in_ballot_boxes=1500)

    with pytest.raises(ValidationRequiredError) as excinfo:
        service.update_participation(record, DEPT_1, "agent-1")
    assert not excinfo.value.result.is_valid
    assert repo.upserts == []

    update = service.update_participation(record, DEPT_1, "agent-1", force_update=True)
    assert len(repo.upserts) == 1
    assert not update.validation.is_valid


def test_unauthorized_caller_is_rejected_before_any_work(clean_payload):
    repo = FakeRepository()
    access = FakeAccess(allowed=False)
    service = ParticipationService(access, repo)

    with pytest.raises(UnauthorizedError):
        service.update_participation(clean_payload, DEPT_1, "intrus", force_update=True)

    assert access.calls == [("intrus", DEPT_1)]
    assert repo.upserts == []


def test_storage_error_propagates(clean_payload):
    service = ParticipationService(FakeAccess(), FakeRepository(fail=True))
    with pytest.raises(StorageError):
        service.update_participation(clean_payload, DEPT_1, "agent-1")


def test_preview_never_writes():
    repo = FakeRepository()
    service = ParticipationService(FakeAccess(), repo)

    record, result = service.preview_participation(
        {"registered_voters": 1000, "voters_count": 1500}, DEPT_1, "agent-1"
    )

    assert record.participation_rate == 150.0
    assert not result.is_valid
    assert repo.upserts == []


def test_sqlalchemy_upsert_keeps_one_row_per_unit(db, clean_payload):
    service = build_participation_service(db)

    service.update_participation(clean_payload, DEPT_1, "agent-1")
    clean_payload["voters_count"] = 19000
    clean_payload["envelopes_in_ballot_boxes"] = 19000
    update = service.update_participation(clean_payload, DEPT_1, "agent-1")

    rows = db.query(Participation).all()
    assert len(rows) == 1
    assert rows[0].voters_count == 19000
    assert rows[0].expressed_suffrage == 18300
    assert rows[0].participation_rate == 76.0
    assert rows[0].department_code == 1
    assert update.record.id == rows[0].id


def test_department_assignment_covers_child_units(db, clean_payload):
    service = build_participation_service(db)
    arrondissement = TerritorialUnit("arrondissement", 105, department_code=1)

    update = service.update_participation(clean_payload, arrondissement, "agent-1")
    assert update.record.department_code == 1

    with pytest.raises(UnauthorizedError):
        service.update_participation(clean_payload, TerritorialUnit("arrondissement", 105), "agent-2")


def test_inactive_assignment_is_refused(db, clean_payload):
    service = build_participation_service(db)
    with pytest.raises(UnauthorizedError):
        service.get_participation(TerritorialUnit("departement", 2), "agent-3")


def test_delete_participation(db, clean_payload):
    service = build_participation_service(db)
    service.update_participation(clean_payload, DEPT_1, "agent-1")

    assert service.delete_participation(DEPT_1, "agent-1") is True
    assert service.get_participation(DEPT_1, "agent-1") is None
    assert service.delete_participation(DEPT_1, "agent-1") is False


def test_confirmation_needed_is_logged_as_warning(clean_payload, caplog):
    service = ParticipationService(FakeAccess(), FakeRepository())
    clean_payload["envelopes_in_ballot_boxes"] = 18400

    with caplog.at_level(logging.WARNING, logger="scrutin.services.participation"):
        with pytest.raises(ValidationRequiredError):
            service.update_participation(clean_payload, DEPT_1, "agent-1")

    assert any(
        record.levelno == logging.WARNING and "needs confirmation" in record.getMessage()
        for record in caplog.records
    )


def test_parent_department_comes_from_reference(db, clean_payload):
    service = build_participation_service(db)

    update = service.update_participation(clean_payload, TerritorialUnit("arrondissement", 110), "agent-1")
    assert update.record.department_code == 1


def test_claimed_department_cannot_take_over_a_foreign_unit(db, clean_payload):
    service = build_participation_service(db)
    service.update_participation(clean_payload, TerritorialUnit("arrondissement", 900, 9), "agent-9")

    tampered = dict(clean_payload, voters_count=10, envelopes_in_ballot_boxes=10)
    with pytest.raises(UnauthorizedError):
        service.update_participation(
            tampered, TerritorialUnit("arrondissement", 900, 1), "agent-1", force_update=True
        )

    row = db.query(Participation).one()
    assert row.voters_count == 18500
    assert row.department_code == 9


def test_unregistered_unit_gets_no_department_scope(db, clean_payload):
    service = build_participation_service(db)
    with pytest.raises(UnauthorizedError):
        service.update_participation(clean_payload, TerritorialUnit("commune", 7777, 1), "agent-1")
    assert db.query(Participation).count() == 0


def test_commit_failure_rolls_back_and_raises_storage_error(db, clean_payload, monkeypatch):
    rollbacks = []
    real_rollback = db.rollback

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    def tracking_rollback():
        rollbacks.append(True)
        real_rollback()

    monkeypatch.setattr(db, "commit", failing_commit)
    monkeypatch.setattr(db, "rollback", tracking_rollback)
    service = build_participation_service(db)

    with pytest.raises(StorageError) as excinfo:
        service.update_participation(clean_payload, DEPT_1, "agent-1")

    assert isinstance(excinfo.value.original, OperationalError)
    assert rollbacks == [True]
    monkeypatch.undo()
    assert db.query(Participation).count() == 0
