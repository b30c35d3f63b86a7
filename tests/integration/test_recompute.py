"""Integration tests for the recompute job against a SQLite database"""

import pytest
from datetime import date, timedelta
from lending_engine.domain.exceptions import ConfigurationError
from lending_engine.infrastructure.database.models import (
    ContractPendingStatusRow,
    ContractRow,
    MovementRow,
    TrackRow,
)
from lending_engine.infrastructure.database.repositories import AuditSink
from lending_engine.jobs.recompute import UNCHANGED, UPDATED, RecomputeRunner, changed_fields, has_status_changed


@pytest.fixture
def runner(session_factory, now) -> RecomputeRunner:
    return RecomputeRunner(session_factory, max_workers=1, clock=lambda: now)


def test_recompute_persists_new_status(db, runner, create_company, create_contract):
    """Test an unpaid daily contract two weeks in"""
    create_company()
    contract_id = create_contract()

    result = runner.run()

    assert result.updated == 1
    assert result.failed == []

    row = db.get(ContractPendingStatusRow, contract_id)
    assert row.payments_late == 10
    assert row.pending_amount_cents == 11000
    assert row.balance_cents == 11000
    assert row.days_expired == 13  # First installment was due Jan 2
    assert row.color == "red"


def test_second_run_writes_nothing(runner, create_company, create_contract):
    """Test unchanged statuses are not rewritten"""
    create_company()
    create_contract(movements=[(3300, date(2024, 1, 4), True)])

    first = runner.run()
    second = runner.run()

    assert first.updated == 1
    assert second.updated == 0
    assert second.unchanged == 1


def test_new_movement_updates_status(db, runner, create_company, create_contract):
    create_company()
    contract_id = create_contract()
    runner.run()

    db.add(MovementRow(contract_id=contract_id, amount_cents=1100, movement_date=date(2024, 1, 15), validated=True))
    db.commit()

    result = runner.run()

    assert result.updated == 1
    assert db.get(ContractPendingStatusRow, contract_id).payments_late == 9


def test_settled_contract_is_finished(db, runner, create_company, create_contract):
    """Test a fully paid contract is deactivated and left alone afterwards"""
    create_company()
    contract_id = create_contract(movements=[(11000, date(2024, 1, 12), True)])

    result = runner.run()

    assert result.updated == 1
    contract = db.get(ContractRow, contract_id)
    assert contract.is_active is False
    assert contract.finished_at is not None

    # Inactive contracts are no longer listed; recomputing directly writes nothing
    assert runner.run().updated == 0
    outcome, status = runner.recompute_contract(contract_id)
    assert outcome == UNCHANGED
    assert status.balance_cents == 0


def test_failures_do_not_abort_batch(runner, create_company, create_contract):
    """Test a contract without modality and one with bad movements are skipped"""
    create_company()
    good = create_contract()
    no_modality = create_contract(with_modality=False)
    bad_movement = create_contract(movements=[(500, date(2023, 12, 1), True)])

    result = runner.run()

    assert result.updated == 1
    failed = {f.contract_id for f in result.failed}
    assert failed == {no_modality, bad_movement}
    assert good not in failed


def test_company_without_parameters_fails(runner, create_contract):
    contract_id = create_contract(company_id="ghost")

    result = runner.run()

    assert result.updated == 0
    assert result.failed[0].contract_id == contract_id
    assert "parameters" in result.failed[0].reason


def test_run_filters_by_company(runner, create_company, create_contract):
    create_company("acme")
    create_company("other")
    create_contract(company_id="acme")
    create_contract(company_id="other")

    result = runner.run(company_id="other")

    assert result.updated == 1


def test_parallel_workers(session_factory, now, create_company, create_contract):
    """Test every contract is processed with more than one worker"""
    create_company()
    create_contract()
    for paid_cents in (1100, 2200, 3300):
        create_contract(movements=[(paid_cents, date(2024, 1, 2), True)])

    result = RecomputeRunner(session_factory, max_workers=2, clock=lambda: now).run()

    assert result.updated == 4
    assert result.failed == []


def test_run_records_audit_event(db, session_factory, now, create_company, create_contract):
    create_company()
    create_contract()

    RecomputeRunner(session_factory, max_workers=1, clock=lambda: now, audit=AuditSink(session_factory)).run()

    events = db.query(TrackRow).all()
    assert len(events) == 1
    assert events[0].module == "jobs"
    assert "1 updated" in events[0].description


def test_status_changes_with_evaluation_date(runner, now, create_company, create_contract):
    """Test another day changes days_expired, and the same day twice changes nothing"""
    create_company()
    contract_id = create_contract()

    first_outcome, today = runner.recompute_contract(contract_id)
    next_outcome, tomorrow = runner.recompute_contract(contract_id, now + timedelta(days=1))
    repeat_outcome, _ = runner.recompute_contract(contract_id, now + timedelta(days=1))

    assert (first_outcome, next_outcome, repeat_outcome) == (UPDATED, UPDATED, UNCHANGED)
    assert changed_fields(None, today) == list(today.__dataclass_fields__)
    assert changed_fields(today, tomorrow) == ["days_expired"]
    assert has_status_changed(today, today) is False


def test_recompute_contract_raises_configuration_error(runner, create_company, create_contract):
    create_company()
    contract_id = create_contract(with_modality=False)

    with pytest.raises(ConfigurationError):
        runner.recompute_contract(contract_id)
