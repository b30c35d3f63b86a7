"""Integration tests for repositories"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.exc import IntegrityError
from lending_engine.domain.exceptions import ConfigurationError, ContractNotFoundError, ModalityInUseError
from lending_engine.domain.modality import ModalityType
from lending_engine.infrastructure.database.models import (
    ArrearRow,
    ContractPaymentRow,
    ContractRow,
    HolidayRow,
    PaymentModalityRow,
)
from lending_engine.infrastructure.database.repositories import (
    ArrearRepository,
    ContractRepository,
    HolidayRepository,
    ModalityRepository,
    ParameterRepository,
)


def add_modality(db, **overrides) -> str:
    values = {"company_id": "acme", "type": "weekly", "percent": Decimal("20"), "weeks": 4}
    values.update(overrides)
    row = PaymentModalityRow(**values)
    db.add(row)
    db.commit()
    return row.id


def test_update_unreferenced_modality(db):
    modality_id = add_modality(db)

    modality = ModalityRepository(db).update_modality(modality_id, weeks=6, percent=Decimal("25"))
    db.commit()

    assert modality.period_count == 6
    assert ModalityRepository(db).get_modality(modality_id).percent == Decimal("25")


def test_update_referenced_modality_rejected(db, create_contract):
    contract_id = create_contract()
    modality_id = db.get(ContractRow, contract_id).modality_id

    with pytest.raises(ModalityInUseError):
        ModalityRepository(db).update_modality(modality_id, days=20)


def test_update_modality_to_invalid_cadence(db):
    modality_id = add_modality(db)

    with pytest.raises(ConfigurationError):
        ModalityRepository(db).update_modality(modality_id, type=ModalityType.MONTHLY)


def test_get_contract_merges_payments(db, create_contract):
    """Test registered payments are reconciled like incoming movements"""
    contract_id = create_contract(movements=[(1100, date(2024, 1, 2), True)])
    db.add(ContractPaymentRow(contract_id=contract_id, amount_cents=500, payment_date=date(2024, 1, 3), validated=False))
    db.commit()

    contract = ContractRepository(db).get_contract(contract_id)

    assert contract.modality.type is ModalityType.DAILY
    assert [m.amount_cents for m in contract.collections] == [1100, 500]
    assert all(m.direction == "in" for m in contract.collections)


def test_get_missing_contract(db):
    with pytest.raises(ContractNotFoundError):
        ContractRepository(db).get_contract("missing")


def test_missing_parameters(db):
    with pytest.raises(ConfigurationError):
        ParameterRepository(db).get_parameters("ghost")


def test_arrears_skip_inactive_rows(db):
    db.add(ArrearRow(company_id="acme", year=2024, month=1, percent=Decimal("2")))
    db.add(ArrearRow(company_id="acme", year=2024, month=2, percent=Decimal("3"), deleted=True))
    db.commit()
    repository = ArrearRepository(db)

    assert repository.get_arrear("acme", 2024, 1).percent == Decimal("2")
    assert repository.get_arrear("acme", 2024, 2) is None
    assert [(a.year, a.month) for a in repository.list_arrears("acme")] == [(2024, 1)]


def test_deleted_arrear_month_can_be_recreated(db):
    """Test a soft-deleted month does not block a new active rate"""
    db.add(ArrearRow(company_id="acme", year=2024, month=3, percent=Decimal("2"), deleted=True))
    db.add(ArrearRow(company_id="acme", year=2024, month=3, percent=Decimal("1"), is_active=False))
    db.add(ArrearRow(company_id="acme", year=2024, month=3, percent=Decimal("4")))
    db.commit()

    assert ArrearRepository(db).get_arrear("acme", 2024, 3).percent == Decimal("4")


def test_duplicate_active_arrear_month_rejected(db):
    db.add(ArrearRow(company_id="acme", year=2024, month=3, percent=Decimal("2")))
    db.commit()
    db.add(ArrearRow(company_id="acme", year=2024, month=3, percent=Decimal("3")))

    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_list_holidays_skips_deleted(db):
    db.add(HolidayRow(company_id="acme", holiday_date=date(2024, 1, 1), description="Ano Novo"))
    db.add(HolidayRow(company_id="acme", holiday_date=date(2024, 2, 13), description="Carnaval", deleted=True))
    db.commit()

    holidays = HolidayRepository(db).list_holidays("acme")

    assert [h.holiday_date for h in holidays] == [date(2024, 1, 1)]
