"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from typing import Generator
from zoneinfo import ZoneInfo
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from lending_engine.api.main import create_app
from lending_engine.api.dependencies import get_now
from lending_engine.domain.modality import CADENCE_FIELDS, ModalityType
from lending_engine.infrastructure.database.models import (
    Base,
    ContractRow,
    MovementRow,
    ParameterRow,
    PaymentModalityRow,
)
from lending_engine.infrastructure.database.session import get_db, get_session_factory

# Monday after the first two weeks of daily collection
NOW = datetime(2024, 1, 15, 9, 0, tzinfo=ZoneInfo("America/Manaus"))


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite database so recompute workers share it across threads"""
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    """Create test database session"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory) -> TestClient:
    """Create FastAPI test client with test database and a fixed clock"""
    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_now] = lambda: NOW
    return TestClient(app)


@pytest.fixture
def create_company(db: Session):
    """Insert company parameters (defaults unless overridden)"""

    def _create(company_id: str = "acme", **overrides) -> str:
        db.add(ParameterRow(company_id=company_id, **overrides))
        db.commit()
        return company_id

    return _create


@pytest.fixture
def create_contract(db: Session):
    """
    Insert a contract with its modality and movements.

    Defaults: daily modality, 10 installments, 10% surcharge over 100.00, starting on
    Monday 2024-01-01 -> ten installments of 11.00.
    """

    def _create(
        company_id: str = "acme",
        modality_type: str = "daily",
        periods: int = 10,
        percent: str = "10",
        principal_cents: int = 10000,
        start_date: date = date(2024, 1, 1),
        off_days: bool = False,
        movements=(),
        with_modality: bool = True,
        is_active: bool = True,
        finished_at=None,
    ) -> str:
        modality_id = None
        if with_modality:
            modality = PaymentModalityRow(
                company_id=company_id,
                title=f"{modality_type} x{periods}",
                type=modality_type,
                percent=Decimal(percent),
                off_days=off_days,
                **{CADENCE_FIELDS[ModalityType(modality_type)]: periods},
            )
            db.add(modality)
            db.flush()
            modality_id = modality.id

        contract = ContractRow(
            company_id=company_id,
            route_id="route-1",
            modality_id=modality_id,
            principal_cents=principal_cents,
            start_date=start_date,
            is_active=is_active,
            finished_at=finished_at,
        )
        db.add(contract)
        db.flush()

        for amount_cents, movement_date, validated in movements:
            db.add(
                MovementRow(
                    contract_id=contract.id,
                    amount_cents=amount_cents,
                    movement_date=movement_date,
                    validated=validated,
                )
            )

        db.commit()
        return contract.id

    return _create


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation time shared with the API clock"""
    return NOW
