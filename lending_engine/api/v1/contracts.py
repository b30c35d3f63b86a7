"""GET /v1/contracts/{contract_id}/* - Contract pending status and schedule"""

from dataclasses import asdict
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from lending_engine.api.v1.schemas import InstallmentSchema, PendingStatusResponse, ScheduleResponse
from lending_engine.api.dependencies import get_now
from lending_engine.infrastructure.database.session import get_db
from lending_engine.infrastructure.database.repositories import ContractRepository, ParameterRepository
from lending_engine.domain.exceptions import ConfigurationError, ContractNotFoundError, DataIntegrityError
from lending_engine.domain.installments import generate_schedule
from lending_engine.domain.reconciliation import reconcile
from lending_engine.domain.scoring import partition_installments
from lending_engine.services.calendar import load_calendar
from lending_engine.utils.money import cents_to_decimal

router = APIRouter()


@router.get("/contracts/{contract_id}/pending", response_model=PendingStatusResponse)
def get_pending_status(contract_id: str, db: Session = Depends(get_db)):
    """
    Retrieve the persisted pending status of a contract.

    Returns 404 until the recompute job has processed the contract once.
    """
    repository = ContractRepository(db)
    try:
        repository.get_contract_row(contract_id)
    except ContractNotFoundError:
        raise HTTPException(status_code=404, detail="Contract not found")

    status = repository.get_pending_status(contract_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Pending status not computed yet")

    return PendingStatusResponse(
        contract_id=contract_id,
        pending_amount=cents_to_decimal(status.pending_amount_cents),
        **asdict(status),
    )


@router.get("/contracts/{contract_id}/schedule", response_model=ScheduleResponse)
def get_schedule(contract_id: str, db: Session = Depends(get_db), now: datetime = Depends(get_now)):
    """
    Build the installment schedule of a contract with its current allocations.

    Computed on the fly from the contract, its movements and the company calendar;
    nothing is persisted.
    """
    try:
        contract = ContractRepository(db).get_contract(contract_id)
        parameters = ParameterRepository(db).get_parameters(contract.company_id)
        calendar = load_calendar(db, contract.company_id, parameters)
        if contract.modality is None:
            raise ConfigurationError(f"Contract {contract_id} has no payment modality")
        schedule = generate_schedule(contract, contract.modality, calendar)
        reconciliation = reconcile(schedule, contract.collections, contract.start_date)
    except ContractNotFoundError:
        raise HTTPException(status_code=404, detail="Contract not found")
    except (ConfigurationError, DataIntegrityError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    buckets = partition_installments(reconciliation.allocations, now.date())
    labels = {}
    for label, allocations in (
        ("remaining", buckets.remaining),
        ("up_to_date", buckets.up_to_date),
        ("incomplete", buckets.incomplete),
        ("late", buckets.late),
    ):
        for allocation in allocations:
            labels[allocation.installment.number] = label

    return ScheduleResponse(
        contract_id=contract_id,
        total_cents=reconciliation.total_due_cents,
        payed_cents=reconciliation.payed_cents,
        not_validated_cents=reconciliation.not_validated_cents,
        installments=[
            InstallmentSchema(
                number=a.installment.number,
                due_date=a.installment.due_date,
                amount_cents=a.installment.amount_cents,
                paid_cents=a.paid_cents,
                status=labels[a.installment.number],
            )
            for a in reconciliation.allocations
        ],
    )
