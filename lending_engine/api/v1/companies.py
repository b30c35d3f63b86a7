"""Company calendar and collector work-queue endpoints"""

import logging
from datetime import date, datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lending_engine.api.v1.schemas import (
    BucketSchema,
    PayableResponse,
    RestDaysRequest,
    RestDaysResponse,
    WorkQueueResponse,
)
from lending_engine.api.dependencies import get_audit_sink, get_client_ip, get_now, get_request_id
from lending_engine.infrastructure.database.session import get_db
from lending_engine.infrastructure.database.repositories import AuditSink, ContractRepository
from lending_engine.domain.exceptions import ConfigurationError
from lending_engine.domain.work_queue import EXPIRED, LATE, UPDATED, summarize_work_queue
from lending_engine.services.calendar import is_payable, materialize_rest_days_until

router = APIRouter()


@router.post("/companies/{company_id}/rest-days", response_model=RestDaysResponse)
def create_rest_days(
    company_id: str,
    request_body: RestDaysRequest,
    request: Request,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    audit: AuditSink = Depends(get_audit_sink),
    client_ip: Optional[str] = Depends(get_client_ip),
):
    """
    Materialize the company's rest days up to `through_date`.

    Safe to repeat: dates already stored are skipped.
    """
    request_id = get_request_id(request)

    try:
        created = materialize_rest_days_until(
            db,
            company_id,
            request_body.through_date,
            today=now.date(),
            audit=audit,
            actor=request.headers.get("x-user-id", "admin"),
            ip=client_ip,
        )
    except ConfigurationError as e:
        logging.warning(f"Rest days not created: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Database error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")

    return RestDaysResponse(created=len(created), dates=created)


@router.get("/companies/{company_id}/calendar/{day}", response_model=PayableResponse)
def check_payable(company_id: str, day: date, db: Session = Depends(get_db)):
    """Whether the company collects on the given date"""
    try:
        payable = is_payable(db, company_id, day)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return PayableResponse(company_id=company_id, day=day, payable=payable)


@router.get("/companies/{company_id}/work-queue", response_model=WorkQueueResponse)
def get_work_queue(company_id: str, db: Session = Depends(get_db), now: datetime = Depends(get_now)):
    """
    Summarize the company's active contracts into collector queues.

    Reads the persisted statuses, so the figures are as fresh as the last recompute.
    """
    statuses = ContractRepository(db).list_pending_statuses(company_id)
    summary = summarize_work_queue(statuses, now.date())

    def bucket(name: str) -> BucketSchema:
        b = summary.buckets[name]
        return BucketSchema(count=b.count, payed_today=b.payed_today, percent=b.percent)

    return WorkQueueResponse(
        company_id=company_id,
        total=summary.total,
        total_payed_today=summary.total_payed_today,
        updated=bucket(UPDATED),
        late=bucket(LATE),
        expired=bucket(EXPIRED),
    )
