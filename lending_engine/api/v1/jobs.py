"""POST /v1/jobs/* - Trigger recompute and cleanup runs on demand"""

import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from lending_engine.api.v1.schemas import PurgeResponse, RecomputeFailureItem, RecomputeResponse
from lending_engine.api.dependencies import get_audit_sink, get_now, get_recompute_runner, get_request_id
from lending_engine.infrastructure.database.session import get_db
from lending_engine.infrastructure.database.repositories import AuditSink
from lending_engine.domain.exceptions import TransientError
from lending_engine.jobs.cleanup import purge_finished_contracts
from lending_engine.jobs.recompute import RecomputeRunner

router = APIRouter()


@router.post("/jobs/recompute", response_model=RecomputeResponse)
def run_recompute(
    request: Request,
    company_id: Optional[str] = None,
    runner: RecomputeRunner = Depends(get_recompute_runner),
):
    """
    Recompute pending statuses of active contracts.

    Contracts that fail are listed with their reason; they never fail the request.
    """
    request_id = get_request_id(request)

    try:
        result = runner.run(company_id)
    except TransientError as e:
        logging.error(f"Recompute aborted: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")

    return RecomputeResponse(
        updated=result.updated,
        unchanged=result.unchanged,
        failed=[RecomputeFailureItem(contract_id=f.contract_id, reason=f.reason) for f in result.failed],
    )


@router.post("/jobs/purge-finished", response_model=PurgeResponse)
def purge_finished(
    request: Request,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    audit: AuditSink = Depends(get_audit_sink),
):
    """Delete contracts finished longer ago than the grace period"""
    try:
        purged = purge_finished_contracts(db, now, audit=audit)
    except TransientError as e:
        logging.error(f"Purge aborted: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Storage unavailable")

    return PurgeResponse(purged=purged)
