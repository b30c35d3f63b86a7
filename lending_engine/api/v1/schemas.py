"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import List, Optional


class RecomputeFailureItem(BaseModel):
    """Contract skipped by a recompute run"""

    contract_id: str
    reason: str


class RecomputeResponse(BaseModel):
    """Response for POST /v1/jobs/recompute"""

    updated: int
    unchanged: int
    failed: List[RecomputeFailureItem]


class PurgeResponse(BaseModel):
    """Response for POST /v1/jobs/purge-finished"""

    purged: int


class RestDaysRequest(BaseModel):
    """Request body for POST /v1/companies/{company_id}/rest-days"""

    through_date: date = Field(..., description="Last date (inclusive) to materialize rest days for")


class RestDaysResponse(BaseModel):
    created: int
    dates: List[date]


class PayableResponse(BaseModel):
    """Response for GET /v1/companies/{company_id}/calendar/{day}"""

    company_id: str
    day: date
    payable: bool


class BucketSchema(BaseModel):
    count: int
    payed_today: int
    percent: float


class WorkQueueResponse(BaseModel):
    """Response for GET /v1/companies/{company_id}/work-queue"""

    company_id: str
    total: int
    total_payed_today: int
    updated: BucketSchema
    late: BucketSchema
    expired: BucketSchema


class PendingStatusResponse(BaseModel):
    """Response for GET /v1/contracts/{contract_id}/pending"""

    contract_id: str
    payed_amount_cents: int
    pending_amount_cents: int
    pending_amount: Decimal = Field(..., description="Pending amount in currency units, for display")
    not_validated_amount_cents: int
    amount_late_or_incomplete_cents: int
    balance_cents: int
    late_fee_cents: int
    payments_late: int
    payments_up_to_date: int
    payments_incomplete: int
    payments_remaining: int
    days_expired: int
    days_ahead: int
    today_incomplete: bool
    days_pending: int
    is_outdated: bool
    payed_amount_problem: bool
    last_payment_date: Optional[date] = None
    icon: str
    color: str


class InstallmentSchema(BaseModel):
    """Single installment with the validated funds applied to it"""

    number: int
    due_date: date
    amount_cents: int
    paid_cents: int
    status: str  # remaining | up_to_date | incomplete | late


class ScheduleResponse(BaseModel):
    """Response for GET /v1/contracts/{contract_id}/schedule"""

    contract_id: str
    total_cents: int
    payed_cents: int
    not_validated_cents: int
    installments: List[InstallmentSchema]
