"""Dependency injection for FastAPI endpoints"""

from datetime import datetime
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import sessionmaker

from lending_engine.config import settings
from lending_engine.infrastructure.database.repositories import AuditSink
from lending_engine.infrastructure.database.session import get_session_factory
from lending_engine.jobs.recompute import RecomputeRunner
from lending_engine.utils.date_utils import now_in_timezone


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_client_ip(request: Request) -> Optional[str]:
    """Caller address recorded in the audit trail"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_now() -> datetime:
    """Current time in the business timezone"""
    return now_in_timezone(settings.timezone)


def get_audit_sink(session_factory: sessionmaker = Depends(get_session_factory)) -> AuditSink:
    return AuditSink(session_factory)


def get_recompute_runner(
    session_factory: sessionmaker = Depends(get_session_factory),
    audit: AuditSink = Depends(get_audit_sink),
    now: datetime = Depends(get_now),
) -> RecomputeRunner:
    """Provide a recompute runner that evaluates contracts as of the request time"""
    return RecomputeRunner(session_factory, clock=lambda: now, audit=audit)
