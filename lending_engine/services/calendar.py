"""Business calendar service - loads company calendars and materializes rest days"""

import logging
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from lending_engine.config import settings
from lending_engine.domain.calendar import BusinessCalendar, rest_days_between
from lending_engine.domain.exceptions import ConfigurationError
from lending_engine.domain.models import Parameters
from lending_engine.infrastructure.database.repositories import AuditSink, HolidayRepository, ParameterRepository
from lending_engine.infrastructure.observability.metrics import rest_days_created_counter
from lending_engine.utils.date_utils import add_months

logger = logging.getLogger(__name__)


def load_calendar(db: Session, company_id: str, parameters: Parameters) -> BusinessCalendar:
    """Snapshot of the company's calendar as of this session"""
    holidays = HolidayRepository(db).list_holidays(company_id)
    return BusinessCalendar.from_holidays(
        company_id,
        holidays,
        rest_weekday=parameters.rest_weekday,
        rest_day_description=settings.rest_day_description,
    )


def is_payable(db: Session, company_id: str, day: date) -> bool:
    """True when the company collects on the given date"""
    parameters = ParameterRepository(db).get_parameters(company_id)
    return load_calendar(db, company_id, parameters).is_payable(day)


def materialize_rest_days_until(
    db: Session,
    company_id: str,
    through_date: date,
    today: date,
    audit: Optional[AuditSink] = None,
    actor: str = "system",
    ip: Optional[str] = None,
) -> List[date]:
    """
    Store every rest weekday up to `through_date` as a holiday row.

    The range starts one month before today so schedules already in flight are covered.
    Dates the company already has are skipped, so overlapping calls never duplicate.
    Commits before the audit event is written.

    Returns:
        Dates inserted by this call

    Raises:
        ConfigurationError: unknown company, or `through_date` beyond the
            configured horizon
    """
    horizon = today + timedelta(days=settings.rest_day_horizon_days)
    if through_date > horizon:
        raise ConfigurationError(
            f"Rest days can be materialized up to {horizon.isoformat()}, got {through_date.isoformat()}"
        )

    parameters = ParameterRepository(db).get_parameters(company_id)
    start = add_months(today, -settings.rest_day_lookback_months)

    candidates = rest_days_between(start, through_date, parameters.rest_weekday)
    created = HolidayRepository(db).insert_holidays(company_id, candidates, settings.rest_day_description)
    db.commit()

    rest_days_created_counter.inc(len(created))
    logger.info(
        "Rest days materialized",
        extra={
            "company_id": company_id,
            "step": "rest_days",
            "through_date": through_date.isoformat(),
            "created": len(created),
            "skipped": len(candidates) - len(created),
        },
    )

    if audit is not None and created:
        audit.record(
            f"Created {len(created)} rest days through {through_date.isoformat()} for company {company_id}",
            actor=actor,
            ip=ip,
            module="holidays",
        )

    return created
