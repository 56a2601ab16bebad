"""
HTTP routes for the practice tracker API.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from practice_backend.config import Settings, get_settings
from practice_backend.contributions import GitHubContributionSource
from practice_backend.db import PracticeStore
from practice_backend.dependencies import (
    get_contribution_source,
    get_practice_store,
    get_submission_source,
)
from practice_backend.errors import ConfigurationError, ValidationError
from practice_backend.reconcile import fetch_combined
from practice_backend.schemas import (
    DeletePracticeData,
    DeletePracticeResponse,
    HealthResponse,
    LivePracticeResponse,
    PracticeListResponse,
    WritingSubmissionData,
    WritingSubmissionRequest,
    WritingSubmissionResponse,
)
from practice_backend.submissions import LeetCodeSubmissionSource
from practice_backend.writing import count_characters, count_words

logger = logging.getLogger(__name__)

router = APIRouter()
health_router = APIRouter()

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DEFAULT_LIVE_WINDOW_DAYS = 30
WRITING_SUCCESS_MESSAGE = "Writing submitted successfully!"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_date(value: str, field_name: str) -> date:
    if not DATE_PATTERN.match(value):
        raise ValidationError(f"{field_name} must be a date in YYYY-MM-DD format")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid calendar date")


def _parse_optional_date(value: Optional[str], field_name: str) -> Optional[date]:
    if not value:
        return None
    return parse_date(value, field_name)


def resolve_live_range(
    start_value: Optional[str], end_value: Optional[str], today: date
) -> tuple[date, date]:
    """Fill in a missing bound so the live window spans the last 30 days."""
    start_date = _parse_optional_date(start_value, "startDate")
    end_date = _parse_optional_date(end_value, "endDate")
    if end_date is None:
        end_date = today
    if start_date is None:
        start_date = end_date - timedelta(days=DEFAULT_LIVE_WINDOW_DAYS - 1)
    if start_date > end_date:
        raise ValidationError("startDate must not be after endDate")
    return start_date, end_date


@health_router.get("/health", response_model=HealthResponse)
def health(settings: Settings = Depends(get_settings)):
    return HealthResponse(
        timestamp=_utcnow().isoformat(), environment=settings.environment
    )


@router.get("/practice", response_model=PracticeListResponse)
def list_practice(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    store: PracticeStore = Depends(get_practice_store),
):
    """
    Stored practice history only; no upstream calls.
    """
    start_date = _parse_optional_date(startDate, "startDate")
    end_date = _parse_optional_date(endDate, "endDate")
    records = store.get_range(start_date, end_date)
    return PracticeListResponse(data=[record.as_dict() for record in records])


@router.get("/practice/live", response_model=LivePracticeResponse)
async def live_practice(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    settings: Settings = Depends(get_settings),
    contribution_source: GitHubContributionSource = Depends(get_contribution_source),
    submission_source: LeetCodeSubmissionSource = Depends(get_submission_source),
    store: PracticeStore = Depends(get_practice_store),
):
    """
    Live activity from both upstream APIs merged with stored practice data.
    """
    if not settings.github_username or not settings.leetcode_username:
        raise ConfigurationError(
            "GITHUB_USERNAME and LEETCODE_USERNAME must be configured"
        )
    start_date, end_date = resolve_live_range(
        startDate, endDate, _utcnow().date()
    )
    records = await fetch_combined(
        contribution_source,
        submission_source,
        store,
        github_username=settings.github_username,
        leetcode_username=settings.leetcode_username,
        start_date=start_date,
        end_date=end_date,
        timeout=settings.upstream_timeout_seconds,
    )
    return LivePracticeResponse(
        data=[record.as_dict() for record in records],
        timestamp=_utcnow().isoformat(),
    )


@router.post("/practice/writing", response_model=WritingSubmissionResponse)
def submit_writing(
    payload: WritingSubmissionRequest,
    store: PracticeStore = Depends(get_practice_store),
):
    if not payload.date or not payload.content:
        raise ValidationError("date and content are required")
    record_date = parse_date(payload.date, "date")

    chars = count_characters(payload.content)
    words = count_words(payload.content)
    store.upsert(
        record_date,
        {
            "writing_submitted": True,
            "writing_char_count": chars,
            "writing_word_count": words,
            "notes": payload.notes,
        },
    )
    logger.info("Writing saved for %s (%d chars, %d words)", record_date, chars, words)
    return WritingSubmissionResponse(
        data=WritingSubmissionData(
            date=record_date.isoformat(),
            chars=chars,
            words=words,
            message=WRITING_SUCCESS_MESSAGE,
        )
    )


@router.delete("/practice/{record_date}", response_model=DeletePracticeResponse)
def delete_practice(
    record_date: str,
    store: PracticeStore = Depends(get_practice_store),
):
    parsed = parse_date(record_date, "date")
    store.delete(parsed)
    return DeletePracticeResponse(data=DeletePracticeData(date=parsed.isoformat()))
