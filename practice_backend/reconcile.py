"""
Merges live contribution and submission activity with stored practice data.

The three sources are queried concurrently and independently: any one of
them failing or timing out contributes nothing instead of failing the whole
request.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from practice_backend.contributions import ContributionDay, GitHubContributionSource
from practice_backend.db import PracticeRecord, PracticeStore
from practice_backend.submissions import (
    LeetCodeSubmissionSource,
    SubmissionDay,
    SubmissionItem,
)

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_TIMEOUT = 10.0  # seconds

ContributionResult = Union[Mapping[date, ContributionDay], BaseException]
SubmissionResult = Union[Mapping[date, SubmissionDay], BaseException]
StoreResult = Union[Sequence[PracticeRecord], BaseException]


@dataclass
class DailyRecord:
    date: date
    contribution_count: int = 0
    submission_count: int = 0
    submission_items: list[SubmissionItem] = field(default_factory=list)
    writing_submitted: bool = False
    writing_char_count: int = 0
    writing_word_count: int = 0
    speech_detected: bool = False
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def contribution_active(self) -> bool:
        return self.contribution_count > 0

    @property
    def submission_active(self) -> bool:
        return self.submission_count > 0

    def as_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "contribution_active": self.contribution_active,
            "contribution_count": self.contribution_count,
            "submission_active": self.submission_active,
            "submission_count": self.submission_count,
            "submission_items": [item.as_dict() for item in self.submission_items],
            "writing_submitted": self.writing_submitted,
            "writing_char_count": self.writing_char_count,
            "writing_word_count": self.writing_word_count,
            "speech_detected": self.speech_detected,
            "notes": self.notes,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


def _settled(name: str, result: Any, empty: Any) -> Any:
    if isinstance(result, BaseException):
        logger.warning("%s fetch failed: %s", name, str(result) or type(result).__name__)
        return empty
    return result


def combine(
    contributions: ContributionResult,
    submissions: SubmissionResult,
    stored: StoreResult,
) -> list[DailyRecord]:
    """
    Merge per-date results into one record per date, most recent first.

    Each argument is either a source's result or the exception it raised; an
    exception counts as an empty result. Activity counts only ever come from
    the live sources and writing fields only ever come from the store.
    """
    contributions = _settled("Contribution", contributions, {})
    submissions = _settled("Submission", submissions, {})
    stored_by_date = {
        record.date: record for record in _settled("Store", stored, [])
    }

    all_dates = set(contributions) | set(submissions) | set(stored_by_date)

    combined = []
    for day in all_dates:
        record = DailyRecord(date=day)
        contribution = contributions.get(day)
        if contribution:
            record.contribution_count = contribution.count
        submission = submissions.get(day)
        if submission:
            record.submission_count = submission.count
            record.submission_items = list(submission.items)
        stored_record = stored_by_date.get(day)
        if stored_record:
            record.writing_submitted = stored_record.writing_submitted
            record.writing_char_count = stored_record.writing_char_count
            record.writing_word_count = stored_record.writing_word_count
            record.speech_detected = stored_record.speech_detected
            record.notes = stored_record.notes
            record.updated_at = stored_record.updated_at
        combined.append(record)

    combined.sort(key=lambda record: record.date, reverse=True)
    return combined


async def _run_source(
    name: str, fn: Callable[..., Any], *args: Any, timeout: float
) -> Any:
    try:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise TimeoutError(f"{name} did not respond within {timeout:g}s") from exc


async def fetch_combined(
    contribution_source: GitHubContributionSource,
    submission_source: LeetCodeSubmissionSource,
    store: PracticeStore,
    *,
    github_username: str,
    leetcode_username: str,
    start_date: date,
    end_date: date,
    timeout: float = DEFAULT_SOURCE_TIMEOUT,
) -> list[DailyRecord]:
    """Fetch all three sources concurrently and combine whatever succeeded."""
    contributions, submissions, stored = await asyncio.gather(
        _run_source(
            "Contribution source",
            contribution_source.fetch,
            github_username,
            start_date,
            end_date,
            timeout=timeout,
        ),
        _run_source(
            "Submission source",
            submission_source.fetch,
            leetcode_username,
            start_date,
            end_date,
            timeout=timeout,
        ),
        _run_source(
            "Practice store", store.get_range, start_date, end_date, timeout=timeout
        ),
        return_exceptions=True,
    )
    return combine(contributions, submissions, stored)
