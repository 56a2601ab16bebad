"""
Submission source: daily submission counts from the LeetCode GraphQL API.

Counts come from the per-year submission calendar, which maps the unix
timestamp of each UTC day to the number of submissions made that day. One
request is made per calendar year the range touches. The calendar carries no
per-problem detail, so ``SubmissionDay.items`` is always empty; in exchange
the counts are complete for any range, unlike the recent-submissions list
which is capped by the API.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Optional

import requests

from practice_backend.errors import UpstreamError

logger = logging.getLogger(__name__)

LEETCODE_GRAPHQL_URL = "https://leetcode.com/graphql"
SOURCE_NAME = "leetcode"
REQUEST_TIMEOUT = 10  # seconds

CALENDAR_QUERY = """
query userProfileCalendar($username: String!, $year: Int) {
  matchedUser(username: $username) {
    userCalendar(year: $year) {
      activeYears
      streak
      totalActiveDays
      submissionCalendar
    }
  }
}
"""


@dataclass(frozen=True)
class SubmissionItem:
    title: str
    identifier: str

    def as_dict(self) -> dict:
        return {"title": self.title, "identifier": self.identifier}


@dataclass
class SubmissionDay:
    date: date
    count: int = 0
    items: list[SubmissionItem] = field(default_factory=list)

    @property
    def active(self) -> bool:
        return self.count > 0


def window_bounds(start_date: date, end_date: date) -> tuple[int, int]:
    """Inclusive unix-second bounds: start at 00:00:00Z, end at 23:59:59Z."""
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
    end = datetime.combine(end_date, time(23, 59, 59), tzinfo=timezone.utc)
    return int(start.timestamp()), int(end.timestamp())


def timestamp_to_date(timestamp: int) -> date:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).date()


def aggregate_calendar(
    calendar: dict, start_date: date, end_date: date, into: dict[date, SubmissionDay]
) -> None:
    """Add the calendar's in-window timestamp buckets to ``into`` by UTC date."""
    lower, upper = window_bounds(start_date, end_date)
    for raw_timestamp, raw_count in calendar.items():
        timestamp = int(raw_timestamp)
        if timestamp < lower or timestamp > upper:
            continue
        count = int(raw_count)
        day = timestamp_to_date(timestamp)
        entry = into.setdefault(day, SubmissionDay(date=day))
        entry.count += count


class LeetCodeSubmissionSource:
    """Fetches a date -> submission count mapping for one user."""

    def __init__(
        self,
        *,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(
        self, username: str, start_date: date, end_date: date
    ) -> dict[date, SubmissionDay]:
        """
        Fetch submission counts for every day in ``[start_date, end_date]``.

        Raises:
            UpstreamError: If the API reports an error, the user is unknown,
                the calendar cannot be parsed, or the request fails.
        """
        days: dict[date, SubmissionDay] = {}
        for year in range(start_date.year, end_date.year + 1):
            calendar = self._fetch_calendar(username, year)
            try:
                aggregate_calendar(calendar, start_date, end_date, days)
            except (TypeError, ValueError) as exc:
                raise UpstreamError(
                    SOURCE_NAME, f"malformed submission calendar: {exc}"
                ) from exc
        return days

    def _fetch_calendar(self, username: str, year: int) -> dict:
        payload = {
            "query": CALENDAR_QUERY,
            "variables": {"username": username, "year": year},
            "operationName": "userProfileCalendar",
        }
        headers = {
            "Content-Type": "application/json",
            "Referer": "https://leetcode.com",
        }
        try:
            response = self.session.post(
                LEETCODE_GRAPHQL_URL,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as exc:
            raise UpstreamError(SOURCE_NAME, str(exc)) from exc
        except ValueError as exc:
            raise UpstreamError(SOURCE_NAME, "response was not valid JSON") from exc
        if not isinstance(body, dict):
            raise UpstreamError(SOURCE_NAME, "response body was not a JSON object")

        errors = body.get("errors")
        if errors:
            logger.error("LeetCode API errors: %s", errors)
            message = errors[0].get("message") if isinstance(errors[0], dict) else None
            raise UpstreamError(SOURCE_NAME, message or "LeetCode API error")

        user = (body.get("data") or {}).get("matchedUser")
        if not user:
            raise UpstreamError(SOURCE_NAME, f"user {username!r} not found")

        raw_calendar = (user.get("userCalendar") or {}).get("submissionCalendar")
        if not raw_calendar:
            return {}
        if isinstance(raw_calendar, dict):
            return raw_calendar
        try:
            calendar = json.loads(raw_calendar)
        except (TypeError, ValueError) as exc:
            raise UpstreamError(
                SOURCE_NAME, f"malformed submission calendar: {exc}"
            ) from exc
        if not isinstance(calendar, dict):
            raise UpstreamError(SOURCE_NAME, "submission calendar is not an object")
        return calendar
