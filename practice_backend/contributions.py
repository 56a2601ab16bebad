"""
Contribution source: daily contribution counts from the GitHub GraphQL API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator, Optional

import requests

from practice_backend.errors import UpstreamError

logger = logging.getLogger(__name__)

GITHUB_GRAPHQL_URL = "https://api.github.com/graphql"
SOURCE_NAME = "github"
REQUEST_TIMEOUT = 10  # seconds

# The API rejects contribution windows longer than one year.
MAX_WINDOW_DAYS = 365

CONTRIBUTIONS_QUERY = """
query($userName: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $userName) {
    contributionsCollection(from: $from, to: $to) {
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            contributionCount
            date
          }
        }
      }
    }
  }
}
"""


@dataclass(frozen=True)
class ContributionDay:
    date: date
    count: int

    @property
    def active(self) -> bool:
        return self.count > 0


def iter_windows(start_date: date, end_date: date) -> Iterator[tuple[date, date]]:
    """Split an inclusive date range into windows the API will accept."""
    window_start = start_date
    while window_start <= end_date:
        window_end = min(
            window_start + timedelta(days=MAX_WINDOW_DAYS - 1), end_date
        )
        yield window_start, window_end
        window_start = window_end + timedelta(days=1)


class GitHubContributionSource:
    """Fetches a date -> contribution count mapping for one user."""

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()
        self._warned_unauthenticated = False

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        elif not self._warned_unauthenticated:
            logger.warning(
                "GitHub token not configured; using unauthenticated access with a reduced rate limit"
            )
            self._warned_unauthenticated = True
        return headers

    def fetch(
        self, username: str, start_date: date, end_date: date
    ) -> dict[date, ContributionDay]:
        """
        Fetch contribution counts for every day in ``[start_date, end_date]``.

        Raises:
            UpstreamError: If the API reports an error, the user is unknown,
                or the request fails.
        """
        days: dict[date, ContributionDay] = {}
        for window_start, window_end in iter_windows(start_date, end_date):
            for day in self._fetch_window(username, window_start, window_end):
                if start_date <= day.date <= end_date:
                    days[day.date] = day
        return days

    def _fetch_window(
        self, username: str, start_date: date, end_date: date
    ) -> list[ContributionDay]:
        payload = {
            "query": CONTRIBUTIONS_QUERY,
            "variables": {
                "userName": username,
                "from": f"{start_date.isoformat()}T00:00:00Z",
                "to": f"{end_date.isoformat()}T23:59:59Z",
            },
        }
        try:
            response = self.session.post(
                GITHUB_GRAPHQL_URL,
                json=payload,
                headers=self._headers(),
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
            logger.error("GitHub API errors: %s", errors)
            message = errors[0].get("message") if isinstance(errors[0], dict) else None
            raise UpstreamError(SOURCE_NAME, message or "GitHub API error")

        user = (body.get("data") or {}).get("user")
        if not user:
            raise UpstreamError(SOURCE_NAME, f"user {username!r} not found")

        try:
            calendar = user["contributionsCollection"]["contributionCalendar"]
            return [
                ContributionDay(
                    date=date.fromisoformat(day["date"]),
                    count=int(day["contributionCount"]),
                )
                for week in calendar.get("weeks") or []
                for day in week.get("contributionDays") or []
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamError(
                SOURCE_NAME, f"unexpected contribution calendar shape: {exc}"
            ) from exc
