"""
Stand-ins for the upstream sources used across the test modules.
"""

from __future__ import annotations

import time
from datetime import date

from practice_backend.contributions import ContributionDay
from practice_backend.submissions import SubmissionDay


class FakeContributionSource:
    def __init__(self, counts: dict[date, int] | None = None, error: Exception | None = None):
        self.counts = counts or {}
        self.error = error
        self.calls: list[tuple[str, date, date]] = []

    def fetch(self, username, start_date, end_date):
        self.calls.append((username, start_date, end_date))
        if self.error:
            raise self.error
        return {day: ContributionDay(date=day, count=count) for day, count in self.counts.items()}


class FakeSubmissionSource:
    def __init__(self, counts: dict[date, int] | None = None, error: Exception | None = None):
        self.counts = counts or {}
        self.error = error
        self.calls: list[tuple[str, date, date]] = []

    def fetch(self, username, start_date, end_date):
        self.calls.append((username, start_date, end_date))
        if self.error:
            raise self.error
        return {day: SubmissionDay(date=day, count=count) for day, count in self.counts.items()}


class SlowSource:
    def __init__(self, delay: float):
        self.delay = delay

    def fetch(self, username, start_date, end_date):
        time.sleep(self.delay)
        return {}
