import json
import unittest
from datetime import date
from unittest.mock import MagicMock

import requests

from practice_backend.errors import UpstreamError
from practice_backend.submissions import (
    LeetCodeSubmissionSource,
    timestamp_to_date,
    window_bounds,
)

JAN_1_2024 = 1704067200
DAY = 86400


def _response(body, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return response


def _calendar_body(calendar):
    return {
        "data": {
            "matchedUser": {
                "userCalendar": {
                    "activeYears": [2024],
                    "streak": 1,
                    "totalActiveDays": len(calendar),
                    "submissionCalendar": json.dumps(calendar),
                }
            }
        }
    }


class TimestampTests(unittest.TestCase):
    def test_timestamp_maps_to_utc_date(self):
        self.assertEqual(timestamp_to_date(JAN_1_2024), date(2024, 1, 1))
        self.assertEqual(timestamp_to_date(JAN_1_2024 + DAY - 1), date(2024, 1, 1))

    def test_window_bounds_cover_whole_days(self):
        lower, upper = window_bounds(date(2024, 1, 1), date(2024, 1, 2))
        self.assertEqual(lower, JAN_1_2024)
        self.assertEqual(upper, JAN_1_2024 + 2 * DAY - 1)


class LeetCodeSubmissionSourceTests(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()

    def test_aggregates_buckets_by_date_within_range(self):
        calendar = {
            str(JAN_1_2024 - DAY): 7,  # 2023-12-31, outside
            str(JAN_1_2024): 2,
            str(JAN_1_2024 + 3600): 1,  # same UTC day
            str(JAN_1_2024 + 30 * DAY): 4,  # 2024-01-31, last day
            str(JAN_1_2024 + 31 * DAY): 9,  # 2024-02-01, outside
        }
        self.session.post.return_value = _response(_calendar_body(calendar))
        source = LeetCodeSubmissionSource(session=self.session)

        days = source.fetch("leeter", date(2024, 1, 1), date(2024, 1, 31))

        self.assertEqual(set(days), {date(2024, 1, 1), date(2024, 1, 31)})
        self.assertEqual(days[date(2024, 1, 1)].count, 3)
        self.assertTrue(days[date(2024, 1, 1)].active)
        self.assertEqual(days[date(2024, 1, 31)].count, 4)
        self.assertEqual(days[date(2024, 1, 31)].items, [])

    def test_one_call_per_calendar_year(self):
        self.session.post.side_effect = [
            _response(_calendar_body({str(JAN_1_2024 - DAY): 1})),
            _response(_calendar_body({str(JAN_1_2024): 2})),
        ]
        source = LeetCodeSubmissionSource(session=self.session)

        days = source.fetch("leeter", date(2023, 12, 15), date(2024, 1, 15))

        self.assertEqual(self.session.post.call_count, 2)
        years = [
            call.kwargs["json"]["variables"]["year"]
            for call in self.session.post.call_args_list
        ]
        self.assertEqual(years, [2023, 2024])
        self.assertEqual(days[date(2023, 12, 31)].count, 1)
        self.assertEqual(days[date(2024, 1, 1)].count, 2)

    def test_sends_referer_and_timeout(self):
        self.session.post.return_value = _response(_calendar_body({}))
        source = LeetCodeSubmissionSource(session=self.session, timeout=4)

        source.fetch("leeter", date(2024, 1, 1), date(2024, 1, 2))

        _, kwargs = self.session.post.call_args
        self.assertEqual(kwargs["headers"]["Referer"], "https://leetcode.com")
        self.assertEqual(kwargs["timeout"], 4)
        self.assertEqual(kwargs["json"]["operationName"], "userProfileCalendar")

    def test_empty_calendar_returns_no_days(self):
        body = _calendar_body({})
        body["data"]["matchedUser"]["userCalendar"]["submissionCalendar"] = None
        self.session.post.return_value = _response(body)
        source = LeetCodeSubmissionSource(session=self.session)

        self.assertEqual(source.fetch("leeter", date(2024, 1, 1), date(2024, 1, 2)), {})

    def test_error_payload_raises_upstream_error(self):
        self.session.post.return_value = _response(
            {"errors": [{"message": "That user does not exist."}]}
        )
        source = LeetCodeSubmissionSource(session=self.session)

        with self.assertRaises(UpstreamError) as ctx:
            source.fetch("nobody", date(2024, 1, 1), date(2024, 1, 2))
        self.assertIn("That user does not exist.", ctx.exception.message)
        self.assertEqual(ctx.exception.source, "leetcode")

    def test_missing_user_raises_upstream_error(self):
        self.session.post.return_value = _response({"data": {"matchedUser": None}})
        source = LeetCodeSubmissionSource(session=self.session)

        with self.assertRaises(UpstreamError):
            source.fetch("nobody", date(2024, 1, 1), date(2024, 1, 2))

    def test_malformed_calendar_raises_upstream_error(self):
        body = _calendar_body({})
        body["data"]["matchedUser"]["userCalendar"]["submissionCalendar"] = "{not json"
        self.session.post.return_value = _response(body)
        source = LeetCodeSubmissionSource(session=self.session)

        with self.assertRaises(UpstreamError):
            source.fetch("leeter", date(2024, 1, 1), date(2024, 1, 2))

    def test_transport_failure_raises_upstream_error(self):
        self.session.post.side_effect = requests.Timeout("read timed out")
        source = LeetCodeSubmissionSource(session=self.session)

        with self.assertRaises(UpstreamError):
            source.fetch("leeter", date(2024, 1, 1), date(2024, 1, 2))

    def test_non_object_body_raises_upstream_error(self):
        source = LeetCodeSubmissionSource(session=self.session)
        for body in ([{"data": None}], None):
            self.session.post.return_value = _response(body)
            with self.assertRaises(UpstreamError) as ctx:
                source.fetch("leeter", date(2024, 1, 1), date(2024, 1, 2))
            self.assertEqual(ctx.exception.source, "leetcode")


if __name__ == "__main__":
    unittest.main()
