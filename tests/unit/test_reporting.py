"""Unit tests for the reporting aggregator."""

from datetime import datetime, timedelta, timezone

import pytest

from survey_studio.models.invite import Invite
from survey_studio.models.response import Response
from survey_studio.services.reporting import (
    completion_rate_percent,
    elapsed_seconds,
    median_seconds,
    round_half_up,
    summarize,
)

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _invites(*statuses):
    return [Invite(survey_id="s1", token=f"t{i}", status=s) for i, s in enumerate(statuses)]


def _completed_after(seconds: float) -> Response:
    return Response(
        invite_id="i",
        survey_id="s1",
        status="completed",
        answers_json={},
        started_at=T0,
        completed_at=T0 + timedelta(seconds=seconds),
    )


class TestRounding:
    """Tests for half-up rounding helpers."""

    @pytest.mark.parametrize("value,expected", [(2.5, 3), (0.5, 1), (2.4, 2), (66.666, 67), (0, 0)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_completion_rate_zero_invites(self):
        """Test that no invites means 0 percent rather than a division error."""
        assert completion_rate_percent(0, 0) == 0

    def test_completion_rate_half_rounds_up(self):
        """Test 1 of 8 invites (12.5%) rounds to 13."""
        assert completion_rate_percent(1, 8) == 13
        assert completion_rate_percent(2, 3) == 67


class TestDurations:
    """Tests for elapsed and median time."""

    def test_elapsed_requires_both_timestamps(self):
        assert elapsed_seconds(None, T0) is None
        assert elapsed_seconds(T0, None) is None

    def test_elapsed_rounds_and_floors_at_zero(self):
        assert elapsed_seconds(T0, T0 + timedelta(seconds=89.5)) == 90
        assert elapsed_seconds(T0, T0 - timedelta(seconds=30)) == 0

    def test_elapsed_handles_naive_timestamps(self):
        naive = T0.replace(tzinfo=None)
        assert elapsed_seconds(naive, T0 + timedelta(seconds=10)) == 10

    def test_median_empty(self):
        assert median_seconds([]) == 0

    def test_median_odd(self):
        assert median_seconds([50, 10, 30]) == 30

    def test_median_even_takes_index_half(self):
        """Test that even counts pick the element at len // 2, not an average."""
        assert median_seconds([10, 20, 30, 40]) == 30
        assert median_seconds([10, 20]) == 20


class TestSummarize:
    """Tests for summarize."""

    def test_zero_invites(self):
        report = summarize([], [])
        assert report.total_invites == 0
        assert report.completion_rate_percent == 0
        assert report.median_time_seconds == 0

    def test_counts_and_metrics(self):
        invites = _invites("sent", "started", "completed", "completed", "expired")
        responses = [_completed_after(120), _completed_after(60), Response(
            invite_id="i",
            survey_id="s1",
            status="draft",
            answers_json={},
            started_at=T0,
        )]

        report = summarize(invites, responses)

        assert report.total_invites == 5
        assert report.started == 3
        assert report.completed == 2
        assert report.completion_rate_percent == 40
        assert report.median_time_seconds == 120
        assert report.responses == responses
