"""Integration tests for the anonymous participant flow."""

from datetime import timedelta
from unittest.mock import patch

import httpx
import pytest
from sqlalchemy import select

from survey_studio.models import Invite, Response, SurveyVersion
from survey_studio.models.database import ensure_utc, utcnow
from survey_studio.services.errors import (
    AnswerValidationError,
    NotFoundError,
    RateLimitError,
    TerminalStateError,
)
from survey_studio.services.participant import ParticipantService
from survey_studio.services.rate_limiter import FixedWindowRateLimiter

WEBHOOK_URL = "https://hooks.example.org/completed"


@pytest.fixture
def service(db_session):
    """Participant service with its own rate limiter."""
    return ParticipantService(db_session, FixedWindowRateLimiter(window_seconds=60))


def _configure(service, **values):
    service.settings = service.settings.model_copy(update=values)


class TestLoad:
    """Tests for ParticipantService.load."""

    def test_marks_sent_invite_started(self, db_session, service, published_survey, make_invite):
        invite = make_invite(published_survey)

        session = service.load(invite.token)

        assert session.version.version == 1
        assert session.draft_answers == {}
        db_session.expire_all()
        assert db_session.get(Invite, invite.id).status == "started"

    def test_returns_saved_draft(self, service, published_survey, make_invite):
        invite = make_invite(published_survey)
        service.save_draft(invite.token, {"q1": "Yes"})

        assert service.load(invite.token).draft_answers == {"q1": "Yes"}

    def test_serves_published_not_latest_version(self, db_session, service, published_survey, make_invite):
        """Test that a newer unpublished draft is never shown to participants."""
        db_session.add(SurveyVersion(
            survey_id=published_survey.id,
            version=2,
            is_published=False,
            title="Unreleased",
            description="Draft",
            tags=[],
            questions_json=[],
        ))
        db_session.commit()
        invite = make_invite(published_survey)

        session = service.load(invite.token)

        assert session.version.version == 1
        assert session.version.title == "Event feedback"

    def test_unknown_token(self, service):
        with pytest.raises(NotFoundError, match="Invite not found"):
            service.load("f" * 64)

    def test_expired_by_date(self, db_session, service, published_survey, make_invite):
        invite = make_invite(published_survey, expires_at=utcnow() - timedelta(minutes=1))

        with pytest.raises(TerminalStateError, match="Invite expired"):
            service.load(invite.token)

        db_session.expire_all()
        assert db_session.get(Invite, invite.id).status == "sent"

    def test_expired_status(self, service, published_survey, make_invite):
        invite = make_invite(published_survey, status="expired")
        with pytest.raises(TerminalStateError, match="Invite expired"):
            service.load(invite.token)

    def test_future_expiry_allowed(self, service, published_survey, make_invite):
        invite = make_invite(published_survey, expires_at=utcnow() + timedelta(days=1))
        assert service.load(invite.token).invite.id == invite.id

    def test_missing_published_version(self, db_session, service, published_survey, make_invite):
        published_survey.versions[0].is_published = False
        db_session.commit()
        invite = make_invite(published_survey)

        with pytest.raises(NotFoundError, match="Published survey version missing"):
            service.load(invite.token)


class TestSaveDraft:
    """Tests for ParticipantService.save_draft."""

    def test_creates_draft_without_validation(self, db_session, service, published_survey, make_invite):
        """Test that drafts accept answers that would fail submission."""
        invite = make_invite(published_survey, status="started")

        response = service.save_draft(invite.token, {"q3": "not a number"})

        assert response.status == "draft"
        assert response.answers_json == {"q3": "not a number"}
        assert response.started_at is not None
        assert response.completed_at is None

    def test_keeps_first_start_time(self, service, published_survey, make_invite):
        invite = make_invite(published_survey, status="started")
        first = service.save_draft(invite.token, {"q1": "Yes"})
        started_at = first.started_at

        second = service.save_draft(invite.token, {"q1": "No"})

        assert second.id == first.id
        assert second.started_at == started_at
        assert second.answers_json == {"q1": "No"}

    def test_completed_invite_rejected_without_change(self, db_session, service, published_survey, make_invite):
        """Test that a completed response is never overwritten by a draft save."""
        invite = make_invite(published_survey, status="completed")
        db_session.add(Response(
            invite_id=invite.id,
            survey_id=published_survey.id,
            status="completed",
            answers_json={"q1": "No", "q3": "30"},
            started_at=utcnow(),
            completed_at=utcnow(),
        ))
        db_session.commit()

        with pytest.raises(TerminalStateError, match="Survey already submitted"):
            service.save_draft(invite.token, {"q1": "Yes"})

        db_session.expire_all()
        response = db_session.execute(select(Response)).scalar_one()
        assert response.status == "completed"
        assert response.answers_json == {"q1": "No", "q3": "30"}

    def test_expired_invite_rejected(self, service, published_survey, make_invite):
        invite = make_invite(published_survey, expires_at=utcnow() - timedelta(seconds=5))
        with pytest.raises(TerminalStateError, match="Invite expired"):
            service.save_draft(invite.token, {"q1": "Yes"})


class TestSubmit:
    """Tests for ParticipantService.submit."""

    def test_completes_invite_and_response(self, db_session, service, published_survey, make_invite):
        invite = make_invite(published_survey, status="started")

        response = service.submit(invite.token, {"q1": "Yes", "q2": "The talks", "q3": "30"})

        db_session.expire_all()
        stored = db_session.get(Response, response.id)
        assert stored.status == "completed"
        assert stored.completed_at is not None
        assert stored.answers_json == {"q1": "Yes", "q2": "The talks", "q3": "30"}
        assert db_session.get(Invite, invite.id).status == "completed"

    def test_hidden_questions_not_validated(self, service, published_survey, make_invite):
        """Test that a required question hidden by logic may stay empty."""
        invite = make_invite(published_survey, status="started")

        response = service.submit(invite.token, {"q1": "No", "q3": "40"})

        assert response.status == "completed"

    def test_reports_every_invalid_field(self, db_session, service, published_survey, make_invite):
        invite = make_invite(published_survey, status="started")

        with pytest.raises(AnswerValidationError) as exc_info:
            service.submit(invite.token, {"q1": "Yes", "q3": "17"})

        assert exc_info.value.fields == {"q2": "Required", "q3": "Minimum is 18"}
        db_session.expire_all()
        assert db_session.get(Invite, invite.id).status == "started"
        assert db_session.execute(select(Response)).scalar_one_or_none() is None

    def test_keeps_draft_start_time(self, service, published_survey, make_invite):
        invite = make_invite(published_survey, status="started")
        draft = service.save_draft(invite.token, {"q1": "No"})
        started_at = draft.started_at

        response = service.submit(invite.token, {"q1": "No", "q3": "25"})

        assert response.id == draft.id
        assert response.started_at == started_at
        assert ensure_utc(response.completed_at) >= ensure_utc(started_at)

    def test_second_submit_rejected(self, db_session, service, published_survey, make_invite):
        invite = make_invite(published_survey, status="started")
        service.submit(invite.token, {"q1": "No", "q3": "25"})

        with pytest.raises(TerminalStateError, match="Survey already submitted"):
            service.submit(invite.token, {"q1": "No", "q3": "50"})

        db_session.expire_all()
        assert db_session.execute(select(Response)).scalar_one().answers_json == {"q1": "No", "q3": "25"}

    def test_expired_invite_rejected(self, service, published_survey, make_invite):
        invite = make_invite(published_survey, status="expired")
        with pytest.raises(TerminalStateError, match="Invite expired"):
            service.submit(invite.token, {"q1": "No", "q3": "25"})


class TestCompletionWebhook:
    """Tests for the completion webhook notification."""

    def test_not_called_without_url(self, service, published_survey, make_invite):
        invite = make_invite(published_survey, status="started")
        with patch("survey_studio.services.participant.httpx.post") as mock_post:
            service.submit(invite.token, {"q1": "No", "q3": "25"})
        mock_post.assert_not_called()

    def test_posts_survey_and_response_ids(self, service, published_survey, make_invite):
        _configure(service, completion_webhook_url=WEBHOOK_URL)
        invite = make_invite(published_survey, status="started")

        with patch("survey_studio.services.participant.httpx.post") as mock_post:
            response = service.submit(invite.token, {"q1": "No", "q3": "25"})

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args == (WEBHOOK_URL,)
        assert kwargs["json"] == {"surveyId": published_survey.id, "responseId": response.id}

    def test_failure_does_not_fail_submission(self, db_session, service, published_survey, make_invite):
        """Test that a failing webhook is logged and the submission stands."""
        _configure(service, completion_webhook_url=WEBHOOK_URL)
        invite = make_invite(published_survey, status="started")

        with patch(
            "survey_studio.services.participant.httpx.post",
            side_effect=httpx.ConnectError("connection refused"),
        ), patch("survey_studio.services.participant.logger") as mock_logger:
            response = service.submit(invite.token, {"q1": "No", "q3": "25"})

        assert response.status == "completed"
        mock_logger.warning.assert_called_once()
        assert "ConnectError" in mock_logger.warning.call_args[0][0]


class TestRateLimits:
    """Tests for per-token rate limiting."""

    def test_load_limited_per_token(self, service, published_survey, make_invite):
        _configure(service, rate_limit_load=2)
        invite = make_invite(published_survey)
        other = make_invite(published_survey)

        service.load(invite.token)
        service.load(invite.token)
        with pytest.raises(RateLimitError, match="Too many requests"):
            service.load(invite.token)

        assert service.load(other.token).invite.id == other.id

    def test_actions_have_separate_buckets(self, service, published_survey, make_invite):
        _configure(service, rate_limit_draft=1)
        invite = make_invite(published_survey)

        service.save_draft(invite.token, {"q1": "Yes"})
        with pytest.raises(RateLimitError):
            service.save_draft(invite.token, {"q1": "No"})

        assert service.load(invite.token).draft_answers == {"q1": "Yes"}

    def test_unknown_tokens_count_too(self, service):
        """Test that guessing tokens is throttled before any lookup."""
        _configure(service, rate_limit_submit=1)
        with pytest.raises(NotFoundError):
            service.submit("a" * 64, {})
        with pytest.raises(RateLimitError):
            service.submit("a" * 64, {})
