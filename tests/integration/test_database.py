"""Integration tests for database operations.

These tests verify the database layer including:
- Survey and version creation and querying
- Unique constraints on version numbers, tokens and responses
- Cascade delete from surveys
- Timestamp handling for SQLite
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from survey_studio.models import (
    AuditLog,
    Invite,
    QuestionBankItem,
    Response,
    Survey,
    SurveyVersion,
    User,
)
from survey_studio.models.database import ensure_utc


class TestSurveyIntegration:
    """Integration tests for Survey and SurveyVersion models."""

    def test_create_and_query_versions(self, db_session, published_survey):
        """Test that versions come back ordered through the relationship."""
        db_session.add(SurveyVersion(
            survey_id=published_survey.id,
            version=2,
            title="Event feedback",
            description="After the event",
        ))
        db_session.commit()

        result = db_session.query(Survey).filter(Survey.id == published_survey.id).first()

        assert result is not None
        assert [v.version for v in result.versions] == [1, 2]
        assert result.versions[1].is_published is False
        assert result.versions[1].tags == []
        assert result.versions[1].questions_json == []

    def test_duplicate_version_number_rejected(self, db_session, published_survey):
        db_session.add(SurveyVersion(
            survey_id=published_survey.id,
            version=1,
            title="Clash",
            description="Same number",
        ))

        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_defaults(self, db_session, creator_user):
        survey = Survey(owner_user_id=creator_user.id, title="Defaults", description="")
        db_session.add(survey)
        db_session.commit()

        assert survey.status == "draft"
        assert survey.is_template is False
        assert len(survey.id) == 36
        assert survey.created_at is not None


class TestInviteIntegration:
    """Integration tests for Invite and Response models."""

    def test_token_unique(self, db_session, published_survey, make_invite):
        invite = make_invite(published_survey)
        db_session.add(Invite(survey_id=published_survey.id, token=invite.token))

        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_one_response_per_invite(self, db_session, published_survey, make_invite):
        invite = make_invite(published_survey)
        db_session.add(Response(invite_id=invite.id, survey_id=published_survey.id))
        db_session.commit()

        db_session.add(Response(invite_id=invite.id, survey_id=published_survey.id))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_response_defaults(self, db_session, published_survey, make_invite):
        invite = make_invite(published_survey)
        response = Response(invite_id=invite.id, survey_id=published_survey.id)
        db_session.add(response)
        db_session.commit()

        assert response.status == "draft"
        assert response.answers_json == {}
        assert response.completed_at is None
        assert invite.response is response

    def test_status_transitions(self, published_survey, make_invite):
        invite = make_invite(published_survey)

        invite.mark_started()
        assert invite.status == "started"
        invite.mark_completed()
        invite.mark_started()
        assert invite.status == "completed"

    def test_expiry_round_trip_is_utc(self, db_session, published_survey, make_invite):
        """Test that expiry timestamps read back from SQLite compare as UTC."""
        expires_at = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)
        invite = make_invite(published_survey, expires_at=expires_at)

        db_session.expire_all()
        stored = db_session.get(Invite, invite.id)

        assert ensure_utc(stored.expires_at) == expires_at


class TestCascadeDelete:
    """Tests for deleting surveys and users."""

    def test_survey_delete_removes_children(self, db_session, published_survey, make_invite):
        invite = make_invite(published_survey, status="completed")
        db_session.add(Response(invite_id=invite.id, survey_id=published_survey.id, status="completed"))
        db_session.commit()

        db_session.delete(published_survey)
        db_session.commit()

        assert db_session.query(SurveyVersion).count() == 0
        assert db_session.query(Invite).count() == 0
        assert db_session.query(Response).count() == 0

    def test_user_delete_keeps_history(self, db_session, creator_user, published_survey):
        """Test that audit entries and bank items outlive their author."""
        db_session.add(AuditLog(
            actor_user_id=creator_user.id,
            action="publish_survey",
            resource_type="survey",
            resource_id=published_survey.id,
        ))
        db_session.add(QuestionBankItem(
            label="Kept",
            created_by=creator_user.id,
            created_by_name=creator_user.full_name,
        ))
        db_session.delete(published_survey)
        db_session.commit()

        db_session.delete(creator_user)
        db_session.commit()
        db_session.expire_all()

        assert db_session.query(User).count() == 0
        assert db_session.query(AuditLog).one().actor_user_id is None
        item = db_session.query(QuestionBankItem).one()
        assert item.created_by is None
        assert item.created_by_name == "Cora Creator"
