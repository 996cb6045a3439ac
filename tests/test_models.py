"""
Unit tests for SQLAlchemy ORM models.
Tests defaults, computed team properties and cascades.
"""
import pytest
from sqlalchemy.exc import IntegrityError

from teambuilder.models import Event, Participant, Vote, Team, TeamMember


class TestEventModel:

    def test_default_phase(self, db):
        event = Event(name="Kickoff")
        db.add(event)
        db.commit()
        db.refresh(event)

        assert event.id is not None
        assert event.phase == "setup"
        assert event.created_at is not None

    def test_delete_cascades_to_participants(self, db, sample_event, make_participant):
        make_participant("Ana")
        db.delete(sample_event)
        db.commit()

        assert db.query(Participant).count() == 0


class TestParticipantModel:

    def test_default_values(self, db, sample_event):
        participant = Participant(event_id=sample_event.id, name="Ana")
        db.add(participant)
        db.commit()
        db.refresh(participant)

        assert participant.is_leader is False
        assert participant.vote_count == 0
        assert participant.company == ""


class TestVoteModel:

    def test_duplicate_vote_rejected(self, db, sample_event, make_participant):
        voter = make_participant("Ana")
        candidate = make_participant("Ben")
        db.add(Vote(event_id=sample_event.id, voter_id=voter.id, candidate_id=candidate.id))
        db.commit()

        db.add(Vote(event_id=sample_event.id, voter_id=voter.id, candidate_id=candidate.id))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()


class TestTeamModel:

    def test_leader_properties(self, forming_team):
        team, leader, _ = forming_team

        assert team.leader_name == "Lee"
        assert team.leader_company == "Acme"
        assert team.member_count == 1
        assert team.status == "forming"
        assert team.is_confirmed is False

    def test_member_twice_rejected(self, db, forming_team):
        team, leader, _ = forming_team
        db.add(TeamMember(team_id=team.id, participant_id=leader.id))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_delete_team_removes_members(self, db, forming_team):
        team, _, _ = forming_team
        db.delete(team)
        db.commit()

        assert db.query(Team).count() == 0
        assert db.query(TeamMember).count() == 0
