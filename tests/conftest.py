"""
Shared pytest fixtures for the team building test suite.
Uses a throwaway SQLite database so tests never touch event data.
"""
import os
import sys
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from teambuilder.database import Base, get_db
from teambuilder.main import app
from teambuilder.models import Event, Participant, Team, TeamMember


# ─── Test DB ───
TEST_DATABASE_URL = "sqlite:///./test_team_building.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function", autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """Provide a raw DB session for unit tests."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    """FastAPI TestClient wired to the test database."""
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ─── Data Factory Helpers ───

@pytest.fixture
def sample_event(db):
    event = Event(name="The Challenge 100", description="Spring cohort")
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


@pytest.fixture
def make_participant(db, sample_event):
    """Factory: insert a participant into the sample event."""
    def _make(name, problem_tag="climate", company="", vote_count=0, event=None):
        participant = Participant(
            event_id=(event or sample_event).id,
            name=name,
            company=company,
            problem_tag=problem_tag,
            vote_count=vote_count,
        )
        db.add(participant)
        db.commit()
        db.refresh(participant)
        return participant
    return _make


@pytest.fixture
def climate_group(make_participant):
    """Six participants sharing the 'climate' tag plus two in 'health'."""
    climate = [make_participant(n, "climate") for n in ["Ana", "Ben", "Cho", "Dev", "Eli", "Fay"]]
    health = [make_participant(n, "health") for n in ["Gus", "Hye"]]
    return climate, health


@pytest.fixture
def forming_team(db, sample_event, make_participant):
    """A forming 'climate' team led by Lee, plus unassigned climate participants."""
    leader = make_participant("Lee", "climate", company="Acme")
    leader.is_leader = True
    team = Team(event_id=sample_event.id, leader_id=leader.id, problem_tag="climate")
    team.members.append(TeamMember(participant_id=leader.id, role="leader"))
    db.add(team)
    db.commit()
    db.refresh(team)
    others = [make_participant(n, "climate") for n in ["Mia", "Noa", "Oli", "Pat"]]
    return team, leader, others


@pytest.fixture
def other_event(db):
    event = Event(name="Another Cohort")
    db.add(event)
    db.commit()
    db.refresh(event)
    return event
