"""
SQLAlchemy ORM models for the team building event.
An event owns its participants, their leader votes, and the teams formed from them.
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime,
    ForeignKey, Text, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from teambuilder.database import Base
import enum


class EventPhase(str, enum.Enum):
    SETUP = "setup"
    VOTING = "voting"
    LEADER_SELECTION = "leader_selection"
    TEAM_FORMING = "team_forming"
    CONFIRMED = "confirmed"


class TeamStatus(str, enum.Enum):
    FORMING = "forming"
    CONFIRMED = "confirmed"


class MemberRole(str, enum.Enum):
    LEADER = "leader"
    MEMBER = "member"


class Event(Base):
    """A single team building event and its current phase."""
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, default="")
    phase = Column(String(20), nullable=False, default=EventPhase.SETUP.value)
    created_at = Column(DateTime, server_default=func.now())

    participants = relationship("Participant", back_populates="event", cascade="all, delete-orphan")
    votes = relationship("Vote", back_populates="event", cascade="all, delete-orphan")
    teams = relationship("Team", back_populates="event", cascade="all, delete-orphan")


class Participant(Base):
    """Registered participant, grouped by the problem tag they are interested in."""
    __tablename__ = "participants"
    __table_args__ = (
        Index("idx_participants_problem", "event_id", "problem_tag"),
    )

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    company = Column(String(100), default="")
    email = Column(String(200), default="")
    phone = Column(String(50), default="")
    problem_tag = Column(String(100), default="")
    is_leader = Column(Boolean, nullable=False, default=False)
    # Denormalized from the votes table after every ballot
    vote_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())

    event = relationship("Event", back_populates="participants")
    memberships = relationship("TeamMember", back_populates="participant", cascade="all, delete-orphan")


class Vote(Base):
    """One voter backing one leader candidate."""
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("event_id", "voter_id", "candidate_id", name="uq_votes_ballot"),
        Index("idx_votes_candidate", "event_id", "candidate_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    voter_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    candidate_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    event = relationship("Event", back_populates="votes")


class Team(Base):
    """A leader's team within one problem tag."""
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    leader_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    problem_tag = Column(String(100), default="")
    team_name = Column(String(200), nullable=True)
    status = Column(String(20), nullable=False, default=TeamStatus.FORMING.value)
    created_at = Column(DateTime, server_default=func.now())

    event = relationship("Event", back_populates="teams")
    leader = relationship("Participant")
    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")

    @property
    def leader_name(self):
        return self.leader.name if self.leader else None

    @property
    def leader_company(self):
        return self.leader.company if self.leader else None

    @property
    def member_count(self):
        return len(self.members)

    @property
    def is_confirmed(self):
        return self.status == TeamStatus.CONFIRMED.value


class TeamMember(Base):
    """Membership row; the leader is stored here too with role 'leader'."""
    __tablename__ = "team_members"
    __table_args__ = (
        UniqueConstraint("team_id", "participant_id", name="uq_team_members_participant"),
    )

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(20), nullable=False, default=MemberRole.MEMBER.value)
    joined_at = Column(DateTime, server_default=func.now())

    team = relationship("Team", back_populates="members")
    participant = relationship("Participant", back_populates="memberships")
