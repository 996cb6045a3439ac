"""
Pydantic schemas for request/response validation.
Every response is wrapped in a `success` envelope.
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


# ─── Event Schemas ───
class EventCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class PhaseUpdate(BaseModel):
    phase: str


class EventResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = ""
    phase: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ─── Participant Schemas ───
class ParticipantImportRow(BaseModel):
    name: Optional[str] = None
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    problem_tag: Optional[str] = None


class ParticipantImport(BaseModel):
    participants: List[ParticipantImportRow]


class ParticipantResponse(BaseModel):
    id: int
    event_id: int
    name: str
    company: Optional[str] = ""
    email: Optional[str] = ""
    phone: Optional[str] = ""
    problem_tag: Optional[str] = ""
    is_leader: bool = False
    vote_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProblemTagCount(BaseModel):
    problem_tag: str
    count: int


# ─── Vote Schemas ───
class BallotCreate(BaseModel):
    voter_id: int
    candidate_ids: List[int]


# ─── Team Schemas ───
class TeamResponse(BaseModel):
    id: int
    event_id: int
    leader_id: int
    problem_tag: Optional[str] = ""
    team_name: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    leader_name: Optional[str] = None
    leader_company: Optional[str] = None
    member_count: int = 0

    class Config:
        from_attributes = True


class TeamMemberResponse(ParticipantResponse):
    role: str


class MemberAdd(BaseModel):
    participant_id: int


# ─── Envelopes ───
class Envelope(BaseModel):
    success: bool = True


class MessageResponse(Envelope):
    message: str


class EventListResponse(Envelope):
    events: List[EventResponse]


class EventDetailResponse(Envelope):
    event: EventResponse


class EventCreatedResponse(MessageResponse):
    event: EventResponse


class ParticipantListResponse(Envelope):
    participants: List[ParticipantResponse]


class ParticipantDetailResponse(Envelope):
    participant: ParticipantResponse


class ImportResponse(MessageResponse):
    count: int


class ProblemTagListResponse(Envelope):
    tags: List[ProblemTagCount]


class VoteResultsResponse(Envelope):
    results: List[ParticipantResponse]


class BallotResponse(Envelope):
    voted_for: List[int]


class LeaderSelectionResponse(MessageResponse):
    leader_count: int


class LeaderListResponse(Envelope):
    leaders: List[ParticipantResponse]


class TeamListResponse(Envelope):
    teams: List[TeamResponse]


class TeamDetailResponse(Envelope):
    team: TeamResponse
    members: List[TeamMemberResponse]


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
