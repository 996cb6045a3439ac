"""
Team Building Event — FastAPI Backend
REST API covering events, participant import, leader voting, leader selection, and team forming.
"""
from fastapi import FastAPI, Depends, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.orm import Session, contains_eager, selectinload
from sqlalchemy import select, func, desc
from typing import Dict, List, Optional
import logging

from teambuilder.config import CORS_ORIGINS, LOG_LEVEL, SEED_CSV_PATH, TEAM_SIZE
from teambuilder.database import get_db, init_db, SessionLocal
from teambuilder.importer import RosterError, read_participant_csv
from teambuilder.models import (
    Event, Participant, Vote, Team, TeamMember,
    EventPhase, TeamStatus, MemberRole,
)
from teambuilder.rules import (
    BallotError, leader_quota, rank_candidates, same_group, validate_ballot,
)
from teambuilder.schemas import (
    EventCreate, PhaseUpdate, EventResponse,
    EventListResponse, EventDetailResponse, EventCreatedResponse,
    ParticipantImport, ParticipantResponse,
    ParticipantListResponse, ParticipantDetailResponse, ImportResponse,
    ProblemTagCount, ProblemTagListResponse,
    BallotCreate, BallotResponse, VoteResultsResponse,
    LeaderSelectionResponse, LeaderListResponse,
    MemberAdd, TeamResponse, TeamMemberResponse,
    TeamListResponse, TeamDetailResponse,
    MessageResponse, ErrorResponse,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Team Building API",
    description="Participant voting, leader selection and team forming for hackathon-style events",
    version="1.0.0",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


# Registered before CORS so error responses still carry the CORS headers
@app.middleware("http")
async def catch_unhandled_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, str(exc))


# CORS — allow frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ──── Error envelope ────
def error_response(status_code: int, message: str, headers: Optional[Dict[str, str]] = None):
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else err.get("msg", "Invalid request"))
    return error_response(400, "; ".join(problems) or "Invalid request")


# ──── Startup ────
@app.on_event("startup")
def startup():
    init_db()
    if SEED_CSV_PATH:
        from teambuilder.seed import seed_demo_event
        db = SessionLocal()
        try:
            seed_demo_event(db, SEED_CSV_PATH)
        except (OSError, RosterError) as e:
            logger.warning("Demo seed skipped: %s", e)
        finally:
            db.close()


@app.get("/")
def root():
    return {"message": "Team Building API", "docs": "/docs"}


@app.options("/{path:path}", include_in_schema=False)
def options_fallback(path: str):
    """Plain OPTIONS without preflight headers; real preflights are answered by CORSMiddleware."""
    return Response(status_code=204)


# ──── Lookups shared by the handlers ────
def get_event_or_404(db: Session, event_id: int) -> Event:
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def get_participant_or_404(db: Session, event_id: int, participant_id: int) -> Participant:
    participant = db.query(Participant).filter(
        Participant.id == participant_id,
        Participant.event_id == event_id,
    ).first()
    if not participant:
        raise HTTPException(status_code=404, detail="Participant not found")
    return participant


def get_team_or_404(db: Session, event_id: int, team_id: int) -> Team:
    team = db.query(Team).options(
        selectinload(Team.members),
    ).filter(Team.id == team_id, Team.event_id == event_id).first()
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    return team


# ═══════════════════════════════════════════════════
# EVENTS
# ═══════════════════════════════════════════════════

@app.get("/api/events", response_model=EventListResponse)
def list_events(db: Session = Depends(get_db)):
    events = db.query(Event).order_by(desc(Event.created_at), desc(Event.id)).all()
    return {"success": True, "events": [EventResponse.model_validate(e) for e in events]}


@app.get("/api/events/{event_id}", response_model=EventDetailResponse)
def get_event(event_id: int, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    return {"success": True, "event": EventResponse.model_validate(event)}


@app.post("/api/events", response_model=EventCreatedResponse)
def create_event(data: EventCreate, db: Session = Depends(get_db)):
    if not data.name.strip():
        raise HTTPException(status_code=400, detail="Event name is required")
    event = Event(name=data.name.strip(), description=data.description or "")
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Created event %s (%s)", event.id, event.name)
    return {
        "success": True,
        "message": "Event created",
        "event": EventResponse.model_validate(event),
    }


@app.patch("/api/events/{event_id}/phase", response_model=MessageResponse)
def update_phase(event_id: int, data: PhaseUpdate, db: Session = Depends(get_db)):
    valid_phases = [p.value for p in EventPhase]
    if data.phase not in valid_phases:
        raise HTTPException(status_code=400, detail="Invalid phase")
    event = get_event_or_404(db, event_id)
    event.phase = data.phase
    db.commit()
    logger.info("Event %s moved to phase %s", event_id, data.phase)
    return {"success": True, "message": f"Phase changed to {data.phase}"}


# ═══════════════════════════════════════════════════
# PARTICIPANTS
# ═══════════════════════════════════════════════════

@app.get("/api/events/{event_id}/participants", response_model=ParticipantListResponse)
def list_participants(
    event_id: int,
    problem_tag: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List participants, most voted first, optionally for one problem tag."""
    query = db.query(Participant).filter(Participant.event_id == event_id)
    if problem_tag:
        query = query.filter(Participant.problem_tag == problem_tag)
    participants = query.order_by(desc(Participant.vote_count), Participant.name).all()
    return {
        "success": True,
        "participants": [ParticipantResponse.model_validate(p) for p in participants],
    }


@app.get("/api/events/{event_id}/participants/{participant_id}", response_model=ParticipantDetailResponse)
def get_participant(event_id: int, participant_id: int, db: Session = Depends(get_db)):
    participant = get_participant_or_404(db, event_id, participant_id)
    return {"success": True, "participant": ParticipantResponse.model_validate(participant)}


def import_rows(db: Session, event: Event, rows: List[dict]) -> int:
    """Insert roster rows for an event; all rows or none."""
    if not rows:
        raise HTTPException(status_code=400, detail="Participant data is required")

    participants = []
    for index, row in enumerate(rows, start=1):
        name = (row.get("name") or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail=f"Participant #{index} has no name")
        participants.append(Participant(
            event_id=event.id,
            name=name,
            company=row.get("company") or "",
            email=row.get("email") or "",
            phone=row.get("phone") or "",
            problem_tag=row.get("problem_tag") or "",
        ))

    db.add_all(participants)
    db.commit()
    logger.info("Imported %d participants into event %s", len(participants), event.id)
    return len(participants)


@app.post("/api/events/{event_id}/participants/import", response_model=ImportResponse)
def import_participants(event_id: int, data: ParticipantImport, db: Session = Depends(get_db)):
    """Bulk register participants from a parsed roster."""
    event = get_event_or_404(db, event_id)
    imported = import_rows(db, event, [row.model_dump() for row in data.participants])
    return {
        "success": True,
        "message": f"{imported} participants registered",
        "count": imported,
    }


@app.post("/api/events/{event_id}/participants/import/csv", response_model=ImportResponse)
def import_participants_csv(
    event_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db)
):
    """Bulk register participants from an uploaded CSV roster."""
    event = get_event_or_404(db, event_id)
    try:
        rows = read_participant_csv(file.file)
    except RosterError as e:
        raise HTTPException(status_code=400, detail=str(e))
    imported = import_rows(db, event, rows)
    return {
        "success": True,
        "message": f"{imported} participants registered",
        "count": imported,
    }


@app.get("/api/events/{event_id}/problem-tags", response_model=ProblemTagListResponse)
def list_problem_tags(event_id: int, db: Session = Depends(get_db)):
    """Problem tags in use and how many participants picked each."""
    count = func.count(Participant.id).label("count")
    rows = db.query(Participant.problem_tag, count).filter(
        Participant.event_id == event_id,
        Participant.problem_tag.isnot(None),
        Participant.problem_tag != "",
    ).group_by(Participant.problem_tag).order_by(desc(count), Participant.problem_tag).all()
    return {
        "success": True,
        "tags": [ProblemTagCount(problem_tag=tag, count=n) for tag, n in rows],
    }


# ═══════════════════════════════════════════════════
# VOTES
# ═══════════════════════════════════════════════════

@app.post("/api/events/{event_id}/votes", response_model=MessageResponse)
def cast_ballot(event_id: int, data: BallotCreate, db: Session = Depends(get_db)):
    """
    Replace a voter's ballot. Candidates must share the voter's problem tag.
    The whole ballot is checked before anything is written.
    """
    try:
        validate_ballot(data.voter_id, data.candidate_ids)
    except BallotError as e:
        raise HTTPException(status_code=400, detail=str(e))

    voter = db.query(Participant).filter(
        Participant.id == data.voter_id,
        Participant.event_id == event_id,
    ).first()
    if not voter:
        raise HTTPException(status_code=404, detail="Voter not found")

    if data.candidate_ids:
        candidates = db.query(Participant).filter(
            Participant.id.in_(data.candidate_ids),
            Participant.event_id == event_id,
        ).all()
        if len(candidates) != len(data.candidate_ids) or not all(
            same_group(voter.problem_tag, c.problem_tag) for c in candidates
        ):
            raise HTTPException(
                status_code=400,
                detail="You can only vote for participants in the same problem tag group",
            )

    db.query(Vote).filter(
        Vote.event_id == event_id,
        Vote.voter_id == data.voter_id,
    ).delete(synchronize_session=False)
    db.add_all([
        Vote(event_id=event_id, voter_id=data.voter_id, candidate_id=candidate_id)
        for candidate_id in data.candidate_ids
    ])
    db.flush()

    vote_totals = select(func.count(Vote.id)).where(
        Vote.candidate_id == Participant.id,
        Vote.event_id == event_id,
    ).scalar_subquery()
    db.query(Participant).filter(Participant.event_id == event_id).update(
        {Participant.vote_count: vote_totals}, synchronize_session=False
    )
    db.commit()

    logger.info("Participant %s voted for %s in event %s", data.voter_id, data.candidate_ids, event_id)
    return {"success": True, "message": "Vote recorded"}


@app.get("/api/events/{event_id}/votes/results", response_model=VoteResultsResponse)
def vote_results(
    event_id: int,
    problem_tag: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Participants with live vote counts taken from the votes table."""
    totals = select(
        Vote.candidate_id,
        func.count(Vote.id).label("votes"),
    ).where(Vote.event_id == event_id).group_by(Vote.candidate_id).subquery()
    votes = func.coalesce(totals.c.votes, 0)

    query = db.query(Participant, votes).outerjoin(
        totals, totals.c.candidate_id == Participant.id
    ).filter(Participant.event_id == event_id)
    if problem_tag:
        query = query.filter(Participant.problem_tag == problem_tag)
    rows = query.order_by(desc(votes), Participant.name).all()

    results = [
        ParticipantResponse.model_validate(p).model_copy(update={"vote_count": n})
        for p, n in rows
    ]
    return {"success": True, "results": results}


@app.get("/api/events/{event_id}/votes/{voter_id}", response_model=BallotResponse)
def get_ballot(event_id: int, voter_id: int, db: Session = Depends(get_db)):
    rows = db.query(Vote.candidate_id).filter(
        Vote.event_id == event_id,
        Vote.voter_id == voter_id,
    ).order_by(Vote.id).all()
    return {"success": True, "voted_for": [r.candidate_id for r in rows]}


# ═══════════════════════════════════════════════════
# LEADERS
# ═══════════════════════════════════════════════════

@app.post("/api/events/{event_id}/leaders/select", response_model=LeaderSelectionResponse)
def select_leaders(event_id: int, db: Session = Depends(get_db)):
    """
    Pick the top voted participants of every problem tag as leaders,
    one leader per four participants, and open a team for each.
    """
    event = get_event_or_404(db, event_id)
    if db.query(Team).filter(Team.event_id == event_id).count() > 0:
        raise HTTPException(status_code=409, detail="Leaders have already been selected for this event")

    tags = db.query(Participant.problem_tag).filter(
        Participant.event_id == event_id,
        Participant.problem_tag.isnot(None),
        Participant.problem_tag != "",
    ).distinct().order_by(Participant.problem_tag).all()

    total_leaders = 0
    for (tag,) in tags:
        group = db.query(Participant).filter(
            Participant.event_id == event_id,
            Participant.problem_tag == tag,
        ).all()
        quota = leader_quota(len(group))

        for leader in rank_candidates(group, quota):
            leader.is_leader = True
            team = Team(
                event_id=event_id,
                leader_id=leader.id,
                problem_tag=tag,
                status=TeamStatus.FORMING.value,
            )
            team.members.append(TeamMember(participant_id=leader.id, role=MemberRole.LEADER.value))
            db.add(team)
            total_leaders += 1

    event.phase = EventPhase.TEAM_FORMING.value
    db.commit()

    logger.info("Selected %d leaders for event %s", total_leaders, event_id)
    return {
        "success": True,
        "message": f"{total_leaders} leaders selected",
        "leader_count": total_leaders,
    }


@app.get("/api/events/{event_id}/leaders", response_model=LeaderListResponse)
def list_leaders(event_id: int, db: Session = Depends(get_db)):
    leaders = db.query(Participant).filter(
        Participant.event_id == event_id,
        Participant.is_leader.is_(True),
    ).order_by(Participant.problem_tag, Participant.name).all()
    return {"success": True, "leaders": [ParticipantResponse.model_validate(p) for p in leaders]}


# ═══════════════════════════════════════════════════
# TEAMS
# ═══════════════════════════════════════════════════

@app.get("/api/events/{event_id}/teams", response_model=TeamListResponse)
def list_teams(event_id: int, db: Session = Depends(get_db)):
    teams = db.query(Team).join(Team.leader).options(
        contains_eager(Team.leader),
        selectinload(Team.members),
    ).filter(Team.event_id == event_id).order_by(Team.problem_tag, Participant.name).all()
    return {"success": True, "teams": [TeamResponse.model_validate(t) for t in teams]}


@app.get("/api/events/{event_id}/teams/{team_id}", response_model=TeamDetailResponse)
def get_team(event_id: int, team_id: int, db: Session = Depends(get_db)):
    """Team with its members by role (members before the leader), then name."""
    team = get_team_or_404(db, event_id, team_id)

    rows = db.query(Participant, TeamMember.role).join(
        TeamMember, TeamMember.participant_id == Participant.id
    ).filter(TeamMember.team_id == team.id).order_by(desc(TeamMember.role), Participant.name).all()

    members = [
        TeamMemberResponse(**ParticipantResponse.model_validate(p).model_dump(), role=role)
        for p, role in rows
    ]
    return {"success": True, "team": TeamResponse.model_validate(team), "members": members}


@app.post("/api/events/{event_id}/teams/{team_id}/members", response_model=MessageResponse)
def add_member(event_id: int, team_id: int, data: MemberAdd, db: Session = Depends(get_db)):
    """Leader picks a participant from the same problem tag."""
    team = get_team_or_404(db, event_id, team_id)
    if team.is_confirmed:
        raise HTTPException(status_code=400, detail="Team is already confirmed")
    if team.member_count >= TEAM_SIZE:
        raise HTTPException(status_code=400, detail=f"A team can have at most {TEAM_SIZE} members")

    participant = get_participant_or_404(db, event_id, data.participant_id)
    if not same_group(participant.problem_tag, team.problem_tag):
        raise HTTPException(
            status_code=400,
            detail="Only participants with the same problem tag can join this team",
        )

    existing = db.query(TeamMember).join(Team).filter(
        TeamMember.participant_id == participant.id,
        Team.event_id == event_id,
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="Participant already belongs to a team")

    db.add(TeamMember(team_id=team.id, participant_id=participant.id, role=MemberRole.MEMBER.value))
    db.commit()
    logger.info("Participant %s joined team %s", participant.id, team.id)
    return {"success": True, "message": "Member added"}


@app.delete("/api/events/{event_id}/teams/{team_id}/members/{participant_id}", response_model=MessageResponse)
def remove_member(event_id: int, team_id: int, participant_id: int, db: Session = Depends(get_db)):
    team = get_team_or_404(db, event_id, team_id)
    member = db.query(TeamMember).filter(
        TeamMember.team_id == team.id,
        TeamMember.participant_id == participant_id,
    ).first()
    if not member:
        raise HTTPException(status_code=404, detail="Team member not found")
    if member.role == MemberRole.LEADER.value:
        raise HTTPException(status_code=400, detail="The leader cannot be removed")
    if team.is_confirmed:
        raise HTTPException(status_code=400, detail="Team is already confirmed")

    db.delete(member)
    db.commit()
    logger.info("Participant %s left team %s", participant_id, team.id)
    return {"success": True, "message": "Member removed"}


@app.patch("/api/events/{event_id}/teams/{team_id}/confirm", response_model=MessageResponse)
def confirm_team(event_id: int, team_id: int, db: Session = Depends(get_db)):
    team = get_team_or_404(db, event_id, team_id)
    if team.member_count != TEAM_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"A team needs exactly {TEAM_SIZE} members to be confirmed",
        )
    team.status = TeamStatus.CONFIRMED.value
    db.commit()
    logger.info("Team %s confirmed", team.id)
    return {"success": True, "message": "Team confirmed"}


@app.get("/api/events/{event_id}/unassigned", response_model=ParticipantListResponse)
def list_unassigned(
    event_id: int,
    problem_tag: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Participants not yet on any team of the event."""
    assigned = select(TeamMember.participant_id).join(
        Team, TeamMember.team_id == Team.id
    ).where(Team.event_id == event_id)

    query = db.query(Participant).filter(
        Participant.event_id == event_id,
        Participant.id.not_in(assigned),
    )
    if problem_tag:
        query = query.filter(Participant.problem_tag == problem_tag)
    participants = query.order_by(desc(Participant.vote_count), Participant.name).all()
    return {
        "success": True,
        "participants": [ParticipantResponse.model_validate(p) for p in participants],
    }
