"""
Team building rules: leader quotas, ballot checks and leader ranking.
Kept free of database access so they can be unit tested directly.
"""
import math
from typing import Iterable, List, Optional

from teambuilder.config import MAX_VOTES, PARTICIPANTS_PER_LEADER


class BallotError(ValueError):
    """A ballot that breaks the voting rules."""


def leader_quota(participant_count: int, per_leader: int = PARTICIPANTS_PER_LEADER) -> int:
    """
    Number of leaders a problem tag gets: participants / per_leader,
    rounded half up (2 participants -> 1 leader, 6 -> 2, 5 -> 1).
    """
    if participant_count <= 0:
        return 0
    return int(math.floor(participant_count / per_leader + 0.5))


def validate_ballot(voter_id: int, candidate_ids: List[int], max_votes: int = MAX_VOTES):
    """Check the shape of a ballot before any candidate is looked up."""
    if len(candidate_ids) > max_votes:
        raise BallotError(f"You can vote for at most {max_votes} candidates")
    if len(set(candidate_ids)) != len(candidate_ids):
        raise BallotError("Each candidate can only be voted for once")
    if voter_id in candidate_ids:
        raise BallotError("You cannot vote for yourself")


def same_group(voter_tag: Optional[str], candidate_tag: Optional[str]) -> bool:
    return (voter_tag or "") == (candidate_tag or "")


def rank_candidates(participants: Iterable, limit: int) -> List:
    """Top `limit` participants by vote count, ties broken by name."""
    ordered = sorted(participants, key=lambda p: (-(p.vote_count or 0), p.name))
    return ordered[:max(limit, 0)]
