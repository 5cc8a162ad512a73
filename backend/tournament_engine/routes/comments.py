"""
Match Discussion API Routes

Comments posted by a team's representative count as that side being
active for the walkover check.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from tournament_engine.database import get_clock, get_session
from tournament_engine.models.match_comment import MatchComment
from tournament_engine.services.errors import MatchNotFound, TeamNotFound
from tournament_engine.services.state_store import load_snapshot

router = APIRouter()


class CommentCreate(BaseModel):
    author: str
    body: str
    team_id: Optional[int] = None

    @field_validator("author", "body")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    match_id: str
    team_id: Optional[int] = None
    author: str
    body: str
    created_at: datetime


@router.post("/tournaments/{tournament_id}/matches/{match_id}/comments", response_model=CommentResponse, status_code=201)
def post_comment(
    tournament_id: int,
    match_id: str,
    data: CommentCreate,
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
):
    snapshot = load_snapshot(session, tournament_id)
    match = next((m for m in snapshot.matches if m.id == match_id), None)
    if match is None:
        raise MatchNotFound(f"Match {match_id} not found")
    if data.team_id is not None and data.team_id not in (match.team_a_id, match.team_b_id):
        raise TeamNotFound(f"Team {data.team_id} does not play in match {match_id}")

    comment = MatchComment(
        tournament_id=tournament_id,
        match_id=match_id,
        team_id=data.team_id,
        author=data.author,
        body=data.body,
        created_at=clock(),
    )
    session.add(comment)
    session.commit()
    session.refresh(comment)
    return comment


@router.get("/tournaments/{tournament_id}/matches/{match_id}/comments", response_model=List[CommentResponse])
def list_comments(tournament_id: int, match_id: str, session: Session = Depends(get_session)):
    load_snapshot(session, tournament_id)
    return session.exec(
        select(MatchComment)
        .where(MatchComment.tournament_id == tournament_id, MatchComment.match_id == match_id)
        .order_by(MatchComment.created_at, MatchComment.id)
    ).all()
