from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from quizquest.auth import get_current_user
from quizquest.db import get_session
from quizquest.models import PlaySession, Question, Quiz
from quizquest.schemas import FinishRequest


router = APIRouter(prefix="/sessions", tags=["sessions"])

HISTORY_LIMIT = 20


def _session_out(s: PlaySession) -> dict:
    return {
        "id": s.id,
        "quiz_id": s.quiz_id,
        "score": s.score,
        "total": s.total,
        "started_at": s.started_at.isoformat(),
        "finished_at": s.finished_at.isoformat() if s.finished_at else None,
    }


def score_answers(questions, answers) -> int:
    """One point per answer matching the question at the same position."""
    return sum(1 for q, a in zip(questions, answers) if a == q.answer_index)


@router.post("")
def start_session(quiz_id: int, session: Session = Depends(get_session), user_id: str = Depends(get_current_user)):
    if not session.get(Quiz, quiz_id):
        raise HTTPException(status_code=404, detail="Quiz not found")
    play = PlaySession(user_uid=user_id, quiz_id=quiz_id, score=0)
    session.add(play)
    session.commit()
    session.refresh(play)
    return _session_out(play)


@router.post("/{session_id}/finish")
def finish_session(session_id: int, body: FinishRequest, session: Session = Depends(get_session),
                   user_id: str = Depends(get_current_user)):
    play = session.get(PlaySession, session_id)
    if not play or play.user_uid != user_id:
        raise HTTPException(status_code=404, detail="Session not found")
    if play.finished_at is not None:
        raise HTTPException(status_code=409, detail="Session already finished")
    questions = session.exec(select(Question).where(Question.quiz_id == play.quiz_id).order_by(Question.id)).all()
    play.score = score_answers(questions, body.answers)
    play.total = len(questions)
    play.finished_at = datetime.utcnow()
    session.add(play)
    session.commit()
    session.refresh(play)
    return _session_out(play)


@router.get("/history")
def my_history(quiz_id: int, session: Session = Depends(get_session), user_id: str = Depends(get_current_user)):
    plays = session.exec(
        select(PlaySession)
        .where(PlaySession.user_uid == user_id, PlaySession.quiz_id == quiz_id)
        .order_by(PlaySession.started_at.desc(), PlaySession.id.desc())
        .limit(HISTORY_LIMIT)
    ).all()
    return [_session_out(p) for p in plays]
