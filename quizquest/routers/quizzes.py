from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from quizquest.auth import get_current_user
from quizquest.db import get_session
from quizquest.models import Question, Quiz
from quizquest.schemas import GeneratedQuestion, QuizCreate
from quizquest.services.quiz_store import SqlQuizSink


router = APIRouter(prefix="/quizzes", tags=["quizzes"])


def _quiz_out(quiz: Quiz) -> dict:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "owner_uid": quiz.owner_uid,
        "created_at": quiz.created_at.isoformat(),
    }


@router.get("")
def list_quizzes(session: Session = Depends(get_session), user_id: str = Depends(get_current_user)):
    quizzes: List[Quiz] = session.exec(select(Quiz).order_by(Quiz.created_at.desc(), Quiz.id.desc())).all()
    return [_quiz_out(q) for q in quizzes]


@router.post("")
def create_quiz(body: QuizCreate, session: Session = Depends(get_session), user_id: str = Depends(get_current_user)):
    title = body.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")
    quiz_id = SqlQuizSink(session).create_quiz(user_id, title, body.description.strip())
    return _quiz_out(session.get(Quiz, quiz_id))


@router.get("/{quiz_id}")
def get_quiz(quiz_id: int, session: Session = Depends(get_session), user_id: str = Depends(get_current_user)):
    quiz = session.get(Quiz, quiz_id)
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")
    questions = session.exec(select(Question).where(Question.quiz_id == quiz_id).order_by(Question.id)).all()
    return {
        **_quiz_out(quiz),
        "questions": [
            {"id": q.id, "prompt": q.prompt, "choices": q.choices, "answerIndex": q.answer_index} for q in questions
        ],
    }


@router.post("/{quiz_id}/questions")
def add_question(quiz_id: int, body: GeneratedQuestion, session: Session = Depends(get_session),
                 user_id: str = Depends(get_current_user)):
    quiz = session.get(Quiz, quiz_id)
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")
    if quiz.owner_uid != user_id:
        raise HTTPException(status_code=403, detail="Only the quiz owner can add questions")
    question_id = SqlQuizSink(session).add_question(quiz_id, body)
    return {"id": question_id, **body.to_record()}
