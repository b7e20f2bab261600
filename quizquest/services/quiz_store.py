from typing import Protocol

from sqlmodel import Session

from quizquest.models import Question, Quiz
from quizquest.schemas import GeneratedQuestion


class QuizSink(Protocol):
    """Where generated quizzes end up: one parent record, then its questions."""

    def create_quiz(self, owner_uid: str, title: str, description: str = "") -> int: ...

    def add_question(self, quiz_id: int, question: GeneratedQuestion) -> int: ...


class SqlQuizSink:
    def __init__(self, session: Session):
        self.session = session

    def create_quiz(self, owner_uid: str, title: str, description: str = "") -> int:
        quiz = Quiz(owner_uid=owner_uid, title=title, description=description)
        self.session.add(quiz)
        self.session.commit()
        self.session.refresh(quiz)
        return quiz.id

    def add_question(self, quiz_id: int, question: GeneratedQuestion) -> int:
        row = Question(
            quiz_id=quiz_id,
            prompt=question.prompt,
            choices=list(question.choices),
            answer_index=question.answer_index,
        )
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row.id
