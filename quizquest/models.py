from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON


class Quiz(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    owner_uid: str = Field(index=True)
    title: str
    description: str = ""
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class Question(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    quiz_id: int = Field(foreign_key="quiz.id", index=True)
    prompt: str
    choices: List[str] = Field(sa_column=Column(JSON, nullable=False))
    answer_index: int


class PlaySession(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_uid: str = Field(index=True)
    quiz_id: int = Field(foreign_key="quiz.id", index=True)
    score: int = 0
    total: int = 0
    started_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    finished_at: Optional[datetime] = None
