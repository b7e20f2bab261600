"""
Shared test configuration: in-memory SQLite, in-memory key-value store,
rate limiting off. The environment must be set before quizquest is imported.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "0"
os.environ["JWT_SECRET"] = "test-secret"

import fitz  # noqa: E402
import pytest  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from quizquest.auth import create_access_token  # noqa: E402
from quizquest.db import engine  # noqa: E402
from quizquest.services.storage import KeyValueStore, kv_store  # noqa: E402


@pytest.fixture
def memory_store():
    return KeyValueStore(redis_url=None)


@pytest.fixture
def clean_state():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    kv_store._memory_store.clear()
    yield
    kv_store._memory_store.clear()


@pytest.fixture
def client(clean_state):
    from fastapi.testclient import TestClient
    from quizquest.main import app

    with TestClient(app) as c:
        yield c


def bearer(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def alice():
    return bearer("alice")


@pytest.fixture
def bob():
    return bearer("bob")


def make_pdf(pages, blank: bool = False) -> bytes:
    """PDF bytes with one page per entry; blank pages carry no text layer."""
    doc = fitz.open()
    for content in pages:
        page = doc.new_page()
        if not blank and content:
            page.insert_textbox(fitz.Rect(36, 36, 576, 806), content, fontsize=9)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_factory():
    return make_pdf
